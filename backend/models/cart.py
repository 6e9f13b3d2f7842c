# backend/models/cart.py
from sqlalchemy import Column, Integer, String, DateTime, Numeric
from database import Base

# A single cart line (one add-to-cart action) belonging to a shopping session
class CartLineRecord(Base):
    __tablename__ = "cart_lines" # Table name

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    session_id = Column(String, index=True, nullable=False) # Shopping session the line belongs to
    product_id = Column(Integer, nullable=False) # Catalog product, not enforced as a foreign key

    quantity = Column(Numeric(10, 3), nullable=False)
    weight = Column(Numeric(10, 3), nullable=True) # Only set for weighed goods

    unit_price = Column(Numeric(10, 2), nullable=False) # Price snapshot taken when the line was added
    total_price = Column(Numeric(10, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False)
