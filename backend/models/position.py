# backend/models/position.py
from sqlalchemy import Column, String, DateTime, Numeric
from database import Base

# Latest reported indoor position of a session; one row per session
class PositionRecord(Base):
    __tablename__ = "positions"

    session_id = Column(String, primary_key=True)
    section = Column(String(20), nullable=False)

    # Coordinates inside the section's local frame
    x = Column(Numeric(10, 2), nullable=False)
    y = Column(Numeric(10, 2), nullable=False)

    timestamp = Column(DateTime(timezone=True), nullable=False)
