import asyncio
import random
import threading
from decimal import Decimal

import pytest

from conftest import FakeChannel
from services.backends import MemoryCartBackend, MemoryPositionBackend
from services.cart_store import CartStore
from services.errors import ErrorCode, NotFoundError, ValidationError
from services.position_store import PositionStore
from services.pricing import round_money

D = Decimal


def test_end_to_end_summary_crosses_discount_threshold(cart_store):
    async def scenario():
        await cart_store.add_line("s1", 7, D("2"), None, D("40.00"))
        first = await cart_store.get_summary("s1")
        await cart_store.add_line("s1", 9, D("1"), None, D("450.00"))
        return first, await cart_store.get_summary("s1")

    first, second = asyncio.run(scenario())

    assert first.subtotal == D("80.00")
    assert first.tax == D("4.00")
    assert first.discount == D("0.00")
    assert first.total == D("84.00")

    assert second.subtotal == D("530.00")
    assert second.discount == D("79.50")
    assert second.tax == D("26.50")
    assert second.total == D("477.00")
    assert second.item_count == 3


def test_add_never_merges_lines_for_same_product(cart_store):
    async def scenario():
        a = await cart_store.add_line("s1", 7, D("1"), None, D("40.00"))
        b = await cart_store.add_line("s1", 7, D("1"), None, D("40.00"))
        return a, b, await cart_store.get_summary("s1")

    a, b, summary = asyncio.run(scenario())
    assert a.id != b.id
    assert [line.id for line in summary.items] == [a.id, b.id]


def test_weighed_line_is_priced_by_weight(cart_store):
    line = asyncio.run(cart_store.add_line("s1", 7, None, D("1.5"), D("40.00")))
    assert line.weight == D("1.5")
    assert line.quantity == D("1")
    assert line.total_price == D("60.00")


@pytest.mark.parametrize(
    "quantity, weight, unit_price, code",
    [
        (None, None, D("10.00"), ErrorCode.MISSING_QUANTITY),
        (D("0"), D("0"), D("10.00"), ErrorCode.MISSING_QUANTITY),
        (D("1"), None, D("-0.01"), ErrorCode.INVALID_VALUE),
        (D("-1"), None, D("10.00"), ErrorCode.INVALID_VALUE),
        (None, D("-2"), D("10.00"), ErrorCode.INVALID_VALUE),
    ],
)
def test_add_rejects_invalid_input_without_side_effects(cart_store, hub, quantity, weight, unit_price, code):
    channel = FakeChannel()

    async def scenario():
        await hub.connect("s1", channel)
        with pytest.raises(ValidationError) as err:
            await cart_store.add_line("s1", 1, quantity, weight, unit_price)
        return err.value, await cart_store.get_summary("s1")

    error, summary = asyncio.run(scenario())
    assert error.code == code
    assert summary.items == []
    assert channel.types() == ["connected"]


def test_add_rejects_empty_session(cart_store):
    with pytest.raises(ValidationError):
        asyncio.run(cart_store.add_line("", 1, D("1"), None, D("1.00")))


def test_update_quantity_recomputes_total(cart_store):
    async def scenario():
        line = await cart_store.add_line("s1", 7, D("2"), None, D("40.00"))
        return await cart_store.update_quantity(line.id, D("3.5"))

    updated = asyncio.run(scenario())
    assert updated.quantity == D("3.5")
    assert updated.unit_price == D("40.00")
    assert updated.total_price == D("140.00")


def test_update_quantity_on_weighed_line_replaces_weight(cart_store):
    async def scenario():
        line = await cart_store.add_line("s1", 7, None, D("1.5"), D("40.00"))
        return await cart_store.update_quantity(line.id, D("2"))

    updated = asyncio.run(scenario())
    assert updated.weight is None
    assert updated.total_price == D("80.00")


def test_update_to_zero_removes_line(cart_store):
    async def scenario():
        keep = await cart_store.add_line("s1", 1, D("1"), None, D("10.00"))
        drop = await cart_store.add_line("s1", 2, D("2"), None, D("5.00"))
        before = await cart_store.get_summary("s1")
        result = await cart_store.update_quantity(drop.id, D("0"))
        after = await cart_store.get_summary("s1")
        return keep, drop, before, result, after

    keep, drop, before, result, after = asyncio.run(scenario())
    assert result is None
    assert [line.id for line in after.items] == [keep.id]
    assert before.item_count == 3
    assert after.item_count == 1
    assert asyncio.run(cart_store.get_line(drop.id)) is None


def test_update_negative_quantity_removes_line(cart_store):
    async def scenario():
        line = await cart_store.add_line("s1", 1, D("1"), None, D("10.00"))
        await cart_store.update_quantity(line.id, D("-3"))
        return await cart_store.get_summary("s1")

    assert asyncio.run(scenario()).items == []


def test_update_unknown_line_raises_not_found(cart_store):
    with pytest.raises(NotFoundError):
        asyncio.run(cart_store.update_quantity(999, D("2")))
    with pytest.raises(NotFoundError):
        asyncio.run(cart_store.update_quantity(999, D("0")))


def test_remove_line_is_idempotent(cart_store):
    async def scenario():
        line = await cart_store.add_line("s1", 1, D("1"), None, D("10.00"))
        await cart_store.add_line("s1", 2, D("1"), None, D("20.00"))
        first = await cart_store.remove_line(line.id)
        after_first = await cart_store.get_summary("s1")
        second = await cart_store.remove_line(line.id)
        after_second = await cart_store.get_summary("s1")
        return first, second, after_first, after_second

    first, second, after_first, after_second = asyncio.run(scenario())
    assert first is True
    assert second is False
    assert after_first == after_second


def test_clear_session_only_touches_that_session(cart_store):
    async def scenario():
        await cart_store.add_line("s1", 1, D("1"), None, D("10.00"))
        await cart_store.add_line("s2", 1, D("1"), None, D("10.00"))
        await cart_store.clear_session("s1")
        await cart_store.clear_session("s1")
        await cart_store.clear_session("never-used")
        return await cart_store.get_summary("s1"), await cart_store.get_summary("s2")

    s1, s2 = asyncio.run(scenario())
    assert s1.items == []
    assert len(s2.items) == 1


def test_subtotal_matches_sum_of_lines_after_random_mutations(cart_store):
    rng = random.Random(42)

    async def scenario():
        ids = []
        for _ in range(200):
            op = rng.choice(["add", "add", "update", "remove"])
            if op == "add" or not ids:
                weight = D(rng.randint(1, 3000)) / 1000 if rng.random() < 0.3 else None
                line = await cart_store.add_line(
                    "s1", rng.randint(1, 38), D(rng.randint(1, 5)), weight, D(rng.randint(1, 90000)) / 100
                )
                ids.append(line.id)
            elif op == "update":
                line_id = rng.choice(ids)
                result = await cart_store.update_quantity(line_id, D(rng.randint(-1, 6)))
                if result is None:
                    ids.remove(line_id)
            else:
                line_id = rng.choice(ids)
                await cart_store.remove_line(line_id)
                ids.remove(line_id)

            summary = await cart_store.get_summary("s1")
            assert [line.id for line in summary.items] == ids
            assert summary.subtotal == round_money(sum((line.total_price for line in summary.items), D("0")))
            for line in summary.items:
                effective = line.weight if line.weight is not None else line.quantity
                assert line.total_price == round_money(line.unit_price * effective)
                assert line.quantity > 0

    asyncio.run(scenario())


def test_concurrent_adds_to_one_session_keep_every_line(cart_store):
    async def scenario():
        lines = await asyncio.gather(
            *(cart_store.add_line("s1", i % 38 + 1, D("1"), None, D("10.00")) for i in range(50))
        )
        return lines, await cart_store.get_summary("s1")

    lines, summary = asyncio.run(scenario())
    assert len({line.id for line in lines}) == 50
    assert len(summary.items) == 50
    assert summary.subtotal == D("500.00")


def test_concurrent_sessions_do_not_interfere(cart_store):
    async def fill(session_id, count):
        for _ in range(count):
            await cart_store.add_line(session_id, 1, D("1"), None, D("1.00"))
            await asyncio.sleep(0)

    async def scenario():
        await asyncio.gather(fill("a", 20), fill("b", 30))
        return await cart_store.get_summary("a"), await cart_store.get_summary("b")

    a, b = asyncio.run(scenario())
    assert len(a.items) == 20 and all(line.session_id == "a" for line in a.items)
    assert len(b.items) == 30 and all(line.session_id == "b" for line in b.items)


def test_mutations_push_cart_sync_to_owning_session_only(cart_store, hub):
    mine, other = FakeChannel(), FakeChannel()

    async def scenario():
        await hub.connect("s1", mine)
        await hub.connect("s2", other)
        line = await cart_store.add_line("s1", 7, D("2"), None, D("40.00"))
        await cart_store.update_quantity(line.id, D("3"))
        await cart_store.remove_line(line.id)
        await cart_store.remove_line(line.id)
        await cart_store.clear_session("s1")
        return line

    line = asyncio.run(scenario())

    assert mine.types() == ["connected", "item_added", "cart_sync", "cart_sync", "cart_sync", "cart_sync"]
    assert other.types() == ["connected"]

    item_added = mine.of_type("item_added")[0]
    assert item_added["cartLine"]["id"] == line.id
    assert item_added["cartLine"]["totalPrice"] == "80.00"

    syncs = mine.of_type("cart_sync")
    assert syncs[0]["sessionId"] == "s1"
    assert syncs[0]["summary"]["total"] == "84.00"
    assert syncs[1]["summary"]["subtotal"] == "120.00"
    assert syncs[2]["summary"]["items"] == []


def test_failed_delivery_does_not_fail_mutation(cart_store, hub):
    broken = FakeChannel(fail=True)

    async def scenario():
        await hub.connect("s1", broken)
        line = await cart_store.add_line("s1", 1, D("1"), None, D("10.00"))
        return line, await cart_store.get_summary("s1")

    line, summary = asyncio.run(scenario())
    assert [item.id for item in summary.items] == [line.id]


def test_session_locks_are_released_after_use(cart_store):
    async def scenario():
        for i in range(1000):
            await cart_store.clear_session(f"s{i}")
        line = await cart_store.add_line("busy", 1, D("1"), None, D("1.00"))
        await asyncio.gather(
            *(cart_store.add_line("busy", 1, D("1"), None, D("1.00")) for _ in range(20)),
            cart_store.update_quantity(line.id, D("2")),
        )
        await cart_store.remove_line(line.id)
        return await cart_store.get_summary("busy")

    summary = asyncio.run(scenario())
    assert len(summary.items) == 20
    assert cart_store._locks == {}
    assert not cart_store._lock_users


class ThreadRecordingCartBackend(MemoryCartBackend):
    def __init__(self):
        super().__init__()
        self.threads = set()

    def insert(self, *args, **kwargs):
        self.threads.add(threading.get_ident())
        return super().insert(*args, **kwargs)

    def list_session(self, session_id):
        self.threads.add(threading.get_ident())
        return super().list_session(session_id)


class ThreadRecordingPositionBackend(MemoryPositionBackend):
    def __init__(self):
        super().__init__()
        self.threads = set()

    def put(self, position):
        self.threads.add(threading.get_ident())
        return super().put(position)


def test_backend_calls_run_off_the_event_loop_thread(hub):
    carts_backend, positions_backend = ThreadRecordingCartBackend(), ThreadRecordingPositionBackend()
    carts = CartStore(carts_backend, hub)
    positions = PositionStore(positions_backend, hub)

    async def scenario():
        await carts.add_line("s1", 7, D("2"), None, D("40.00"))
        await positions.report_position("s1", "dairy", D("1.5"), D("0.5"))
        return threading.get_ident()

    loop_thread = asyncio.run(scenario())
    assert carts_backend.threads and loop_thread not in carts_backend.threads
    assert positions_backend.threads and loop_thread not in positions_backend.threads
