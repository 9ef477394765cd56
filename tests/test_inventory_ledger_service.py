"""
Tests for InventoryLedgerService.apply_delta
"""
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from gemtrade.models import InventoryMovement
from gemtrade.services.errors import InsufficientInventory, InventoryUpdateFailed, PersistenceFailed
from gemtrade.services.inventory_ledger_service import (
    InventoryLedgerService,
    REASON_ADJUSTMENT,
    REASON_SALE,
)
from gemtrade.services.stores import InventoryStore, SaleStore


@pytest.fixture
def store(db):
    return InventoryStore(db)


@pytest.fixture
def ledger(store):
    return InventoryLedgerService(store, max_retries=3)


def _movements(db, item_id):
    return db.query(InventoryMovement).filter(InventoryMovement.item_id == item_id).all()


class TestApplyDelta:

    def test_consume_and_restore(self, ledger, make_stone, reload):
        stone = make_stone(quantity=5)
        ledger.apply_delta(stone.id, -3, REASON_SALE)
        assert reload(stone).quantity == 2
        assert reload(stone).is_available is True

        ledger.apply_delta(stone.id, 3, REASON_SALE)
        assert reload(stone).quantity == 5

    def test_availability_follows_quantity(self, ledger, make_stone, reload):
        stone = make_stone(quantity=2)
        ledger.apply_delta(stone.id, -2, REASON_SALE)
        assert reload(stone).quantity == 0
        assert reload(stone).is_available is False

        ledger.apply_delta(stone.id, 1, REASON_ADJUSTMENT)
        assert reload(stone).is_available is True

    def test_lenient_consumption_clamps_at_zero(self, ledger, make_stone, reload):
        stone = make_stone(quantity=2)
        item = ledger.apply_delta(stone.id, -5, REASON_SALE)
        assert item.quantity == 0
        assert reload(stone).is_available is False

    def test_strict_consumption_rejects_oversell(self, ledger, make_stone, reload):
        stone = make_stone("RUBY-001", quantity=2)
        with pytest.raises(InsufficientInventory) as exc_info:
            ledger.apply_delta(stone.id, -3, REASON_SALE, strict=True)
        assert exc_info.value.reference == "RUBY-001"
        assert exc_info.value.requested == 3
        assert exc_info.value.available == 2
        assert reload(stone).quantity == 2

    def test_zero_delta_is_a_no_op(self, ledger, make_stone, db):
        stone = make_stone(quantity=2)
        item = ledger.apply_delta(stone.id, 0, REASON_ADJUSTMENT)
        assert item.quantity == 2
        assert _movements(db, stone.id) == []

    def test_consuming_empty_stock_writes_nothing(self, ledger, make_stone, db):
        stone = make_stone(quantity=0)
        item = ledger.apply_delta(stone.id, -1, REASON_SALE)
        assert item.quantity == 0
        assert _movements(db, stone.id) == []

    def test_missing_item(self, ledger):
        with pytest.raises(InventoryUpdateFailed, match="item not found"):
            ledger.apply_delta(uuid4(), -1, REASON_SALE)


class TestMovements:

    def test_movement_recorded_per_applied_delta(self, ledger, make_stone, db):
        stone = make_stone(quantity=5)
        sale_id = uuid4()
        ledger.apply_delta(stone.id, -3, REASON_SALE, reference_id=sale_id)
        rows = _movements(db, stone.id)
        assert len(rows) == 1
        assert rows[0].quantity_delta == -3
        assert rows[0].quantity_before == 5
        assert rows[0].quantity_after == 2
        assert rows[0].reason == REASON_SALE
        assert rows[0].reference_id == sale_id

    def test_clamped_movement_records_actual_change(self, ledger, make_stone, db):
        stone = make_stone(quantity=2)
        ledger.apply_delta(stone.id, -5, REASON_SALE)
        assert _movements(db, stone.id)[0].quantity_delta == -2


class TestCompareAndSwap:

    def test_retries_after_concurrent_change(self, ledger, store, make_stone, reload, monkeypatch):
        stone = make_stone(quantity=5)
        real_update = store.update_quantity
        calls = []

        def racing_update(item_id, expected, new, movement):
            calls.append(expected)
            if len(calls) == 1:
                # Another writer sells one stone between our read and write
                assert real_update(item_id, expected, expected - 1, dict(movement, quantity_delta=-1,
                                                                         quantity_after=expected - 1))
                return real_update(item_id, expected, new, movement)
            return real_update(item_id, expected, new, movement)

        monkeypatch.setattr(store, "update_quantity", racing_update)
        ledger.apply_delta(stone.id, -2, REASON_SALE)

        assert calls == [5, 4]
        assert reload(stone).quantity == 2

    def test_gives_up_after_max_retries(self, ledger, store, make_stone, reload, monkeypatch):
        stone = make_stone(quantity=5)
        monkeypatch.setattr(store, "update_quantity", lambda *args: False)
        with pytest.raises(InventoryUpdateFailed, match="gave up after 3 attempts"):
            ledger.apply_delta(stone.id, -1, REASON_SALE)
        assert reload(stone).quantity == 5

    def test_strict_check_uses_fresh_quantity(self, ledger, store, make_stone, monkeypatch):
        stone = make_stone(quantity=2)
        real_update = store.update_quantity

        def racing_update(item_id, expected, new, movement):
            # Competing sale empties the stock first
            real_update(item_id, expected, 0, dict(movement, quantity_delta=-expected, quantity_after=0))
            return False

        monkeypatch.setattr(store, "update_quantity", racing_update)
        with pytest.raises(InsufficientInventory):
            ledger.apply_delta(stone.id, -2, REASON_SALE, strict=True)

    def test_persistence_error_becomes_update_failed(self, ledger, store, make_stone, monkeypatch):
        stone = make_stone(quantity=5)

        def broken(*args):
            raise PersistenceFailed("Update inventory quantity", "connection reset")

        monkeypatch.setattr(store, "update_quantity", broken)
        with pytest.raises(InventoryUpdateFailed, match="connection reset"):
            ledger.apply_delta(stone.id, -1, REASON_SALE)

    def test_failed_read_back_reports_applied_write(self, ledger, store, make_stone, reload, monkeypatch):
        stone = make_stone(quantity=5)
        real_get = store.get_item
        calls = []

        def fail_after_write(item_id):
            calls.append(item_id)
            if len(calls) == 2:
                raise PersistenceFailed("Get inventory item", "read timeout")
            return real_get(item_id)

        monkeypatch.setattr(store, "get_item", fail_after_write)
        with pytest.raises(InventoryUpdateFailed) as exc_info:
            ledger.apply_delta(stone.id, -2, REASON_SALE)

        assert exc_info.value.applied is True
        assert exc_info.value.to_detail()["applied"] is True
        assert reload(stone).quantity == 3

    def test_failed_first_read_applies_nothing(self, ledger, store, make_stone, reload, monkeypatch):
        stone = make_stone(quantity=5)

        def broken(item_id):
            raise PersistenceFailed("Get inventory item", "read timeout")

        monkeypatch.setattr(store, "get_item", broken)
        with pytest.raises(InventoryUpdateFailed) as exc_info:
            ledger.apply_delta(stone.id, -2, REASON_SALE)

        assert exc_info.value.applied is False
        assert reload(stone).quantity == 5


class TestStoreReads:

    @pytest.fixture
    def broken_session(self, db, monkeypatch):
        def lost_connection(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("server closed the connection"))

        monkeypatch.setattr(db, "query", lost_connection)
        return db

    def test_item_read_error_becomes_persistence_failed(self, store, broken_session):
        with pytest.raises(PersistenceFailed, match="server closed the connection") as exc_info:
            store.get_item(uuid4())
        assert exc_info.value.operation == "Get inventory item"

    def test_code_lookup_error_becomes_persistence_failed(self, store, broken_session):
        with pytest.raises(PersistenceFailed):
            store.get_item_by_code("RUBY-001")

    def test_sale_read_error_becomes_persistence_failed(self, broken_session):
        with pytest.raises(PersistenceFailed):
            SaleStore(broken_session).get_line_items(uuid4())

    def test_code_lookup_ignores_case(self, store, make_stone):
        stone = make_stone("RUBY-001")
        assert store.get_item_by_code("ruby-001").id == stone.id
        assert store.get_item_by_code("RUBY-002") is None

    def test_codes_differing_only_in_case_rejected(self, store, make_stone, db):
        make_stone("RUBY-001")
        with pytest.raises(IntegrityError):
            make_stone("ruby-001")
        db.rollback()
        assert store.get_item_by_code("Ruby-001").gem_code == "RUBY-001"
