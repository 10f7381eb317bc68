"""Tests for the income ledger controller."""

import json

import pytest

from tallyboard.domain import (
    ConfirmationRequiredError,
    IncomeItemNotFoundError,
    IncomeLedgerController,
    ValidationFailedError,
)
from tallyboard.models import DEFAULT_ITEM_NAME, INCOME_STORAGE_KEY, AuditEventType, StoredImage
from tallyboard.state import IncomeStateRepository


@pytest.fixture
def ledger(memory_store, in_process_store, audit_logger, clock):
    return IncomeLedgerController(
        IncomeStateRepository(memory_store),
        in_process_store,
        audit_logger=audit_logger,
        clock=clock,
    )


class TestItems:
    """Tests for adding, editing and removing items."""

    def test_add_defaults(self, ledger, clock):
        item = ledger.add_item()
        assert item.name == DEFAULT_ITEM_NAME
        assert item.price == 0
        assert item.qty == 0
        assert item.id == int(clock.now * 1000)

    def test_add_persists(self, ledger, memory_store):
        ledger.add_item("Gold bar", price=1.5, qty=2)
        stored = json.loads(memory_store.get_item(INCOME_STORAGE_KEY))
        assert stored["items"][0] == {"id": stored["items"][0]["id"], "name": "Gold bar",
                                      "price": 1.5, "qty": 2, "img": None}

    @pytest.mark.parametrize("name, price, qty", [
        ("", 1, 1),
        ("x", -1, 1),
        ("x", 1, -1),
        ("x", 1, 1.5),
        ("x", "1", 1),
    ])
    def test_add_rejects_bad_input(self, ledger, name, price, qty):
        with pytest.raises(ValidationFailedError):
            ledger.add_item(name, price=price, qty=qty)
        assert ledger.items == []

    def test_update_patches_only_given_fields(self, ledger):
        item = ledger.add_item("a", price=2, qty=3)
        ledger.update_item(item.id, price=4)
        updated = ledger.get_item(item.id)
        assert (updated.name, updated.price, updated.qty) == ("a", 4, 3)

    def test_update_rejects_without_mutating(self, ledger):
        item = ledger.add_item("a", price=2, qty=3)
        with pytest.raises(ValidationFailedError):
            ledger.update_item(item.id, name="b", qty=-1)
        assert ledger.get_item(item.id).name == "a"

    def test_update_replacing_image_deletes_old(self, ledger, in_process_store, png_bytes):
        saved = in_process_store.save_image("a.png", png_bytes)
        item = ledger.add_item("a", img=saved.url)

        ledger.update_item(item.id, img=StoredImage(reference="/assets/uploads/other.png"))

        assert not in_process_store.local_store.safe_path(saved.filename).exists()

    def test_remove_deletes_stored_image(self, ledger, in_process_store, png_bytes, audit_logger):
        saved = in_process_store.save_image("a.png", png_bytes)
        item = ledger.add_item("a", img=saved.url)

        assert ledger.remove_item(item.id, confirm=True) is True
        assert ledger.items == []
        assert audit_logger.events[-1].event_type == AuditEventType.INCOME_ITEM_DELETED

    def test_remove_with_missing_file_still_removes(self, ledger):
        item = ledger.add_item("a", img="/assets/uploads/gone.png")
        assert ledger.remove_item(item.id, confirm=True) is False
        assert ledger.items == []

    def test_remove_unconfirmed_keeps_item_and_file(self, ledger, in_process_store, png_bytes):
        saved = in_process_store.save_image("a.png", png_bytes)
        item = ledger.add_item("a", img=saved.url)

        with pytest.raises(ConfirmationRequiredError):
            ledger.remove_item(item.id)

        assert [i.id for i in ledger.items] == [item.id]
        assert in_process_store.local_store.safe_path(saved.filename).exists()

    def test_unknown_item(self, ledger):
        with pytest.raises(IncomeItemNotFoundError):
            ledger.increment_qty(404)


class TestQuantities:
    """Tests for quantity buttons and resets."""

    def test_increment_and_clamped_decrement(self, ledger):
        item = ledger.add_item("a")
        ledger.increment_qty(item.id)
        ledger.decrement_qty(item.id)
        ledger.decrement_qty(item.id)
        assert ledger.get_item(item.id).qty == 0

    def test_reset_all_qty(self, ledger, clock):
        a = ledger.add_item("a", qty=3)
        clock.advance()
        b = ledger.add_item("b", qty=5)
        with pytest.raises(ConfirmationRequiredError):
            ledger.reset_all_qty()
        assert ledger.reset_all_qty(confirm=True) == 2
        assert ledger.get_item(a.id).qty == 0
        assert ledger.get_item(b.id).qty == 0

    def test_clear_all(self, ledger, clock, memory_store):
        ledger.add_item("a")
        clock.advance()
        ledger.add_item("b")
        with pytest.raises(ConfirmationRequiredError):
            ledger.clear_all()
        assert ledger.clear_all(confirm=True) == 2
        assert json.loads(memory_store.get_item(INCOME_STORAGE_KEY))["items"] == []


class TestQueries:
    """Tests for search and totals."""

    def test_search_is_case_insensitive(self, ledger, clock):
        ledger.add_item("Gold Bar")
        clock.advance()
        ledger.add_item("silver coin")
        assert [i.name for i in ledger.search("gold")] == ["Gold Bar"]
        assert [i.name for i in ledger.search("  COIN ")] == ["silver coin"]
        assert len(ledger.search("")) == 2
        assert len(ledger.search(None)) == 2

    def test_totals(self, ledger, clock):
        ledger.add_item("a", price=1.5, qty=2)
        clock.advance()
        ledger.add_item("b", price=0.5, qty=2)
        ledger.set_daily_gold_price(300)

        totals = ledger.totals()
        assert totals.total_wan == 4.0
        assert totals.total_amount == 40_000
        assert totals.total_by_gold == 1_200

    def test_gold_price_rejects_negative(self, ledger):
        with pytest.raises(ValidationFailedError):
            ledger.set_daily_gold_price(-1)
        assert ledger.daily_gold_price == 0

    def test_gold_price_persists(self, ledger, memory_store):
        ledger.set_daily_gold_price(512.5)
        assert json.loads(memory_store.get_item(INCOME_STORAGE_KEY))["dailyGoldPrice"] == 512.5
