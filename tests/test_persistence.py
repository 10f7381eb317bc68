"""
Tests for the local store and the state repositories

Covers load fallbacks, legacy migration, inline-image stripping,
save idempotence and quota handling.
"""

import json

import pytest

from tallyboard.models import (
    COUNTERS_STORAGE_KEY,
    DEFAULT_CATEGORY_NAME,
    INCOME_STORAGE_KEY,
    THEME_STORAGE_KEY,
    AuditEventType,
    Category,
    Counter,
    IncomeItem,
    IncomeRoot,
    InlineImage,
    PersistedRoot,
    Theme,
)
from tallyboard.services.storage import (
    InMemoryStore,
    JsonFileStore,
    QuotaExceededError,
    StorageError,
)
from tallyboard.services.storage.interface import entries_size
from tallyboard.state import (
    CounterStateRepository,
    IncomeStateRepository,
    StateChangeBus,
    ThemeRepository,
)
from tallyboard.state.repository import _JsonRootRepository


def _root() -> PersistedRoot:
    return PersistedRoot(
        categories=[Category(id=7, name="Daily")],
        counters=[
            Counter(id=1, name="a", value=3, max_value=5, category_id=7,
                    image="/assets/uploads/img_1_000001.png"),
            Counter(id=2, name="b", category_id=7),
        ],
    )


class TestInMemoryStore:
    """Tests for the dict-backed store."""

    def test_get_set_remove(self):
        store = InMemoryStore()
        assert store.get_item("k") is None
        store.set_item("k", "v")
        assert store.get_item("k") == "v"
        assert store.keys() == ["k"]
        store.remove_item("k")
        store.remove_item("k")
        assert store.get_item("k") is None

    def test_quota(self):
        store = InMemoryStore(quota_bytes=entries_size({"k": "12345"}))
        store.set_item("k", "12345")
        with pytest.raises(QuotaExceededError) as exc_info:
            store.set_item("k", "123456")
        assert exc_info.value.key == "k"
        assert store.get_item("k") == "12345"

    def test_entries_size_counts_utf16(self):
        assert entries_size({"a": "b"}) == 4
        assert entries_size({"k": "默认"}) == 6


class TestJsonFileStore:
    """Tests for the JSON file store."""

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "data" / "store.json"
        JsonFileStore(path).set_item("k", "v")
        assert JsonFileStore(path).get_item("k") == "v"
        assert json.loads(path.read_text(encoding="utf-8")) == {"k": "v"}

    def test_missing_file(self, tmp_path):
        store = JsonFileStore(tmp_path / "none.json")
        assert store.get_item("k") is None
        assert store.keys() == []

    def test_corrupted_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonFileStore(path)

        assert store.get_item("k") is None
        store.set_item("k", "v")
        assert store.get_item("k") == "v"

    def test_quota_leaves_file_untouched(self, tmp_path):
        path = tmp_path / "store.json"
        store = JsonFileStore(path, quota_bytes=20)
        store.set_item("k", "v")
        with pytest.raises(QuotaExceededError):
            store.set_item("k", "x" * 100)
        assert store.get_item("k") == "v"

    def test_remove(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        store.set_item("a", "1")
        store.set_item("b", "2")
        store.remove_item("a")
        assert store.keys() == ["b"]

    def test_no_temp_files_left(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        store.set_item("a", "1")
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]


class TestCounterStateRepository:
    """Tests for loading and saving the counters root."""

    def test_missing_key_is_empty_root(self, memory_store):
        root = CounterStateRepository(memory_store).load()
        assert root.categories == []
        assert root.counters == []

    @pytest.mark.parametrize("raw", ["{not json", "42", '"text"', '{"counters": [{"id": "x"}]}'])
    def test_unusable_data_is_empty_root(self, memory_store, raw):
        memory_store.set_item(COUNTERS_STORAGE_KEY, raw)
        root = CounterStateRepository(memory_store).load()
        assert root == PersistedRoot()

    def test_store_error_on_load_is_empty_root(self):
        class BrokenStore(InMemoryStore):
            def get_item(self, key):
                raise StorageError("disk gone")

        assert CounterStateRepository(BrokenStore()).load() == PersistedRoot()

    def test_legacy_array_migrates_in_memory(self, memory_store, audit_logger):
        legacy = json.dumps([{"id": 1, "name": "x", "value": 0}])
        memory_store.set_item(COUNTERS_STORAGE_KEY, legacy)

        root = CounterStateRepository(memory_store, audit_logger).load()

        assert len(root.categories) == 1
        assert root.categories[0].name == DEFAULT_CATEGORY_NAME
        assert len(root.counters) == 1
        assert root.counters[0].category_id == root.categories[0].id
        assert memory_store.get_item(COUNTERS_STORAGE_KEY) == legacy
        assert audit_logger.events[-1].event_type == AuditEventType.STATE_MIGRATED

    def test_save_then_load(self, memory_store):
        repository = CounterStateRepository(memory_store)
        assert repository.save(_root())
        assert repository.load() == _root()

    def test_save_load_save_is_idempotent(self, memory_store):
        repository = CounterStateRepository(memory_store)
        repository.save(_root())
        first = memory_store.get_item(COUNTERS_STORAGE_KEY)

        repository.save(repository.load())
        second = memory_store.get_item(COUNTERS_STORAGE_KEY)
        repository.save(repository.load())
        third = memory_store.get_item(COUNTERS_STORAGE_KEY)

        assert first == second == third

    def test_inline_image_saved_as_null(self, memory_store, audit_logger):
        root = PersistedRoot(
            categories=[Category(id=1, name="A")],
            counters=[Counter(id=1, name="x", category_id=1, image="data:image/png;base64,AAAA")],
        )
        before = root.model_copy(deep=True)

        assert CounterStateRepository(memory_store, audit_logger).save(root)

        stored = json.loads(memory_store.get_item(COUNTERS_STORAGE_KEY))
        assert stored["counters"][0]["image"] is None
        assert root == before
        assert isinstance(root.counters[0].image, InlineImage)
        assert AuditEventType.INLINE_IMAGE_DROPPED in [e.event_type for e in audit_logger.events]

    def test_quota_failure_returns_false(self, audit_logger):
        store = InMemoryStore(quota_bytes=10)
        repository = CounterStateRepository(store, audit_logger)

        assert repository.save(_root()) is False
        assert store.get_item(COUNTERS_STORAGE_KEY) is None
        assert audit_logger.events[-1].event_type == AuditEventType.SAVE_FAILED

    def test_written_layout(self, memory_store):
        CounterStateRepository(memory_store).save(_root())
        stored = json.loads(memory_store.get_item(COUNTERS_STORAGE_KEY))
        assert stored["counters"][0] == {
            "id": 1,
            "name": "a",
            "value": 3,
            "image": "/assets/uploads/img_1_000001.png",
            "maxValue": 5,
            "categoryId": 7,
        }


class TestIncomeStateRepository:
    """Tests for the income root."""

    def test_legacy_array(self, memory_store):
        memory_store.set_item(INCOME_STORAGE_KEY, json.dumps([{"id": 1, "name": "a", "price": 2, "qty": 3}]))
        root = IncomeStateRepository(memory_store).load()
        assert root.daily_gold_price == 0
        assert root.items[0].qty == 3

    def test_round_trip_with_inline_image(self, memory_store):
        repository = IncomeStateRepository(memory_store)
        root = IncomeRoot(
            items=[IncomeItem(id=1, name="a", price=1.5, qty=2, img="data:image/png;base64,AAAA")],
            daily_gold_price=600,
        )
        assert repository.save(root)

        loaded = repository.load()
        assert loaded.daily_gold_price == 600
        assert loaded.items[0].img is None
        assert isinstance(root.items[0].img, InlineImage)

    def test_missing_is_empty(self, memory_store):
        assert IncomeStateRepository(memory_store).load() == IncomeRoot()


class TestLenientLoading:
    """Tests that one odd record never costs the rest of the stored state."""

    def test_long_counter_name_keeps_other_counters(self, memory_store):
        memory_store.set_item(COUNTERS_STORAGE_KEY, json.dumps({
            "categories": [{"id": 7, "name": "Daily"}],
            "counters": [
                {"id": 1, "name": "a", "value": 2, "categoryId": 7},
                {"id": 2, "name": "x" * 101, "value": 0, "categoryId": 7},
            ],
        }))

        root = CounterStateRepository(memory_store).load()

        assert [c.id for c in root.counters] == [1, 2]
        assert root.counters[1].name == "x" * 101

    def test_broken_counter_is_skipped(self, memory_store, audit_logger):
        memory_store.set_item(COUNTERS_STORAGE_KEY, json.dumps({
            "categories": [{"id": 7, "name": "Daily"}],
            "counters": [
                {"id": 1, "name": "a", "value": 2, "categoryId": 7},
                {"id": 2, "name": "b", "value": -4, "categoryId": 7},
                "junk",
            ],
        }))

        root = CounterStateRepository(memory_store, audit_logger).load()

        assert [c.id for c in root.counters] == [1]
        assert [c.id for c in root.categories] == [7]
        event = audit_logger.events[-1]
        assert event.event_type == AuditEventType.STATE_RECORDS_SKIPPED
        assert event.details["skipped"] == {"counters": 2}

    def test_blank_and_fractional_income_items_load(self, memory_store):
        memory_store.set_item(INCOME_STORAGE_KEY, json.dumps({
            "items": [
                {"id": 1, "name": "gold", "price": 1, "qty": 2, "img": None},
                {"id": 2, "name": "", "price": 0.5, "qty": 1.5, "img": None},
            ],
            "dailyGoldPrice": 600,
        }))

        root = IncomeStateRepository(memory_store).load()

        assert [i.id for i in root.items] == [1, 2]
        assert root.items[1].name == ""
        assert root.items[1].qty == 2
        assert root.daily_gold_price == 600

    def test_bad_gold_price_defaults_and_keeps_items(self, memory_store):
        memory_store.set_item(INCOME_STORAGE_KEY, json.dumps({
            "items": [{"id": 1, "name": "gold", "price": 1, "qty": 2}],
            "dailyGoldPrice": -3,
        }))

        root = IncomeStateRepository(memory_store).load()

        assert root.daily_gold_price == 0
        assert len(root.items) == 1

    def test_resave_keeps_surviving_records(self, memory_store):
        memory_store.set_item(INCOME_STORAGE_KEY, json.dumps({
            "items": [{"id": 1, "name": "gold", "price": 1, "qty": 2}, {"id": "bad"}],
        }))
        repository = IncomeStateRepository(memory_store)

        assert repository.save(repository.load())

        stored = json.loads(memory_store.get_item(INCOME_STORAGE_KEY))
        assert [i["id"] for i in stored["items"]] == [1]

    def test_base_repository_is_abstract(self, memory_store):
        with pytest.raises(TypeError):
            _JsonRootRepository(memory_store)


class TestThemeRepository:
    """Tests for the theme preference."""

    def test_default_is_dark(self, memory_store):
        assert ThemeRepository(memory_store).load() == Theme.DARK

    def test_save_and_load(self, memory_store):
        themes = ThemeRepository(memory_store)
        assert themes.save(Theme.PURPLE)
        assert memory_store.get_item(THEME_STORAGE_KEY) == "purple"
        assert themes.load() == Theme.PURPLE

    def test_unknown_value_falls_back(self, memory_store):
        memory_store.set_item(THEME_STORAGE_KEY, "neon")
        assert ThemeRepository(memory_store).load() == Theme.DARK


class TestStateChangeBus:
    """Tests for the change signal."""

    def test_publisher_is_skipped(self):
        bus = StateChangeBus()
        a, b = object(), object()
        calls = []
        bus.subscribe(a, lambda source: calls.append(("a", source)))
        bus.subscribe(b, lambda source: calls.append(("b", source)))

        bus.publish(a)

        assert calls == [("b", a)]

    def test_unsubscribe(self):
        bus = StateChangeBus()
        calls = []
        unsubscribe = bus.subscribe(object(), calls.append)
        unsubscribe()
        unsubscribe()
        bus.publish(object())
        assert calls == []
        assert bus.subscriber_count == 0

    def test_failing_listener_does_not_stop_others(self):
        bus = StateChangeBus()
        calls = []

        def broken(source):
            raise RuntimeError("boom")

        bus.subscribe(object(), broken)
        bus.subscribe(object(), calls.append)
        bus.publish("src")
        assert calls == ["src"]
