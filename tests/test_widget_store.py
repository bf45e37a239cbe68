import json
import unittest

from dashtiles.adapters.storage_adapters.memory_adapter import InMemoryKeyValueAdapter
from dashtiles.core.widget_store import STORAGE_KEY, WidgetStateStore
from dashtiles.core.widgets import WidgetRecord, WidgetType
from dashtiles.tools.time_tools.engine import TimerEngine
from dashtiles.tools.time_tools.stopwatch import job_key
from dashtiles.utils.custom_exception import InputError, StorageError, WidgetNotFoundError

from fakes import BASE_MS, FakeClock, FlakyStorage


class TestWidgetStateStore(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.storage = FlakyStorage()
        self.engine = TimerEngine()
        self.clock = FakeClock()
        self.store = WidgetStateStore(self.storage, self.engine, clock=self.clock)

    def tearDown(self) -> None:
        self.engine.cancel_all()

    def persisted(self):
        return json.loads(self.storage.slots[STORAGE_KEY])

    async def test_load_absent_slot_is_empty(self) -> None:
        self.assertEqual(self.store.load(), [])

    async def test_load_malformed_blob_is_empty(self) -> None:
        for blob in ("{not json", '{"id": "1"}', "42"):
            self.storage.slots[STORAGE_KEY] = blob
            self.assertEqual(self.store.load(), [], blob)

    async def test_load_skips_bad_records(self) -> None:
        self.storage.slots[STORAGE_KEY] = json.dumps([
            {"id": "1", "title": "Ok", "type": "counter", "icon": "stats-chart", "data": {"value": 3}},
            {"id": "2", "type": "hologram"},
            {"id": "3", "type": "counter", "data": {"value": "many"}},
            {"id": "1", "title": "Dup", "type": "basic", "data": {}},
            "junk",
        ])
        records = self.store.load()
        self.assertEqual([r.id for r in records], ["1"])
        self.assertEqual(records[0].data.value, 3)

    async def test_load_skips_records_with_out_of_range_numbers(self) -> None:
        self.storage.slots[STORAGE_KEY] = (
            '[{"id": "1", "type": "counter", "data": {"value": Infinity}},'
            ' {"id": "2", "type": "notes", "data": {"content": "kept"}},'
            ' {"id": "3", "type": "stopwatch", "data": {"elapsedMs": -Infinity}}]'
        )
        records = self.store.load()
        self.assertEqual([r.id for r in records], ["2"])

    async def test_load_keeps_non_ascii_digit_ids(self) -> None:
        self.storage.slots[STORAGE_KEY] = json.dumps([
            {"id": "²", "type": "basic", "data": {"content": "squared"}},
        ])
        records = self.store.load()
        self.assertEqual([r.id for r in records], ["²"])
        self.assertEqual(self.store.create("basic").id, str(BASE_MS))

    async def test_load_only_true_means_running(self) -> None:
        self.storage.slots[STORAGE_KEY] = json.dumps([
            {"id": "1", "type": "stopwatch", "data": {"elapsedMs": 900, "isRunning": "false"}},
            {"id": "2", "type": "stopwatch", "data": {"elapsedMs": 900, "isRunning": 1}},
        ])
        records = self.store.load()
        self.assertEqual([r.data.is_running for r in records], [False, False])
        self.assertEqual(self.store.resume_running(), [])
        self.assertEqual(self.engine.active_keys(), [])

    async def test_create_appends_and_persists_in_order(self) -> None:
        notes = self.store.create("notes", "Groceries", "milk")
        counter = self.store.create(WidgetType.COUNTER, "  ")
        sw = self.store.create("stopwatch", "Run")

        self.assertEqual(counter.title, "My counter")
        self.assertEqual(sw.icon, "stopwatch")
        self.assertEqual([w["id"] for w in self.persisted()], [notes.id, counter.id, sw.id])
        self.assertEqual(self.persisted()[0]["data"], {"content": "milk"})
        self.assertEqual(self.persisted()[2]["data"]["elapsedMs"], 0)

    async def test_ids_are_strictly_increasing(self) -> None:
        first = self.store.create("basic")
        second = self.store.create("basic")
        self.clock.advance(5)
        third = self.store.create("basic")
        self.assertEqual(first.id, str(BASE_MS))
        self.assertEqual(second.id, str(BASE_MS + 1))
        self.assertEqual(third.id, str(BASE_MS + 5))

    async def test_ids_continue_after_loaded_records(self) -> None:
        self.store.create("basic")
        self.store.create("basic")
        reloaded = WidgetStateStore(self.storage, self.engine, clock=self.clock)
        reloaded.load()
        self.assertEqual(reloaded.create("basic").id, str(BASE_MS + 2))

    async def test_round_trip_through_storage(self) -> None:
        counter = self.store.create("counter")
        self.store.mutate(counter.id, "increment")
        reloaded = WidgetStateStore(self.storage, self.engine, clock=self.clock)
        records = reloaded.load()
        self.assertEqual(records[0].to_dict(), counter.to_dict())

    async def test_counter_operations(self) -> None:
        counter = self.store.create("counter")
        self.store.mutate(counter.id, "decrement")
        self.assertEqual(counter.data.value, 0)
        for _ in range(3):
            self.store.mutate(counter.id, "increment")
        self.store.mutate(counter.id, "decrement")
        self.assertEqual(self.persisted()[0]["data"]["value"], 2)
        self.store.mutate(counter.id, "reset")
        self.assertEqual(self.persisted()[0]["data"]["value"], 0)

    async def test_mutate_errors(self) -> None:
        notes = self.store.create("notes")
        counter = self.store.create("counter")
        with self.assertRaises(WidgetNotFoundError):
            self.store.mutate("nope", "increment")
        with self.assertRaises(InputError):
            self.store.mutate(notes.id, "increment")
        with self.assertRaises(InputError):
            self.store.mutate(counter.id, "double")

    async def test_update_content(self) -> None:
        notes = self.store.create("notes", content="a")
        self.store.update_content(notes.id, "b")
        self.assertEqual(self.persisted()[0]["data"]["content"], "b")
        counter = self.store.create("counter")
        with self.assertRaises(InputError):
            self.store.update_content(counter.id, "x")

    async def test_remove_unknown_id_changes_nothing(self) -> None:
        self.store.create("notes", content="keep")
        blob = self.storage.slots[STORAGE_KEY]
        writes = self.storage.writes
        self.assertFalse(self.store.remove("missing"))
        self.assertEqual(len(self.store), 1)
        self.assertEqual(self.storage.slots[STORAGE_KEY], blob)
        self.assertEqual(self.storage.writes, writes)

    async def test_remove_running_stopwatch_cancels_its_job(self) -> None:
        sw = self.store.create("stopwatch")
        self.store.stopwatch(sw.id).start()
        self.assertTrue(self.engine.is_active(job_key(sw.id)))
        self.assertTrue(self.store.remove(sw.id))
        self.assertEqual(self.engine.active_keys(), [])
        self.assertEqual(self.persisted(), [])

    async def test_stopwatch_driver_is_cached(self) -> None:
        sw = self.store.create("stopwatch")
        self.assertIs(self.store.stopwatch(sw.id), self.store.stopwatch(sw.id))
        notes = self.store.create("notes")
        with self.assertRaises(InputError):
            self.store.stopwatch(notes.id)

    async def test_save_with_records_rebinds_stopwatches(self) -> None:
        sw = self.store.create("stopwatch")
        old_driver = self.store.stopwatch(sw.id)
        old_driver.start()

        replacement = [WidgetRecord.from_dict(w) for w in self.persisted()]
        self.store.save(replacement)

        driver = self.store.stopwatch(sw.id)
        self.assertIsNot(driver, old_driver)
        self.assertIs(driver.widget, replacement[0])
        self.assertTrue(self.engine.is_active(job_key(sw.id)))
        self.clock.advance(1_500)
        driver.stop()
        self.assertEqual(self.persisted()[0]["data"]["elapsedMs"], 1_500)
        self.assertEqual(self.engine.active_keys(), [])

    async def test_resume_running_after_load(self) -> None:
        sw = self.store.create("stopwatch")
        self.store.stopwatch(sw.id).start()
        self.clock.advance(2_000)
        self.engine.cancel_all()

        reloaded = WidgetStateStore(self.storage, self.engine, clock=self.clock)
        reloaded.load()
        self.assertEqual(reloaded.resume_running(), [sw.id])
        self.assertTrue(self.engine.is_active(job_key(sw.id)))
        self.assertEqual(reloaded.get(sw.id).data.elapsed_ms, 2_000)

    async def test_save_failure_keeps_memory_state(self) -> None:
        counter = self.store.create("counter")
        self.storage.failing = True
        with self.assertRaises(StorageError):
            self.store.mutate(counter.id, "increment")
        self.assertEqual(self.store.get(counter.id).data.value, 1)
        self.assertEqual(self.persisted()[0]["data"]["value"], 0)

        self.storage.failing = False
        self.store.save()
        self.assertEqual(self.persisted()[0]["data"]["value"], 1)

    async def test_load_survives_unreadable_storage(self) -> None:
        class Unreadable(InMemoryKeyValueAdapter):
            def get(self, key):
                raise StorageError("locked")

        store = WidgetStateStore(Unreadable(), self.engine, clock=self.clock)
        self.assertEqual(store.load(), [])


if __name__ == "__main__":
    unittest.main()
