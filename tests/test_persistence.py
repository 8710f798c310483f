import json
import unittest

from domain.errors import UnpersistableRecord
from domain.item_collection import ItemCollection, RecordEditor
from domain.persistence import persist, to_storage_record
from domain.record_store import RecordStoreError
from domain.templates import RequestKind
from domain.validator import parse
from infrastructure.memory_store import InMemoryRecordStore


def _hoodie_response(drop_chest=False, drop_name=False):
    item = {
        "itemName": "Team Hoodie",
        "category": "hoodie",
        "designDetails": "Embroidered crest",
        "fabricType": "Fleece",
        "colorDisplay": "Blue",
        "colorHex": "#457b9d",
        "yardagePerUnit": 2.0,
        "expectedQuantity": 20,
        "priceEstimate": 39.99,
        "measurements": {
            "small": {"bodyLength": 26, "chest": 40, "shoulder": 17, "sleeve": 25},
            "medium": {"bodyLength": 27, "chest": 42, "shoulder": 18, "sleeve": 26},
            "large": {"bodyLength": 28, "chest": 44, "shoulder": 19, "sleeve": 27},
        },
    }
    if drop_chest:
        del item["measurements"]["large"]["chest"]
    if drop_name:
        del item["itemName"]
    return json.dumps({"items": [item]})


class StorageMappingTestCase(unittest.TestCase):
    def test_clean_item_mapping(self) -> None:
        result = parse(RequestKind.ITEM_EXTRACTION, _hoodie_response())
        [record] = to_storage_record(result, actor_id=7)

        self.assertEqual(record["item_name"], "Team Hoodie")
        self.assertEqual(record["created_by"], 7)
        self.assertEqual(record["measurement_schema_id"], 4)
        self.assertEqual(record["manufacturing_specs"]["recommended_printer"], "EmbroideryPro Inc.")
        self.assertFalse(record["requires_review"])
        self.assertEqual(record["review_flags"], [])

    def test_non_blocking_flag_is_carried(self) -> None:
        result = parse(RequestKind.ITEM_EXTRACTION, _hoodie_response(drop_chest=True))
        [record] = to_storage_record(result, actor_id=None)

        self.assertTrue(record["requires_review"])
        self.assertEqual(record["measurements"]["large"]["chest"], 0)
        self.assertIn("items[0].measurements.large.chest", [f["path"] for f in record["review_flags"]])
        self.assertIsNone(record["created_by"])

    def test_blocking_flag_is_unpersistable(self) -> None:
        result = parse(RequestKind.ITEM_EXTRACTION, _hoodie_response(drop_name=True))
        with self.assertRaises(UnpersistableRecord) as ctx:
            to_storage_record(result, actor_id=1)
        self.assertEqual(ctx.exception.fields, ["items[0].itemName"])

    def test_context_columns_are_merged(self) -> None:
        result = parse(RequestKind.COMPATIBILITY, '{"compatible": true, "reasons": ["ok"]}')
        [record] = to_storage_record(result, actor_id=3, context={"production_method": "sublimation"})
        self.assertEqual(record["production_method"], "sublimation")
        self.assertIsNone(record["alternatives"])
        self.assertTrue(record["compatible"])


class EditedSnapshotTestCase(unittest.TestCase):
    def test_compatibility_flag_survives_editor_snapshot(self) -> None:
        result = parse(RequestKind.COMPATIBILITY, '{"compatible": false, "reasons": ["too thin"]}')
        editor = RecordEditor()
        editor.load(result.record, result.review_flags)

        [record] = to_storage_record(editor.snapshot(), "u1")
        self.assertTrue(record["requires_review"])
        self.assertEqual([f["path"] for f in record["review_flags"]], ["alternatives"])
        self.assertEqual(record["alternatives"], [])

        editor.edit("alternatives", ["Polyester"])
        [record] = to_storage_record(editor.snapshot(), "u1")
        self.assertFalse(record["requires_review"])

    def test_item_flags_follow_their_line(self) -> None:
        payload = json.loads(_hoodie_response(drop_chest=True))
        payload["items"].insert(0, dict(payload["items"][0], itemName="First", measurements={}))
        result = parse(RequestKind.ITEM_EXTRACTION, json.dumps(payload))
        collection = ItemCollection()
        collection.load(result.records, result.review_flags)

        collection.remove(0)
        records = to_storage_record(collection.snapshot(), actor_id=2)

        self.assertEqual(len(records), 1)
        self.assertTrue(records[0]["requires_review"])
        self.assertIn("items[0].measurements.large.chest", [f["path"] for f in records[0]["review_flags"]])

        collection.edit_measurement(0, "large", "chest", 44)
        [record] = to_storage_record(collection.snapshot(), actor_id=2)
        self.assertEqual(record["review_flags"], [])


class PersistTestCase(unittest.TestCase):
    def test_persist_creates_one_record_per_item(self) -> None:
        store = InMemoryRecordStore()
        payload = json.loads(_hoodie_response())
        payload["items"].append(dict(payload["items"][0], itemName="Second Hoodie"))
        result = parse(RequestKind.ITEM_EXTRACTION, json.dumps(payload))

        ids = persist(store, result, actor_id="user-1")
        self.assertEqual(len(ids), 2)
        self.assertEqual(store.get("parsed_item", ids[1])["item_name"], "Second Hoodie")
        self.assertEqual(len(store.all("parsed_item")), 2)

    def test_unpersistable_leaves_store_untouched(self) -> None:
        store = InMemoryRecordStore()
        result = parse(RequestKind.ITEM_EXTRACTION, _hoodie_response(drop_name=True))
        with self.assertRaises(UnpersistableRecord):
            persist(store, result, actor_id=1)
        self.assertEqual(store.all("parsed_item"), [])

    def test_failed_create_removes_records_already_created(self) -> None:
        class FlakyStore(InMemoryRecordStore):
            def __init__(self):
                super().__init__()
                self.calls = 0

            def create(self, kind, record):
                self.calls += 1
                if self.calls == 2:
                    raise RecordStoreError("disk full")
                return super().create(kind, record)

        store = FlakyStore()
        payload = json.loads(_hoodie_response())
        payload["items"].append(dict(payload["items"][0], itemName="Second Hoodie"))
        result = parse(RequestKind.ITEM_EXTRACTION, json.dumps(payload))

        with self.assertRaises(RecordStoreError):
            persist(store, result, actor_id=1)
        self.assertEqual(store.all("parsed_item"), [])

    def test_store_get_and_delete(self) -> None:
        store = InMemoryRecordStore()
        record_id = store.create("fabric_research", {"fabric_type": "Cotton"})
        store.delete("fabric_research", record_id)
        with self.assertRaises(RecordStoreError):
            store.get("fabric_research", record_id)


if __name__ == "__main__":
    unittest.main()
