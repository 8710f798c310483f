import unittest

from domain.item_collection import ItemCollection, RecordEditor, merge_measurements, new_item
from domain.models import CompatibilityResult, FabricResearchRecord, ParsedItem
from domain.templates import RequestKind


def _pants() -> ParsedItem:
    return ParsedItem(
        item_name="Team Pants",
        category="pants",
        fabric_type="Poly-cotton blend",
        yardage_per_unit=1.8,
        expected_quantity=10,
        price_estimate=32.99,
        measurements={
            "small": {"outseam": 40, "waist": 30, "inseam": 31, "rise": 10, "hip": 38},
            "xl": {"outseam": 43, "waist": 36, "inseam": 34, "rise": 11.5, "hip": 44},
        },
    )


class MergeEngineTestCase(unittest.TestCase):
    def test_shared_fields_kept_new_fields_zeroed(self) -> None:
        merged = merge_measurements(_pants().measurements, "shorts")
        self.assertEqual(merged["small"], {"outseam": 40.0, "waist": 30.0, "hip": 38.0})

        merged = merge_measurements(_pants().measurements, "shirt")
        self.assertEqual(merged["xl"], {"bodyLength": 0.0, "chest": 0.0, "shoulder": 0.0, "sleeve": 0.0})

    def test_all_sizes_are_kept(self) -> None:
        merged = merge_measurements(_pants().measurements, "generic")
        self.assertEqual(set(merged), {"small", "xl"})

    def test_empty_grid_gets_default_sizes(self) -> None:
        self.assertEqual(set(merge_measurements({}, "hoodie")), {"small", "medium", "large"})


class ItemCollectionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.collection = ItemCollection([_pants()])

    def test_new_item_defaults(self) -> None:
        index = self.collection.add()
        item = self.collection.get(index)
        self.assertEqual(index, 1)
        self.assertEqual(item.item_name, "New Item")
        self.assertEqual(item.category, "generic")
        self.assertEqual(item.color_hex, "#cccccc")
        self.assertEqual(set(item.measurements), {"small", "medium", "large"})
        self.assertTrue(item.requires_review)
        self.assertEqual(new_item().fabric_type, "To be specified")

    def test_total_yardage_recomputed(self) -> None:
        self.assertAlmostEqual(self.collection.total_yardage(0), 18.0)
        self.collection.edit(0, "expectedQuantity", 20)
        self.assertAlmostEqual(self.collection.total_yardage(0), 36.0)
        self.assertAlmostEqual(self.collection.total_yardage(0), 36.0)
        self.assertAlmostEqual(self.collection.to_view()[0]["totalYardage"], 36.0)

    def test_total_yardage_is_not_editable(self) -> None:
        with self.assertRaises(ValueError):
            self.collection.edit(0, "totalYardage", 99)

    def test_invalid_measurement_does_not_write(self) -> None:
        before = self.collection.get(0)
        with self.assertRaises(ValueError):
            self.collection.edit_measurement(0, "small", "waist", "thirty")
        self.assertEqual(self.collection.get(0), before)

    def test_invalid_field_values_rejected(self) -> None:
        for field, value in (
            ("yardagePerUnit", 0),
            ("expectedQuantity", 0),
            ("priceEstimate", -1),
            ("colorHex", "not-a-colour"),
        ):
            with self.assertRaises(ValueError, msg=field):
                self.collection.edit(0, field, value)
        self.assertEqual(self.collection.get(0), _pants())

    def test_category_change_does_not_reshape_until_merge(self) -> None:
        self.collection.edit(0, "category", "shorts")
        self.assertIn("inseam", self.collection.get(0).measurements["small"])

        merged = self.collection.merge_category_fields(0)
        self.assertEqual(merged.measurements["small"], {"outseam": 40.0, "waist": 30.0, "hip": 38.0})

    def test_change_category_merges(self) -> None:
        item = self.collection.change_category(0, "shirt")
        self.assertEqual(item.category, "shirt")
        self.assertEqual(list(item.measurements["small"]), ["bodyLength", "chest", "shoulder", "sleeve"])

    def test_remove_keeps_sequence_dense(self) -> None:
        self.collection.add()
        self.collection.add()
        self.collection.remove(1)
        self.assertEqual(len(self.collection), 2)
        with self.assertRaises(IndexError):
            self.collection.get(2)

    def test_edits_work_on_copies(self) -> None:
        item = self.collection.get(0)
        item.item_name = "mutated outside"
        self.assertEqual(self.collection.get(0).item_name, "Team Pants")

    def test_snapshot_revalidates(self) -> None:
        self.collection.edit(0, "itemName", "")
        snapshot = self.collection.snapshot()
        self.assertEqual([f.path for f in snapshot.blocking_flags], ["items[0].itemName"])

        self.collection.edit(0, "itemName", "Warm-Up Pants")
        self.assertFalse(self.collection.snapshot().blocking_flags)

    def test_requires_review_strict_boolean(self) -> None:
        with self.assertRaises(ValueError):
            self.collection.edit(0, "requiresReview", "false")
        self.collection.edit(0, "requiresReview", True)
        self.assertTrue(self.collection.get(0).requires_review)

    def test_new_size_gets_full_category_grid(self) -> None:
        hoodie = ParsedItem(
            item_name="Hoodie",
            category="hoodie",
            measurements={"small": {"bodyLength": 26, "chest": 40, "shoulder": 17, "sleeve": 25}},
        )
        collection = ItemCollection([hoodie])

        item = collection.edit_measurement(0, "xl", "chest", 22)

        self.assertEqual(item.measurements["xl"], {"bodyLength": 0.0, "chest": 22.0, "shoulder": 0.0, "sleeve": 0.0})
        self.assertEqual(item.measurements["small"]["chest"], 40)
        self.assertEqual(collection.snapshot().review_flags, [])

    def test_listeners_notified(self) -> None:
        seen = []
        self.collection.subscribe(lambda collection: seen.append(len(collection)))
        self.collection.add()
        self.collection.remove(0)
        self.assertEqual(seen, [2, 1])


class RecordEditorTestCase(unittest.TestCase):
    def test_compatible_true_clears_alternatives(self) -> None:
        editor = RecordEditor()
        editor.load(CompatibilityResult(compatible=False, reasons=["melts"], alternatives=["Polyester"]))
        self.assertIs(editor.kind, RequestKind.COMPATIBILITY)

        editor.edit("compatible", True)
        self.assertIsNone(editor.record.alternatives)

        editor.edit("compatible", False)
        self.assertEqual(editor.record.alternatives, [])

    def test_type_checks(self) -> None:
        editor = RecordEditor()
        editor.load(FabricResearchRecord(fabric_type="Cotton", description="desc"))
        with self.assertRaises(ValueError):
            editor.edit("composition", "100% cotton")
        with self.assertRaises(ValueError):
            editor.edit("unknown", "x")

        editor.edit("description", "")
        self.assertEqual([f.path for f in editor.snapshot().blocking_flags], ["description"])

    def test_empty_editor(self) -> None:
        editor = RecordEditor()
        with self.assertRaises(ValueError):
            editor.snapshot()


if __name__ == "__main__":
    unittest.main()
