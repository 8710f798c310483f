import json
import unittest

from domain.errors import MalformedResponse
from domain.request_builder import build
from domain.templates import RequestKind
from domain.validator import parse, validate_payload


def _hoodie(**overrides):
    item = {
        "itemName": "Team Hoodie",
        "category": "hoodie",
        "designDetails": "Small logo on chest",
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
    item.update(overrides)
    return item


def _research(**overrides):
    record = {
        "fabricType": "Cotton",
        "description": "Natural cellulose fibre.",
        "composition": ["100% cotton"],
        "properties": [{"name": "Breathability", "value": "High", "description": "Air flow"}],
        "applications": ["T-shirts"],
        "manufacturingCosts": [
            {"region": "Asia", "baseUnitCost": 2.5, "minOrderQuantity": 500, "currency": "USD", "leadTime": "4 weeks"}
        ],
        "sustainabilityInfo": {
            "environmentalImpact": "High water usage",
            "recyclability": "Good",
            "certifications": ["GOTS"],
        },
        "careInstructions": ["Machine wash cold"],
        "alternatives": ["Linen"],
        "sources": ["Textile Exchange"],
    }
    record.update(overrides)
    return record


def _fabric(**overrides):
    fabric = {
        "name": "Recycled Polyester",
        "description": "Made from PET bottles",
        "primaryUse": "Activewear",
        "bestFor": "Running",
        "composition": "100% rPET",
        "weight": "140 gsm",
        "care": "Cold wash",
        "propertyRatings": {"breathable": 4, "stretch": 3},
        "costRating": 3,
        "availabilityRating": 4,
        "durabilityRating": 4,
        "sustainabilityRating": 5,
        "recyclability": 4,
        "waterUsage": 2,
        "considerations": "Microfibre shedding",
    }
    fabric.update(overrides)
    return fabric


def _paths(result):
    return [f.path for f in result.review_flags]


class ItemValidationTestCase(unittest.TestCase):
    def test_clean_hoodie_has_no_flags(self) -> None:
        result = parse(RequestKind.ITEM_EXTRACTION, json.dumps({"items": [_hoodie()]}))
        self.assertTrue(result.is_clean, _paths(result))
        item = result.record
        self.assertEqual(item.category, "hoodie")
        self.assertEqual(set(item.measurements), {"small", "medium", "large"})
        for grid in item.measurements.values():
            self.assertEqual(list(grid), ["bodyLength", "chest", "shoulder", "sleeve"])
        self.assertFalse(item.requires_review)

    def test_round_trip_yields_same_record(self) -> None:
        first = parse(RequestKind.ITEM_EXTRACTION, json.dumps({"items": [_hoodie()]}))
        second = parse(RequestKind.ITEM_EXTRACTION, json.dumps(first.to_dict()["data"]))
        self.assertEqual(first.records, second.records)
        self.assertTrue(second.is_clean)

    def test_missing_chest_is_zero_filled_and_flagged(self) -> None:
        item = _hoodie()
        del item["measurements"]["large"]["chest"]
        result = parse(RequestKind.ITEM_EXTRACTION, json.dumps({"items": [item]}))

        parsed = result.record
        self.assertEqual(parsed.measurements["large"]["chest"], 0)
        self.assertTrue(parsed.requires_review)
        self.assertIn("items[0].measurements.large.chest", _paths(result))
        self.assertFalse(result.blocking_flags)

    def test_missing_item_name_is_blocking(self) -> None:
        item = _hoodie()
        del item["itemName"]
        result = parse(RequestKind.ITEM_EXTRACTION, json.dumps({"items": [item]}))
        self.assertEqual([f.path for f in result.blocking_flags], ["items[0].itemName"])
        self.assertEqual(len(result.records), 1)

    def test_unknown_category_becomes_generic(self) -> None:
        item = _hoodie(category="cape", measurements={"one": {"height": 10, "width": 4}})
        result = parse(RequestKind.ITEM_EXTRACTION, json.dumps({"items": [item]}))
        self.assertEqual(result.record.category, "generic")
        self.assertIn("items[0].category", _paths(result))

    def test_missing_grid_gets_default_sizes(self) -> None:
        result = parse(RequestKind.ITEM_EXTRACTION, json.dumps({"items": [_hoodie(measurements=None)]}))
        self.assertEqual(set(result.record.measurements), {"small", "medium", "large"})
        self.assertIn("items[0].measurements", _paths(result))

    def test_lenient_coercions_are_flagged(self) -> None:
        item = _hoodie(colorHex="blue-ish", yardagePerUnit=0, priceEstimate=None, expectedQuantity="12")
        item["measurements"]["small"]["sleeve"] = "25.5"
        item["measurements"]["medium"]["sleeve"] = "long"
        result = parse(RequestKind.ITEM_EXTRACTION, json.dumps({"items": [item]}))
        parsed = result.record

        self.assertEqual(parsed.color_hex, "#457b9d")
        self.assertEqual(parsed.yardage_per_unit, 1.0)
        self.assertEqual(parsed.expected_quantity, 12)
        self.assertEqual(parsed.price_estimate, 39.99)
        self.assertEqual(parsed.measurements["small"]["sleeve"], 25.5)
        self.assertEqual(parsed.measurements["medium"]["sleeve"], 0.0)
        paths = _paths(result)
        for expected in (
            "items[0].colorHex",
            "items[0].yardagePerUnit",
            "items[0].priceEstimate",
            "items[0].measurements.medium.sleeve",
        ):
            self.assertIn(expected, paths)
        self.assertNotIn("items[0].measurements.small.sleeve", paths)

    def test_bare_array_and_single_item_are_accepted(self) -> None:
        self.assertEqual(len(parse(RequestKind.ITEM_EXTRACTION, json.dumps([_hoodie(), _hoodie()])).records), 2)
        self.assertEqual(len(parse(RequestKind.ITEM_EXTRACTION, json.dumps(_hoodie())).records), 1)

    def test_unusable_roots_are_malformed(self) -> None:
        for raw in ('{"items": []}', '{"foo": 1}', "not json at all"):
            with self.assertRaises(MalformedResponse):
                parse(RequestKind.ITEM_EXTRACTION, raw)

    def test_flags_are_per_item(self) -> None:
        broken = _hoodie()
        del broken["measurements"]["small"]["shoulder"]
        result = parse(RequestKind.ITEM_EXTRACTION, json.dumps({"items": [_hoodie(), broken]}))
        self.assertFalse(result.records[0].requires_review)
        self.assertTrue(result.records[1].requires_review)


class ResearchValidationTestCase(unittest.TestCase):
    def test_complete_research_is_clean(self) -> None:
        request = build(RequestKind.FABRIC_RESEARCH, {"fabricType": "Cotton", "sustainabilityFocus": True})
        result = parse(RequestKind.FABRIC_RESEARCH, json.dumps(_research()), request=request)
        self.assertTrue(result.is_clean, _paths(result))
        self.assertEqual(result.record.manufacturing_costs[0].min_order_quantity, 500)

    def test_missing_description_is_blocking(self) -> None:
        result = validate_payload(RequestKind.FABRIC_RESEARCH, _research(description=""))
        self.assertEqual([f.path for f in result.blocking_flags], ["description"])

    def test_requested_section_left_empty_is_flagged(self) -> None:
        request = build(RequestKind.FABRIC_RESEARCH, {"fabricType": "Cotton", "detailLevel": "comprehensive"})
        result = validate_payload(RequestKind.FABRIC_RESEARCH, _research(sources=[]), request=request)
        self.assertIn("sources", _paths(result))
        self.assertFalse(result.blocking_flags)

    def test_basic_level_does_not_require_sources(self) -> None:
        request = build(RequestKind.FABRIC_RESEARCH, {"fabricType": "Cotton", "detailLevel": "basic"})
        result = validate_payload(RequestKind.FABRIC_RESEARCH, _research(sources=[]), request=request)
        self.assertTrue(result.is_clean, _paths(result))

    def test_absent_sections_are_filled_empty(self) -> None:
        payload = _research()
        del payload["careInstructions"]
        del payload["sustainabilityInfo"]
        result = validate_payload(RequestKind.FABRIC_RESEARCH, payload)
        self.assertEqual(result.record.care_instructions, [])
        self.assertTrue(result.record.sustainability_info.is_empty())
        self.assertIn("careInstructions", _paths(result))

    def test_region_without_matching_cost_is_flagged(self) -> None:
        request = build(RequestKind.FABRIC_RESEARCH, {"fabricType": "Cotton", "region": "Europe"})
        result = validate_payload(RequestKind.FABRIC_RESEARCH, _research(), request=request)
        self.assertIn("manufacturingCosts", _paths(result))

    def test_array_root_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponse):
            parse(RequestKind.FABRIC_RESEARCH, "[1, 2]")


class CompatibilityValidationTestCase(unittest.TestCase):
    def test_incompatible_without_alternatives(self) -> None:
        result = parse(RequestKind.COMPATIBILITY, '{"compatible": false, "reasons": ["Melts under heat"]}')
        self.assertIs(result.record.compatible, False)
        self.assertEqual(result.record.alternatives, [])
        self.assertIn("alternatives", _paths(result))
        self.assertFalse(result.blocking_flags)

    def test_compatible_drops_alternatives(self) -> None:
        result = parse(
            RequestKind.COMPATIBILITY,
            '{"compatible": true, "reasons": ["fine"], "alternatives": ["Cotton"]}',
        )
        self.assertIsNone(result.record.alternatives)
        self.assertNotIn("alternatives", result.to_dict()["data"])

    def test_clean_incompatible_verdict(self) -> None:
        result = parse(
            RequestKind.COMPATIBILITY,
            '{"compatible": false, "reasons": ["Nylon melts"], "alternatives": ["Polyester"]}',
        )
        self.assertTrue(result.is_clean)

    def test_missing_verdict_is_blocking(self) -> None:
        result = parse(RequestKind.COMPATIBILITY, '{"reasons": ["unsure"]}')
        self.assertEqual([f.path for f in result.blocking_flags], ["compatible"])

    def test_string_verdict_is_coerced_with_flag(self) -> None:
        result = parse(RequestKind.COMPATIBILITY, '{"compatible": "true", "reasons": ["ok"]}')
        self.assertIs(result.record.compatible, True)
        self.assertIn("compatible", _paths(result))
        self.assertFalse(result.blocking_flags)


class SuggestionValidationTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.request = build(
            RequestKind.SUGGESTION,
            {"productType": "running shorts", "properties": ["breathable", "stretch"], "pricePoint": "mid-range"},
        )

    def _payload(self, *fabrics):
        return {"productType": "running shorts", "recommendedFabrics": list(fabrics), "notes": ""}

    def test_clean_suggestion(self) -> None:
        result = validate_payload(RequestKind.SUGGESTION, self._payload(_fabric()), request=self.request)
        self.assertTrue(result.is_clean, _paths(result))
        self.assertEqual(result.record.recommended_fabrics[0].ratings["waterUsage"], 2)

    def test_ratings_are_clamped(self) -> None:
        result = validate_payload(
            RequestKind.SUGGESTION,
            self._payload(_fabric(costRating=7, waterUsage=0)),
            request=self.request,
        )
        ratings = result.record.recommended_fabrics[0].ratings
        self.assertEqual(ratings["costRating"], 5)
        self.assertEqual(ratings["waterUsage"], 1)
        self.assertIn("recommendedFabrics[0].costRating", _paths(result))
        self.assertFalse(result.blocking_flags)

    def test_unrated_requested_property_is_flagged(self) -> None:
        result = validate_payload(
            RequestKind.SUGGESTION,
            self._payload(_fabric(propertyRatings={"breathable": 5})),
            request=self.request,
        )
        self.assertIn("recommendedFabrics[0].propertyRatings.stretch", _paths(result))

    def test_empty_recommendations_are_blocking(self) -> None:
        result = validate_payload(RequestKind.SUGGESTION, self._payload(), request=self.request)
        self.assertEqual([f.path for f in result.blocking_flags], ["recommendedFabrics"])

    def test_order_is_preserved(self) -> None:
        result = validate_payload(
            RequestKind.SUGGESTION,
            self._payload(_fabric(name="First"), _fabric(name="Second")),
            request=self.request,
        )
        self.assertEqual([f.name for f in result.record.recommended_fabrics], ["First", "Second"])


if __name__ == "__main__":
    unittest.main()
