import json

from aiohttp.test_utils import AioHTTPTestCase

from domain.ai_provider import AIProviderName, TextGenerationGateway
from domain.errors import GenerationTimeout, RateLimited
from domain.retry_policy import RetryPolicy
from infrastructure.api_server import ApiServer
from infrastructure.memory_store import InMemoryRecordStore

ITEM = {
    "itemName": "Team Shirt",
    "category": "shirt",
    "designDetails": "Screen print",
    "fabricType": "Cotton",
    "colorDisplay": "Red",
    "colorHex": "#e63946",
    "yardagePerUnit": 1.2,
    "expectedQuantity": 40,
    "priceEstimate": 18.99,
    "measurements": {
        "small": {"bodyLength": 27, "chest": 38, "shoulder": 16, "sleeve": 8},
        "medium": {"bodyLength": 28, "chest": 40, "shoulder": 17, "sleeve": 8.5},
    },
}


class ScriptedGateway(TextGenerationGateway):
    def __init__(self):
        self.responses = []

    @property
    def name(self) -> AIProviderName:
        return AIProviderName.OPENAI

    async def send(self, request):
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class ApiServerTestCase(AioHTTPTestCase):
    async def get_application(self):
        self.gateway = ScriptedGateway()
        self.store = InMemoryRecordStore()
        self.server = ApiServer(
            gateway=self.gateway,
            store=self.store,
            policy=RetryPolicy(max_attempts=2, base_delay=0.0),
        )
        return self.server.create_app()

    async def test_status(self):
        resp = await self.client.get("/status")
        self.assertEqual(resp.status, 200)
        body = await resp.json()
        self.assertEqual(body["provider"], "openai")
        self.assertIn("hoodie", body["categories"])
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")

    async def test_parse_items(self):
        self.gateway.responses.append("```json\n" + json.dumps({"items": [ITEM]}) + "\n```")
        resp = await self.client.post("/api/ai/parseItems", json={"clientNotes": "40 red shirts, screen print"})

        self.assertEqual(resp.status, 200)
        body = await resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["data"]["items"][0]["itemName"], "Team Shirt")
        self.assertEqual(body["reviewFlags"], [])

    async def test_parse_items_requires_notes(self):
        resp = await self.client.post("/api/ai/parseItems", json={})
        self.assertEqual(resp.status, 400)
        self.assertEqual((await resp.json())["status"], "invalid_request")

    async def test_invalid_json_body(self):
        resp = await self.client.post(
            "/api/fabric-research",
            data="{not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(resp.status, 400)

    async def test_error_mapping(self):
        self.gateway.responses.extend([RateLimited("429"), RateLimited("429 again")])
        resp = await self.client.post(
            "/api/fabric-compatibility-analysis",
            json={"fabricType": "Nylon", "productionMethod": "sublimation"},
        )
        self.assertEqual(resp.status, 429)

        self.gateway.responses.extend([GenerationTimeout("slow"), GenerationTimeout("slow")])
        resp = await self.client.post("/api/fabric-research", json={"fabricType": "Wool"})
        self.assertEqual(resp.status, 504)

        self.gateway.responses.append("no json here")
        resp = await self.client.post(
            "/api/fabric-suggestions",
            json={"productType": "jacket", "properties": ["warm"], "pricePoint": "premium"},
        )
        self.assertEqual(resp.status, 502)
        self.assertEqual((await resp.json())["status"], "malformed_response")

    async def test_compatibility_needs_review(self):
        self.gateway.responses.append('{"compatible": false, "reasons": ["Nylon melts at sublimation heat"]}')
        resp = await self.client.post(
            "/api/fabric-compatibility-analysis",
            json={"fabricType": "Nylon", "productionMethod": "sublimation"},
        )
        self.assertEqual(resp.status, 200)
        body = await resp.json()
        self.assertEqual(body["status"], "needs_review")
        self.assertEqual(body["data"]["alternatives"], [])

    async def test_persist_records(self):
        resp = await self.client.post("/api/records/parsed_item", json={"data": {"items": [ITEM]}, "actorId": 12})
        self.assertEqual(resp.status, 201)
        body = await resp.json()
        self.assertEqual(len(body["ids"]), 1)
        stored = self.store.get("parsed_item", body["ids"][0])
        self.assertEqual(stored["created_by"], 12)
        self.assertEqual(stored["measurement_schema_id"], 3)

    async def test_persist_blocking_flag_is_422(self):
        unnamed = dict(ITEM, itemName="")
        resp = await self.client.post("/api/records/item_extraction", json={"data": {"items": [unnamed]}})
        self.assertEqual(resp.status, 422)
        body = await resp.json()
        self.assertEqual(body["fields"], ["items[0].itemName"])
        self.assertEqual(self.store.all("parsed_item"), [])

    async def test_persist_keeps_client_review_flags(self):
        flags = [{"path": "alternatives", "reason": "alternatives absentes", "blocking": False}]
        resp = await self.client.post(
            "/api/records/fabric_compatibility",
            json={"data": {"compatible": False, "reasons": ["too thin"], "alternatives": []}, "reviewFlags": flags},
        )
        self.assertEqual(resp.status, 201)
        body = await resp.json()
        stored = self.store.get("fabric_compatibility", body["ids"][0])
        self.assertTrue(stored["requires_review"])
        self.assertEqual([f["path"] for f in stored["review_flags"]], ["alternatives"])

        resp = await self.client.post(
            "/api/records/fabric_compatibility",
            json={"data": {"compatible": True, "reasons": ["ok"]}, "reviewFlags": "none"},
        )
        self.assertEqual(resp.status, 400)

    async def test_persist_unknown_kind(self):
        resp = await self.client.post("/api/records/poems", json={"data": {}})
        self.assertEqual(resp.status, 400)

    async def test_cors_preflight(self):
        resp = await self.client.options("/api/ai/parseItems")
        self.assertEqual(resp.status, 204)
        self.assertIn("POST", resp.headers["Access-Control-Allow-Methods"])
