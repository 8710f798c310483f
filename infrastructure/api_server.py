# infrastructure/api_server.py
"""
Serveur HTTP (aiohttp) exposant le pipeline d'extraction.

Endpoints:
- GET  /status                            : diagnostic
- POST /api/ai/parseItems                 : notes client -> lignes d'articles
- POST /api/fabric-research               : fiche de recherche tissu
- POST /api/fabric-compatibility-analysis : verdict de compatibilité
- POST /api/fabric-suggestions            : tissus recommandés
- POST /api/records/{kind}                : revalidation + persistance d'un résultat édité

Chaque requête de génération utilise sa propre ExtractionSession.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from aiohttp import web

from config.log_config import SUCCESS_LEVEL
from domain.ai_provider import TextGenerationGateway
from domain.ai_status import ResultStatus
from domain.categories import list_categories
from domain.errors import InvalidRequest, MalformedResponse, PipelineError
from domain.extraction_session import ExtractionOutcome, ExtractionSession
from domain.models import ReviewFlag, ValidatedResult
from domain.persistence import STORAGE_KINDS, persist
from domain.record_store import RecordStore, RecordStoreError
from domain.request_builder import resolve_kind
from domain.retry_policy import RetryPolicy
from domain.templates import RequestKind
from domain.validator import merge_flags, validate_payload

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

# Statut fonctionnel -> code HTTP
HTTP_STATUS: Dict[ResultStatus, int] = {
    ResultStatus.OK: 200,
    ResultStatus.NEEDS_REVIEW: 200,
    ResultStatus.FALLBACK_USED: 200,
    ResultStatus.INVALID_REQUEST: 400,
    ResultStatus.MALFORMED_RESPONSE: 502,
    ResultStatus.GENERATION_ERROR: 502,
    ResultStatus.RATE_LIMITED: 429,
    ResultStatus.GENERATION_TIMEOUT: 504,
    ResultStatus.UNPERSISTABLE: 422,
    ResultStatus.CANCELLED: 409,
}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Accept",
}

_STORAGE_TO_KIND = {name: kind for kind, name in STORAGE_KINDS.items()}


def _error_response(exc: PipelineError) -> web.Response:
    body: Dict[str, Any] = {"error": str(exc), "status": exc.status.value}
    fields = getattr(exc, "fields", None)
    if fields:
        body["fields"] = fields
    return web.json_response(body, status=HTTP_STATUS.get(exc.status, 500))


def _outcome_response(outcome: ExtractionOutcome) -> web.Response:
    if outcome.error is not None and not outcome.ok:
        return _error_response(outcome.error)
    return web.json_response(outcome.to_dict(), status=HTTP_STATUS[outcome.status])


def _resolve_record_kind(raw: str) -> RequestKind:
    if raw in _STORAGE_TO_KIND:
        return _STORAGE_TO_KIND[raw]
    return resolve_kind(raw)


@dataclass
class ApiServer:
    """
    Application HTTP du pipeline.

    Utilisation :
        server = ApiServer(gateway=gateway, store=store)
        server.run()  # bloquant, jusqu'à Ctrl+C
    """

    gateway: TextGenerationGateway
    store: RecordStore
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    keyword_fallback: bool = False
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    _runner: Optional[web.AppRunner] = None
    _stop_event: Optional[asyncio.Event] = None

    def new_session(self) -> ExtractionSession:
        return ExtractionSession(
            self.gateway,
            policy=self.policy,
            keyword_fallback=self.keyword_fallback,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _json_body(request: web.Request) -> Dict[str, Any]:
        try:
            body = await request.json()
        except json.JSONDecodeError as exc:
            raise InvalidRequest(f"Corps JSON invalide: {exc}") from exc
        if not isinstance(body, dict):
            raise InvalidRequest("Le corps de la requête doit être un objet JSON.")
        return body

    @staticmethod
    def _review_flags(raw: Any) -> List[ReviewFlag]:
        """reviewFlags renvoyés par le client (issus d'une extraction précédente)."""
        if raw is None:
            return []
        if not isinstance(raw, list) or not all(isinstance(entry, dict) for entry in raw):
            raise InvalidRequest("Champ 'reviewFlags' invalide (liste d'objets attendue).")
        try:
            return [ReviewFlag.from_dict(entry) for entry in raw]
        except ValueError as exc:
            raise InvalidRequest(str(exc)) from exc

    async def _run_extraction(self, kind: RequestKind, params: Mapping[str, Any]) -> web.Response:
        outcome = await self.new_session().run(kind, params)
        logger.info(
            "%s -> %s (tentatives=%d)",
            kind.value,
            outcome.status.value,
            outcome.attempts,
        )
        return _outcome_response(outcome)

    # ------------------------------------------------------------------
    # Handlers HTTP
    # ------------------------------------------------------------------

    async def _handle_status(self, request: web.Request) -> web.Response:
        """GET /status - Diagnostic du serveur."""
        return web.json_response({
            "status": "ok",
            "service": "Apparel Extraction API",
            "provider": self.gateway.name.value,
            "port": self.port,
            "keywordFallback": self.keyword_fallback,
            "categories": list_categories(),
        })

    async def _handle_parse_items(self, request: web.Request) -> web.Response:
        """POST /api/ai/parseItems - {clientNotes: str}"""
        body = await self._json_body(request)
        notes = body.get("clientNotes", body.get("freeText"))
        logger.debug("parseItems: %d caractère(s) de notes.", len(notes) if isinstance(notes, str) else 0)
        return await self._run_extraction(RequestKind.ITEM_EXTRACTION, {"freeText": notes})

    async def _handle_fabric_research(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        return await self._run_extraction(RequestKind.FABRIC_RESEARCH, body)

    async def _handle_compatibility(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        return await self._run_extraction(RequestKind.COMPATIBILITY, body)

    async def _handle_suggestions(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        return await self._run_extraction(RequestKind.SUGGESTION, body)

    async def _handle_persist(self, request: web.Request) -> web.Response:
        """
        POST /api/records/{kind} - {data: ..., actorId?: ..., context?: {...}, reviewFlags?: [...]}

        Le résultat (éventuellement édité) est revalidé avant persistance :
        un drapeau bloquant donne 422 avec la liste des champs fautifs.
        Les reviewFlags non bloquants renvoyés par le client sont conservés.
        """
        kind = _resolve_record_kind(request.match_info["kind"])
        body = await self._json_body(request)
        if "data" not in body:
            raise InvalidRequest("Champ 'data' manquant.")

        context = body.get("context")
        if context is not None and not isinstance(context, dict):
            raise InvalidRequest("Champ 'context' invalide (objet attendu).")

        carried = self._review_flags(body.get("reviewFlags"))

        try:
            result = validate_payload(kind, body["data"])
        except MalformedResponse as exc:
            raise InvalidRequest(f"Données {kind.value} inexploitables: {exc}") from exc
        result = ValidatedResult(
            kind=result.kind,
            records=result.records,
            review_flags=merge_flags(result.review_flags, carried),
        )

        ids = persist(self.store, result, body.get("actorId"), context)
        return web.json_response(
            {
                "kind": STORAGE_KINDS[kind],
                "ids": ids,
                "reviewFlags": [f.to_dict() for f in result.review_flags],
            },
            status=201,
        )

    async def _handle_cors_preflight(self, request: web.Request) -> web.Response:
        """Gère les requêtes OPTIONS pour CORS."""
        return web.Response(status=204, headers=CORS_HEADERS)

    # ------------------------------------------------------------------
    # Middlewares
    # ------------------------------------------------------------------

    @web.middleware
    async def _cors_middleware(self, request: web.Request, handler: Handler) -> web.StreamResponse:
        """Ajoute les headers CORS à toutes les réponses."""
        if request.method == "OPTIONS":
            return await self._handle_cors_preflight(request)

        response = await handler(request)
        response.headers.update(CORS_HEADERS)
        return response

    @web.middleware
    async def _error_middleware(self, request: web.Request, handler: Handler) -> web.StreamResponse:
        """Erreurs fonctionnelles -> JSON + code HTTP ; inattendues -> 500."""
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except PipelineError as exc:
            logger.warning("%s %s -> %s: %s", request.method, request.path, exc.status.value, exc)
            return _error_response(exc)
        except RecordStoreError as exc:
            logger.error("Erreur stockage sur %s: %s", request.path, exc)
            return web.json_response({"error": str(exc), "status": "storage_error"}, status=503)
        except Exception as exc:
            logger.exception("Erreur inattendue sur %s %s.", request.method, request.path)
            return web.json_response({"error": f"Erreur interne: {exc}"}, status=500)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_app(self) -> web.Application:
        """Crée l'application aiohttp avec les routes."""
        app = web.Application(middlewares=[self._cors_middleware, self._error_middleware])
        app.router.add_get("/status", self._handle_status)
        app.router.add_post("/api/ai/parseItems", self._handle_parse_items)
        app.router.add_post("/api/fabric-research", self._handle_fabric_research)
        app.router.add_post("/api/fabric-compatibility-analysis", self._handle_compatibility)
        app.router.add_post("/api/fabric-suggestions", self._handle_suggestions)
        app.router.add_post("/api/records/{kind}", self._handle_persist)
        app.router.add_route("OPTIONS", "/{tail:.*}", self._handle_cors_preflight)
        return app

    async def serve(self) -> None:
        """Lance le serveur HTTP jusqu'à stop()."""
        app = self.create_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()

        self._stop_event = asyncio.Event()
        logger.log(SUCCESS_LEVEL, "Serveur HTTP démarré sur http://%s:%d", self.host, self.port)

        try:
            await self._stop_event.wait()
        finally:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Serveur HTTP arrêté")

    def stop(self) -> None:
        """Demande l'arrêt du serveur (depuis la boucle du serveur)."""
        if self._stop_event is not None:
            self._stop_event.set()

    def run(self) -> None:
        """Point d'entrée bloquant."""
        asyncio.run(self.serve())
