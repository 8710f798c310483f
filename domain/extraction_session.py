# domain/extraction_session.py

"""
Orchestration d'une extraction : construction -> envoi (avec retry) -> parsing
-> chargement dans la collection / l'éditeur.

Une seule extraction en vol par session. L'annulation abandonne la réponse
en attente et laisse la collection inchangée.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from domain.ai_provider import TextGenerationGateway
from domain.ai_status import ResultStatus
from domain.errors import GenerationError, InvalidRequest, MalformedResponse, PipelineError
from domain.item_collection import ItemCollection, RecordEditor
from domain.keyword_fallback import fallback_items
from domain.models import ValidatedResult
from domain.request_builder import GenerationRequest, build
from domain.retry_policy import RetryPolicy, Sleep, call_with_retry
from domain.templates import RequestKind
from domain.validator import parse

logger = logging.getLogger(__name__)


@dataclass
class ExtractionOutcome:
    """Issue d'un run : statut + résultat validé (si disponible) + erreur éventuelle."""

    status: ResultStatus
    result: Optional[ValidatedResult] = None
    error: Optional[PipelineError] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.result is not None and self.status in (
            ResultStatus.OK,
            ResultStatus.NEEDS_REVIEW,
            ResultStatus.FALLBACK_USED,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status.value, "attempts": self.attempts}
        if self.result is not None:
            data.update(self.result.to_dict())
        if self.error is not None:
            data["error"] = str(self.error)
        return data


class ExtractionSession:
    """
    Session d'extraction liée à une passerelle de génération.

    Les résultats d'articles vont dans `collection`, les enregistrements
    uniques (recherche, compatibilité, suggestion) dans `editor`.
    """

    def __init__(
        self,
        gateway: TextGenerationGateway,
        collection: Optional[ItemCollection] = None,
        editor: Optional[RecordEditor] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
        keyword_fallback: bool = False,
    ) -> None:
        self._gateway = gateway
        self.collection = collection if collection is not None else ItemCollection()
        self.editor = editor if editor is not None else RecordEditor()
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._keyword_fallback = keyword_fallback
        self._task: Optional[asyncio.Task] = None
        self._cancel_requested = False

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # API publique
    # ------------------------------------------------------------------

    async def run(
        self,
        kind: Union[RequestKind, str],
        params: Optional[Mapping[str, Any]],
    ) -> ExtractionOutcome:
        """
        Exécute une extraction complète. Ne lève pas pour les erreurs
        fonctionnelles : elles sont rendues dans ExtractionOutcome.
        """
        try:
            request = build(kind, params)
        except InvalidRequest as exc:
            logger.error("Requête invalide: %s", exc)
            return ExtractionOutcome(status=exc.status, error=exc)

        if self.pending:
            exc = InvalidRequest("Une extraction est déjà en cours sur cette session.")
            logger.warning("%s", exc)
            return ExtractionOutcome(status=exc.status, error=exc)

        attempts = 0

        async def send() -> str:
            nonlocal attempts
            attempts += 1
            logger.debug(
                "Envoi %s via %s (tentative %d).",
                request.kind.value,
                self._gateway.name.value,
                attempts,
            )
            return await self._gateway.send(request)

        async def pipeline() -> ValidatedResult:
            raw_text = await call_with_retry(send, self._policy, sleep=self._sleep)
            return parse(request.kind, raw_text, request=request)

        self._cancel_requested = False
        self._task = asyncio.create_task(pipeline())
        try:
            result = await self._task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            logger.info("Extraction %s annulée (collection inchangée).", request.kind.value)
            return ExtractionOutcome(status=ResultStatus.CANCELLED, attempts=attempts)
        except PipelineError as exc:
            return self._on_failure(request, exc, attempts)
        finally:
            self._task = None

        self._apply(result)
        status = ResultStatus.OK if result.is_clean else ResultStatus.NEEDS_REVIEW
        logger.info(
            "Extraction %s terminée: %s (%d tentative(s)).",
            request.kind.value,
            status.value,
            attempts,
        )
        return ExtractionOutcome(status=status, result=result, attempts=attempts)

    def cancel(self) -> bool:
        """Abandonne l'extraction en cours. Retourne False s'il n'y en a aucune."""
        if not self.pending:
            return False
        self._cancel_requested = True
        self._task.cancel()
        return True

    # ------------------------------------------------------------------
    # Interne
    # ------------------------------------------------------------------

    def _apply(self, result: ValidatedResult) -> None:
        if result.kind is RequestKind.ITEM_EXTRACTION:
            self.collection.load(result.records, result.review_flags)
        else:
            self.editor.load(result.record, result.review_flags)

    def _on_failure(
        self,
        request: GenerationRequest,
        exc: PipelineError,
        attempts: int,
    ) -> ExtractionOutcome:
        logger.error(
            "Extraction %s en échec: %s (%s).",
            request.kind.value,
            exc,
            exc.status.value,
        )
        if isinstance(exc, MalformedResponse) and exc.raw_text:
            logger.debug("Texte brut de la réponse rejetée: %r", exc.raw_text[:2000])

        use_fallback = (
            self._keyword_fallback
            and request.kind is RequestKind.ITEM_EXTRACTION
            and isinstance(exc, (GenerationError, MalformedResponse))
        )
        if not use_fallback:
            return ExtractionOutcome(status=exc.status, error=exc, attempts=attempts)

        result = fallback_items(request.params.get("freeText", ""))
        self._apply(result)
        return ExtractionOutcome(
            status=ResultStatus.FALLBACK_USED,
            result=result,
            error=exc,
            attempts=attempts,
        )
