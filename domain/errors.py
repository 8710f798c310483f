# domain/errors.py

"""
Exceptions fonctionnelles du pipeline d'extraction.

Chaque exception porte un ResultStatus pour que l'appelant (session, API HTTP)
puisse décider : retry avec backoff, remontée à l'utilisateur, ou rejet.
"""

from __future__ import annotations

from typing import Optional, Sequence

from domain.ai_status import ResultStatus


class PipelineError(RuntimeError):
    """Base de toutes les erreurs fonctionnelles du pipeline."""

    status: ResultStatus = ResultStatus.GENERATION_ERROR

    @property
    def retryable(self) -> bool:
        return self.status in (ResultStatus.GENERATION_TIMEOUT, ResultStatus.RATE_LIMITED)


class InvalidRequest(PipelineError):
    """Paramètres manquants ou invalides côté appelant (jamais retenté)."""

    status = ResultStatus.INVALID_REQUEST


class GenerationError(PipelineError):
    """Erreur non transitoire du service de génération de texte."""

    status = ResultStatus.GENERATION_ERROR


class GenerationTimeout(GenerationError):
    """Le service de génération n'a pas répondu dans le délai imparti."""

    status = ResultStatus.GENERATION_TIMEOUT


class RateLimited(GenerationError):
    """Le service de génération a refusé l'appel pour quota / HTTP 429."""

    status = ResultStatus.RATE_LIMITED


class MalformedResponse(PipelineError):
    """
    Réponse impossible à décoder structurellement.
    Le texte brut est conservé pour diagnostic.
    """

    status = ResultStatus.MALFORMED_RESPONSE

    def __init__(self, message: str, raw_text: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class UnpersistableRecord(PipelineError):
    """Des drapeaux bloquants empêchent la persistance (champs fautifs listés)."""

    status = ResultStatus.UNPERSISTABLE

    def __init__(self, message: str, fields: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.fields = list(fields)
