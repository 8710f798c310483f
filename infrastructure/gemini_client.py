# infrastructure/gemini_client.py

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from config.settings import Settings
from domain.ai_provider import DEFAULT_TIMEOUT_SECONDS, AIProviderName, TextGenerationGateway
from domain.errors import GenerationError, GenerationTimeout, RateLimited
from domain.request_builder import GenerationRequest

logger = logging.getLogger(__name__)


class GeminiTextGateway(TextGenerationGateway):
    """
    Passerelle vers Google Gemini (texte seul).

    IMPORTANT :
    - On NE demande PAS de structured output via response_schema.
    - Le contrat JSON est porté par l'instruction ; le parsing est fait
      en aval par domain.validator.
    """

    def __init__(self, settings: Settings, timeout: float | None = None) -> None:
        logger.debug("Initialisation GeminiTextGateway...")
        if not settings.gemini_api_key:
            raise GenerationError("GEMINI_API_KEY absente.")

        genai.configure(api_key=settings.gemini_api_key)
        self._model_name = self._normalize_model_name(settings.gemini_model)
        self._timeout = timeout or settings.generation_timeout or DEFAULT_TIMEOUT_SECONDS

        logger.info(
            "GeminiTextGateway initialisée (model=%s, timeout=%.0fs).",
            self._model_name,
            self._timeout,
        )

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def name(self) -> AIProviderName:
        return AIProviderName.GEMINI

    # ------------------------------------------------------------------
    # Normalisation du nom de modèle
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize_model_name(model_name: str) -> str:
        """
        Gemini attend le préfixe "models/". Si seul le nom court est fourni
        (ex: "gemini-2.5-flash"), on le préfixe automatiquement.
        """
        cleaned = (model_name or "").strip()
        if not cleaned:
            raise GenerationError("Nom de modèle Gemini manquant ou vide.")

        if not cleaned.startswith("models/"):
            logger.debug("Nom de modèle Gemini sans préfixe 'models/': %s. Préfixage automatique.", cleaned)
            cleaned = f"models/{cleaned}"

        return cleaned

    # ------------------------------------------------------------------
    # Appel API Gemini
    # ------------------------------------------------------------------

    def _generation_config(self, request: GenerationRequest) -> Dict[str, Any]:
        return {
            "temperature": request.temperature,
            "max_output_tokens": request.max_output_tokens,
            "top_p": 0.9,
        }

    async def send(self, request: GenerationRequest) -> str:
        logger.debug(
            "Appel API Gemini (model=%s, kind=%s, instruction=%d chars)...",
            self._model_name,
            request.kind.value,
            len(request.user_instruction),
        )

        model = genai.GenerativeModel(
            self._model_name,
            system_instruction=request.system_instruction,
        )

        try:
            response = await asyncio.wait_for(
                model.generate_content_async(
                    contents=[request.user_instruction],
                    generation_config=self._generation_config(request),
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Timeout Gemini après %.0fs.", self._timeout)
            raise GenerationTimeout(f"Timeout API Gemini ({self._timeout:.0f}s).") from exc
        except google_exceptions.DeadlineExceeded as exc:
            logger.error("Deadline Gemini dépassée: %s", exc)
            raise GenerationTimeout(f"Deadline API Gemini dépassée: {exc}") from exc
        except (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests) as exc:
            logger.warning("Quota Gemini atteint: %s", exc)
            raise RateLimited(f"Quota API Gemini atteint: {exc}") from exc
        except google_exceptions.GoogleAPIError as exc:
            logger.error("Erreur API Gemini: %s", exc)
            raise GenerationError(f"Erreur API Gemini: {exc}") from exc
        except Exception as exc:
            logger.exception("Erreur inattendue appel API Gemini.")
            raise GenerationError(f"Erreur API Gemini: {exc}") from exc

        try:
            text = response.text
        except ValueError as exc:
            # Réponse bloquée ou sans candidat
            logger.error("Réponse Gemini sans texte exploitable: %s", exc)
            raise GenerationError(f"Réponse Gemini inexploitable: {exc}") from exc

        if not text or not text.strip():
            raise GenerationError("Réponse Gemini vide (text=None ou '').")

        logger.debug("Gemini brut (%d chars): %s", len(text), text[:400])
        return text
