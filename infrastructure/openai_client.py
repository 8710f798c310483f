# infrastructure/openai_client.py

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

import requests

from config.settings import Settings
from domain.ai_provider import DEFAULT_TIMEOUT_SECONDS, AIProviderName, TextGenerationGateway
from domain.errors import GenerationError, GenerationTimeout, RateLimited
from domain.request_builder import GenerationRequest

logger = logging.getLogger(__name__)

OPENAI_ENDPOINT = "https://api.openai.com/v1/chat/completions"


class OpenAITextGateway(TextGenerationGateway):
    """
    Passerelle vers OpenAI chat/completions (ex. gpt-4o-mini).

    L'appel HTTP est synchrone (requests) et exécuté dans un thread
    pour ne pas bloquer la boucle asyncio.
    """

    def __init__(self, settings: Settings, timeout: float | None = None) -> None:
        logger.debug("Initialisation OpenAITextGateway...")
        if not settings.openai_api_key:
            raise GenerationError("OPENAI_API_KEY absente.")

        self.api_key = settings.openai_api_key
        self.model = settings.openai_model
        self.endpoint = OPENAI_ENDPOINT
        self.timeout = timeout or settings.generation_timeout or DEFAULT_TIMEOUT_SECONDS

        logger.info("OpenAITextGateway initialisée (model=%s, timeout=%.0fs).", self.model, self.timeout)

    @property
    def name(self) -> AIProviderName:
        return AIProviderName.OPENAI

    # ------------------------------------------------------------------
    # Méthode principale
    # ------------------------------------------------------------------

    async def send(self, request: GenerationRequest) -> str:
        payload = self._build_payload(request)
        response_json = await asyncio.to_thread(self._call_api, payload)
        return self._extract_text(response_json)

    # ------------------------------------------------------------------
    # Construction du payload
    # ------------------------------------------------------------------

    def _build_payload(self, request: GenerationRequest) -> Dict[str, Any]:
        """
        Payload /v1/chat/completions :
        - message système : contrat de rôle
        - message user : instruction + description des champs
        - response_format json_object (OpenAI formate la sortie en JSON)
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": request.system_instruction},
                {"role": "user", "content": request.user_instruction},
            ],
            "temperature": request.temperature,
            "max_tokens": request.max_output_tokens,
        }
        logger.debug(
            "Payload OpenAI construit (kind=%s, model=%s, max_tokens=%d).",
            request.kind.value,
            self.model,
            request.max_output_tokens,
        )
        return payload

    # ------------------------------------------------------------------
    # Appel HTTP
    # ------------------------------------------------------------------

    def _call_api(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug("Appel API OpenAI...")
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = requests.post(
                self.endpoint,
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as exc:
            logger.error("Timeout OpenAI après %.0fs.", self.timeout)
            raise GenerationTimeout(f"Timeout API OpenAI ({self.timeout:.0f}s).") from exc
        except requests.exceptions.RequestException as exc:
            logger.exception("Erreur réseau OpenAI.")
            raise GenerationError(f"Erreur réseau: {exc}") from exc

        if response.status_code == 429:
            logger.warning("Quota OpenAI atteint (HTTP 429): %s", response.text[:400])
            raise RateLimited(f"Quota API OpenAI atteint (HTTP 429): {response.text[:400]}")

        if not response.ok:
            logger.error("Erreur HTTP OpenAI (%d): %s", response.status_code, response.text[:400])
            raise GenerationError(f"Erreur API OpenAI (HTTP {response.status_code}): {response.text[:400]}")

        try:
            r_json = response.json()
        except ValueError as exc:
            raise GenerationError(f"Réponse HTTP OpenAI non JSON: {exc}") from exc

        logger.debug("OpenAI réponse reçue (tronc.): %s", str(r_json)[:400])
        return r_json

    # ------------------------------------------------------------------
    # Extraction du texte généré
    # ------------------------------------------------------------------

    def _extract_text(self, api_response: Dict[str, Any]) -> str:
        """chat/completions -> choices[0].message.content"""
        choices = api_response.get("choices")
        if not choices:
            raise GenerationError("Réponse vide OpenAI (pas de choices).")

        message = choices[0].get("message")
        if not message:
            raise GenerationError("Réponse OpenAI sans message.")

        content = message.get("content")
        if not content or not str(content).strip():
            raise GenerationError("Réponse OpenAI sans content.")

        logger.debug("Texte brut OpenAI (%d chars).", len(content))
        return content
