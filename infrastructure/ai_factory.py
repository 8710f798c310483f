# infrastructure/ai_factory.py

from __future__ import annotations

import logging
from typing import Dict

from config.settings import Settings
from domain.ai_provider import AIProviderName, TextGenerationGateway
from domain.errors import GenerationError
from infrastructure.gemini_client import GeminiTextGateway
from infrastructure.openai_client import OpenAITextGateway

logger = logging.getLogger(__name__)

# Ordre de préférence pour la passerelle par défaut
PREFERRED_ORDER = (AIProviderName.GEMINI, AIProviderName.OPENAI)


def build_gateways(settings: Settings) -> Dict[AIProviderName, TextGenerationGateway]:
    """
    Instancie les passerelles de génération disponibles selon les clés définies.

    Si aucune n'a pu être construite, loggue et retourne un dict vide.
    """
    gateways: Dict[AIProviderName, TextGenerationGateway] = {}

    if settings.gemini_api_key:
        try:
            gateways[AIProviderName.GEMINI] = GeminiTextGateway(settings)
            logger.info("Passerelle Gemini initialisée.")
        except GenerationError as exc:
            logger.error("Impossible d'initialiser Gemini: %s", exc)

    if settings.openai_api_key:
        try:
            gateways[AIProviderName.OPENAI] = OpenAITextGateway(settings)
            logger.info("Passerelle OpenAI initialisée.")
        except GenerationError as exc:
            logger.error("Impossible d'initialiser OpenAI: %s", exc)

    if not gateways:
        logger.critical("Aucune passerelle de génération disponible.")
    else:
        logger.debug("Passerelles disponibles: %s", [name.value for name in gateways])

    return gateways


def default_gateway(gateways: Dict[AIProviderName, TextGenerationGateway]) -> TextGenerationGateway:
    """Première passerelle disponible selon PREFERRED_ORDER."""
    for name in PREFERRED_ORDER:
        if name in gateways:
            return gateways[name]
    raise GenerationError("Aucune passerelle de génération disponible.")
