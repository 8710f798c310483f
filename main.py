# main.py

from __future__ import annotations

import logging
import sys

from config.log_config import setup_logging
from config.settings import load_settings
from domain.retry_policy import RetryPolicy
from infrastructure.ai_factory import build_gateways, default_gateway
from infrastructure.api_server import ApiServer
from infrastructure.memory_store import InMemoryRecordStore


def main() -> None:
    """
    Point d'entrée principal de l'application.

    - Initialise le logging
    - Charge la configuration (Settings)
    - Construit les passerelles de génération (Gemini / OpenAI)
    - Lance le serveur HTTP
    """
    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    setup_logging(logging.DEBUG)
    logger = logging.getLogger(__name__)
    logger.info("Démarrage du service d'extraction vêtements / tissus.")

    # ------------------------------------------------------------------
    # Chargement Settings
    # ------------------------------------------------------------------
    try:
        settings = load_settings()
    except RuntimeError as exc:
        logger.critical("Impossible de charger la configuration (Settings). Erreur: %s", exc)
        sys.exit(1)

    # ------------------------------------------------------------------
    # Passerelles de génération
    # ------------------------------------------------------------------
    gateways = build_gateways(settings)
    if not gateways:
        logger.critical("Aucune passerelle de génération disponible. Fermeture.")
        sys.exit(1)
    gateway = default_gateway(gateways)
    logger.info("Passerelle retenue: %s (disponibles: %s)", gateway.name.value, [g.value for g in gateways])

    # ------------------------------------------------------------------
    # Serveur HTTP
    # ------------------------------------------------------------------
    server = ApiServer(
        gateway=gateway,
        store=InMemoryRecordStore(),
        policy=RetryPolicy(
            max_attempts=settings.generation_max_attempts,
            base_delay=settings.generation_backoff,
        ),
        keyword_fallback=settings.keyword_fallback,
        host=settings.api_host,
        port=settings.api_port,
    )

    try:
        server.run()
    except KeyboardInterrupt:
        logger.warning("Interruption clavier - fermeture.")
        sys.exit(0)
    except OSError as exc:
        logger.critical("Impossible de démarrer le serveur HTTP sur %s:%d: %s", settings.api_host, settings.api_port, exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
