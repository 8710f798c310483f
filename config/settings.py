# config/settings.py

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

N = TypeVar("N", int, float)

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_BACKOFF = 1.0
DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 8765

_TRUE_VALUES = ("1", "true", "yes", "on", "oui")


def _load_dotenv_if_present(env_file: str | Path = ".env") -> None:
    """
    Charge un fichier `.env` local si présent et injecte les variables
    manquantes dans l'environnement process.

    - ignore les lignes vides ou commentées
    - ne surcharge jamais une variable déjà définie dans l'environnement
    """
    env_path = Path(env_file)
    logger.debug("Recherche d'un fichier .env local à charger: %s", env_path)

    if not env_path.exists():
        logger.info("Aucun fichier .env trouvé à %s, passage en mode variables système.", env_path)
        return

    try:
        for line_no, raw_line in enumerate(env_path.read_text(encoding="utf-8").splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip("\"'")

            if not key:
                logger.warning("Ligne %d du .env ignorée (clé vide).", line_no)
                continue

            if os.getenv(key) is None:
                os.environ[key] = value
                logger.debug("Variable %s chargée depuis .env.", key)

        logger.info("Chargement du fichier .env terminé.")
    except OSError as exc:
        logger.exception("Echec du chargement du fichier .env: %s", exc)
        raise RuntimeError(f"Erreur lors du chargement du fichier .env: {exc}") from exc


@dataclass
class Settings:
    """
    Configuration applicative centrale.

    - gemini_api_key / openai_api_key : au moins une des deux est requise
    - generation_timeout    : délai max d'un appel de génération (secondes)
    - generation_max_attempts / generation_backoff : politique de retry
    - api_host / api_port   : écoute du serveur HTTP
    - keyword_fallback      : repli mots-clés si la génération échoue (opt-in)
    """
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL

    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_OPENAI_MODEL

    generation_timeout: float = DEFAULT_TIMEOUT
    generation_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    generation_backoff: float = DEFAULT_BACKOFF

    api_host: str = DEFAULT_API_HOST
    api_port: int = DEFAULT_API_PORT

    keyword_fallback: bool = False


def _text_env(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is not None and raw.strip():
        return raw.strip()
    if raw is not None and default is not None:
        logger.warning("%s est défini mais vide, utilisation de la valeur par défaut '%s'.", name, default)
    return default


def _number_env(name: str, default: N, cast: Callable[[str], N], minimum: N) -> N:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        logger.warning("%s invalide (%r), utilisation de la valeur par défaut %s.", name, raw, default)
        return default
    if value < minimum:
        logger.warning("%s hors bornes (%s < %s), utilisation de la valeur par défaut %s.", name, value, minimum, default)
        return default
    return value


def _flag_env(name: str) -> bool:
    raw = os.getenv(name)
    return raw is not None and raw.strip().lower() in _TRUE_VALUES


def load_settings(env_file: str | Path = ".env") -> Settings:
    """
    Charge la configuration à partir des variables d'environnement.

    Variables prises en compte :
    - GEMINI_API_KEY / GEMINI_MODEL
    - OPENAI_API_KEY / OPENAI_MODEL
    - GENERATION_TIMEOUT, GENERATION_MAX_ATTEMPTS, GENERATION_BACKOFF
    - API_HOST, API_PORT
    - KEYWORD_FALLBACK

    Lève RuntimeError si aucune clé de provider n'est définie.
    """
    logger.debug("Chargement des Settings depuis les variables d'environnement.")

    _load_dotenv_if_present(env_file)

    gemini_key = _text_env("GEMINI_API_KEY")
    openai_key = _text_env("OPENAI_API_KEY")
    if not gemini_key and not openai_key:
        logger.error("Aucune clé API définie (GEMINI_API_KEY / OPENAI_API_KEY).")
        raise RuntimeError(
            "GEMINI_API_KEY et OPENAI_API_KEY sont manquantes ou vides. "
            "Définis au moins l'une des deux (ou lance scripts/configure_api_keys.py)."
        )

    settings = Settings(
        gemini_api_key=gemini_key,
        gemini_model=_text_env("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        openai_api_key=openai_key,
        openai_model=_text_env("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
        generation_timeout=_number_env("GENERATION_TIMEOUT", DEFAULT_TIMEOUT, float, 1.0),
        generation_max_attempts=_number_env("GENERATION_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS, int, 1),
        generation_backoff=_number_env("GENERATION_BACKOFF", DEFAULT_BACKOFF, float, 0.0),
        api_host=_text_env("API_HOST", DEFAULT_API_HOST),
        api_port=_number_env("API_PORT", DEFAULT_API_PORT, int, 1),
        keyword_fallback=_flag_env("KEYWORD_FALLBACK"),
    )

    logger.info(
        "Settings chargés (Gemini=%s, OpenAI=%s, timeout=%.0fs, tentatives=%d, fallback=%s).",
        settings.gemini_model if settings.gemini_api_key else "absent",
        settings.openai_model if settings.openai_api_key else "absent",
        settings.generation_timeout,
        settings.generation_max_attempts,
        "oui" if settings.keyword_fallback else "non",
    )
    return settings
