#!/usr/bin/env python3
"""Assistant interactif pour configurer les clés API et modèles par défaut.

- Gemini (gemini-2.5-flash par défaut) et/ou OpenAI (gpt-4o-mini par défaut)
- Enregistre les variables dans un fichier .env local, relu par config.settings
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Dict, Tuple

ENV_PATH = Path(__file__).resolve().parent.parent / ".env"

# provider -> (variable clé, variable modèle, modèle par défaut)
PROVIDERS: Dict[str, Tuple[str, str, str]] = {
    "gemini": ("GEMINI_API_KEY", "GEMINI_MODEL", "gemini-2.5-flash"),
    "openai": ("OPENAI_API_KEY", "OPENAI_MODEL", "gpt-4o-mini"),
}


def setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def _safe_input(prompt: str) -> str:
    try:
        return input(prompt)
    except (KeyboardInterrupt, EOFError):
        logging.error("Arrêt utilisateur. Configuration abandonnée.")
        sys.exit(1)


def load_env_file(env_path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    if not env_path.exists():
        logging.info("Aucun fichier .env existant, une nouvelle configuration sera créée.")
        return values

    logging.info("Chargement des variables existantes depuis %s", env_path)
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        if key.strip():
            values[key.strip()] = value.strip()
    return values


def write_env_file(env_path: Path, env_data: Dict[str, str]) -> None:
    lines = [f"{key}={value}" for key, value in env_data.items()]
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logging.info("Fichier .env mis à jour dans %s", env_path)


def _prompt_provider() -> str:
    choices = " / ".join(PROVIDERS)
    while True:
        provider = _safe_input(f"Provider à configurer ({choices}) [Entrée pour 'gemini'] : ").strip().lower()
        provider = provider or "gemini"
        if provider in PROVIDERS:
            return provider
        logging.warning("Provider inconnu. Merci de choisir parmi: %s.", choices)


def _prompt_api_key(env_name: str) -> str:
    while True:
        key = _safe_input(f"Saisis la clé API ({env_name}) : ").strip()
        if key:
            logging.info("Clé %s capturée (longueur: %d).", env_name, len(key))
            return key
        logging.warning("La clé ne peut pas être vide. Recommence.")


def _prompt_model(default_model: str) -> str:
    model = _safe_input(f"Modèle à utiliser [Entrée pour '{default_model}'] : ").strip().strip("\"' ")
    return model or default_model


def main() -> None:
    setup_logging()
    logging.info("===== Assistant de configuration des clés API =====")

    try:
        env_data = load_env_file(ENV_PATH)
    except OSError as exc:
        logging.error("Impossible de lire le fichier .env: %s", exc)
        sys.exit(1)

    provider = _prompt_provider()
    key_env, model_env, default_model = PROVIDERS[provider]
    env_data[key_env] = _prompt_api_key(key_env)
    env_data[model_env] = _prompt_model(default_model)

    try:
        write_env_file(ENV_PATH, env_data)
    except OSError as exc:
        logging.error("Impossible d'écrire le fichier .env: %s", exc)
        sys.exit(1)

    logging.info("Configuration terminée. Les prochaines exécutions utiliseront %s.", provider)


if __name__ == "__main__":
    main()
