# domain/json_utils.py

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from domain.errors import MalformedResponse

logger = logging.getLogger(__name__)

# Regex pour extraire un bloc ```json ... ```
JSON_FENCE_RE = re.compile(
    r"```(?:json)?\s*(.*?)```",
    re.IGNORECASE | re.DOTALL,
)


def _try_loads(candidate: str) -> Optional[Any]:
    try:
        parsed = json.loads(candidate)
    except ValueError:
        return None
    if isinstance(parsed, (dict, list)):
        return parsed
    return None


def _outer_span(raw: str, opening: str, closing: str) -> Optional[str]:
    start = raw.find(opening)
    end = raw.rfind(closing)
    if start != -1 and end != -1 and end > start:
        return raw[start : end + 1]
    return None


def locate_json(text: Optional[str]) -> Any:
    """
    Isole et parse l'objet (ou le tableau) JSON contenu dans une réponse brute.

    Stratégie :
    1) tentative directe json.loads
    2) extraction d'un bloc entre ```json ... ``` ou ``` ... ```
    3) fallback : du premier '{' au dernier '}', puis du premier '[' au dernier ']'
    4) sinon : MalformedResponse (texte brut conservé)
    """
    if text is None or not text.strip():
        raise MalformedResponse("Réponse vide.", raw_text=text)

    raw = text.strip()
    logger.debug("locate_json: début, longueur=%d", len(raw))

    # 1) tentative directe
    parsed = _try_loads(raw)
    if parsed is not None:
        logger.debug("locate_json: parse direct OK (%s)", type(parsed).__name__)
        return parsed

    # 2) bloc markdown
    for m in JSON_FENCE_RE.finditer(raw):
        inner = m.group(1).strip()
        parsed = _try_loads(inner)
        if parsed is not None:
            logger.debug("locate_json: bloc markdown OK, longueur inner=%d", len(inner))
            return parsed
        logger.debug("locate_json: bloc markdown non décodable, on continue.")

    # 3) prose autour de l'objet : on isole la plus grande portion plausible
    for opening, closing in (("{", "}"), ("[", "]")):
        candidate = _outer_span(raw, opening, closing)
        if candidate is None:
            continue
        parsed = _try_loads(candidate)
        if parsed is not None:
            logger.debug(
                "locate_json: parse fallback OK sur %s...%s, longueur=%d",
                opening,
                closing,
                len(candidate),
            )
            return parsed

    # 4) échec complet
    logger.error("Impossible de parser JSON brut. Contenu tronqué: %s", raw[:300])
    raise MalformedResponse("JSON invalide ou introuvable dans le texte brut.", raw_text=text)
