# domain/colors.py

from __future__ import annotations

import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_COLOR_HEX = "#cccccc"

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")

# Couleurs de référence (nom -> hex), ordre = priorité de détection
COLOR_REFERENCE = {
    "darkblue": "#0a2463",
    "navy": "#001f3f",
    "maroon": "#9b2226",
    "teal": "#0096c7",
    "red": "#e63946",
    "blue": "#457b9d",
    "black": "#1e1e1e",
    "grey": "#6c757d",
    "gray": "#6c757d",
    "white": "#ffffff",
    "yellow": "#f9c74f",
    "green": "#2a9d8f",
    "purple": "#9d4edd",
    "orange": "#f3722c",
    "brown": "#774936",
    "gold": "#ffd700",
    "silver": "#c0c0c0",
}


def normalize_hex(raw: Any) -> Optional[str]:
    """
    Normalise une couleur hex sur 6 chiffres ('#RRGGBB' minuscule).
    Retourne None si la valeur n'est pas exploitable.
    """
    if not isinstance(raw, str):
        return None
    m = _HEX_RE.match(raw.strip())
    if not m:
        return None
    return f"#{m.group(1).lower()}"


def color_hex_from_name(name: Any) -> Optional[str]:
    """Cherche une couleur de référence contenue dans le nom ('Team Blue' -> blue)."""
    if not isinstance(name, str) or not name.strip():
        return None

    compact = name.lower().replace(" ", "").replace("-", "")
    for key, value in COLOR_REFERENCE.items():
        if key in compact:
            logger.debug("color_hex_from_name: %r -> %s (%s)", name, value, key)
            return value
    return None


def detect_color_name(text: str) -> Optional[str]:
    """Premier nom de couleur de référence présent dans un texte libre."""
    lowered = (text or "").lower()
    for key in COLOR_REFERENCE:
        if re.search(rf"\b{key}\b", lowered):
            return key
    return None
