# domain/keyword_fallback.py

"""
Repli par mots-clés quand le service de génération est indisponible.

Opt-in uniquement (KEYWORD_FALLBACK). Chaque ligne produite est marquée
requiresReview et porte un drapeau 'fallback' : ce n'est jamais un succès propre.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Tuple

from domain.categories import GarmentCategory, default_measurements
from domain.colors import COLOR_REFERENCE, DEFAULT_COLOR_HEX, detect_color_name
from domain.models import ParsedItem, ReviewFlag, ValidatedResult
from domain.templates import RequestKind

logger = logging.getLogger(__name__)

DEFAULT_QUANTITY = 20
FALLBACK_COLOR = "blue"

_QUANTITY_RE = re.compile(
    r"\b(\d+)\s+(shirts|pants|jackets|hoodies|shorts|singlets)\b",
    re.IGNORECASE,
)

# (mots-clés, catégorie, nom, détails, tissu, métrage, prix, alternatives)
_KEYWORD_ITEMS: Tuple[Tuple[Tuple[str, ...], GarmentCategory, str, str, str, float, float, Tuple[str, ...]], ...] = (
    (
        ("jacket",),
        GarmentCategory.JACKET,
        "Team Jacket",
        "Team logo on back, small logo on chest",
        "Polyester",
        2.5,
        45.99,
        ("Lightweight Windbreaker", "Full-Zip Jacket"),
    ),
    (
        ("pant",),
        GarmentCategory.PANTS,
        "Team Pants",
        "Logo on left leg, elastic waistband",
        "Poly-cotton blend",
        1.8,
        32.99,
        ("Athletic Joggers", "Warm-Up Pants"),
    ),
    (
        ("shirt", "tee"),
        GarmentCategory.SHIRT,
        "Team T-Shirt",
        "Team logo centered on chest",
        "Cotton",
        1.2,
        18.99,
        ("Performance Tee", "Long-Sleeve Shirt"),
    ),
    (
        ("hoodie", "sweatshirt"),
        GarmentCategory.HOODIE,
        "Team Hoodie",
        "Small logo on chest, hood with drawstrings",
        "Fleece",
        2.0,
        39.99,
        ("Pull-Over Hoodie", "Quarter-Zip Sweatshirt"),
    ),
)

# Mesures types (pouces) pour les lignes générées
_SAMPLE_MEASUREMENTS: Dict[GarmentCategory, Dict[str, Dict[str, float]]] = {
    GarmentCategory.JACKET: {
        "small": {"bodyLength": 26, "chest": 40, "shoulder": 17, "sleeve": 25},
        "medium": {"bodyLength": 27, "chest": 42, "shoulder": 18, "sleeve": 26},
        "large": {"bodyLength": 28, "chest": 44, "shoulder": 19, "sleeve": 27},
    },
    GarmentCategory.PANTS: {
        "small": {"outseam": 40, "waist": 30, "inseam": 31, "rise": 10, "hip": 38},
        "medium": {"outseam": 41, "waist": 32, "inseam": 32, "rise": 10.5, "hip": 40},
        "large": {"outseam": 42, "waist": 34, "inseam": 33, "rise": 11, "hip": 42},
    },
    GarmentCategory.SHIRT: {
        "small": {"bodyLength": 27, "chest": 38, "shoulder": 16, "sleeve": 8},
        "medium": {"bodyLength": 28, "chest": 40, "shoulder": 17, "sleeve": 8.5},
        "large": {"bodyLength": 29, "chest": 42, "shoulder": 18, "sleeve": 9},
    },
    GarmentCategory.HOODIE: {
        "small": {"bodyLength": 26, "chest": 40, "shoulder": 17, "sleeve": 25},
        "medium": {"bodyLength": 27, "chest": 42, "shoulder": 18, "sleeve": 26},
        "large": {"bodyLength": 28, "chest": 44, "shoulder": 19, "sleeve": 27},
    },
    GarmentCategory.GENERIC: {
        "small": {"height": 20, "width": 20},
        "medium": {"height": 22, "width": 22},
        "large": {"height": 24, "width": 24},
    },
}


def _measurements(category: GarmentCategory) -> Dict[str, Dict[str, float]]:
    sample = _SAMPLE_MEASUREMENTS.get(category)
    if sample is None:
        return default_measurements(category)
    return {size: {k: float(v) for k, v in grid.items()} for size, grid in sample.items()}


def _quantity(text: str) -> int:
    m = _QUANTITY_RE.search(text)
    return int(m.group(1)) if m else DEFAULT_QUANTITY


def fallback_items(free_text: str) -> ValidatedResult:
    """
    Construit des lignes approximatives à partir des mots-clés du texte libre.
    Toutes les lignes sont à revoir (drapeau non bloquant par ligne).
    """
    lowered = (free_text or "").lower()
    quantity = _quantity(lowered)
    color = detect_color_name(lowered) or FALLBACK_COLOR
    color_hex = COLOR_REFERENCE.get(color, DEFAULT_COLOR_HEX)

    items: List[ParsedItem] = []
    for keywords, category, name, details, fabric, yardage, price, alternatives in _KEYWORD_ITEMS:
        if not any(keyword in lowered for keyword in keywords):
            continue
        item_color, item_hex = color, color_hex
        # Pantalon blanc -> noir
        if category is GarmentCategory.PANTS and color == "white":
            item_color, item_hex = "black", COLOR_REFERENCE["black"]
        items.append(
            ParsedItem(
                item_name=name,
                category=category.value,
                design_details=details,
                fabric_type=fabric,
                color_display=item_color,
                color_hex=item_hex,
                yardage_per_unit=yardage,
                expected_quantity=quantity,
                price_estimate=price,
                measurements=_measurements(category),
                requires_review=True,
                alternative_items=list(alternatives),
                primary_color=item_color,
            )
        )

    if not items:
        items.append(
            ParsedItem(
                item_name="Custom Apparel Item",
                category=GarmentCategory.GENERIC.value,
                design_details="Details to be specified",
                fabric_type="To be determined",
                color_display="Gray",
                color_hex=DEFAULT_COLOR_HEX,
                yardage_per_unit=1.5,
                expected_quantity=quantity,
                price_estimate=25.99,
                measurements=_measurements(GarmentCategory.GENERIC),
                requires_review=True,
                alternative_items=["T-Shirt", "Hoodie", "Jacket"],
                primary_color="gray",
            )
        )

    flags = [
        ReviewFlag(path=f"items[{index}]", reason="ligne générée par repli mots-clés")
        for index in range(len(items))
    ]
    logger.warning("Repli mots-clés: %d ligne(s) générée(s), toutes à revoir.", len(items))
    return ValidatedResult(kind=RequestKind.ITEM_EXTRACTION, records=items, review_flags=flags)
