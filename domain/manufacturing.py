# domain/manufacturing.py

"""
Estimations de fabrication pour les lignes d'articles extraites :
prix indicatif, délai de production, quantité minimale, atelier conseillé.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from domain.categories import GarmentCategory, resolve_category

logger = logging.getLogger(__name__)

# Prix de base par catégorie (USD)
BASE_PRICES: Dict[GarmentCategory, float] = {
    GarmentCategory.SHIRT: 18.99,
    GarmentCategory.PANTS: 32.99,
    GarmentCategory.SHORTS: 24.99,
    GarmentCategory.HOODIE: 39.99,
    GarmentCategory.JACKET: 45.99,
    GarmentCategory.SINGLET: 21.99,
    GarmentCategory.GENERIC: 25.99,
}

# Tissus qui justifient une majoration
PREMIUM_FABRICS = ("performance", "moisture-wicking", "wool", "silk", "organic")
PREMIUM_MULTIPLIER = 1.25

BASE_PRODUCTION_DAYS: Dict[GarmentCategory, int] = {
    GarmentCategory.SHIRT: 7,
    GarmentCategory.PANTS: 10,
    GarmentCategory.SHORTS: 8,
    GarmentCategory.HOODIE: 12,
    GarmentCategory.JACKET: 15,
    GarmentCategory.SINGLET: 9,
    GarmentCategory.GENERIC: 10,
}

MEASUREMENT_SCHEMA_IDS: Dict[GarmentCategory, int] = {
    GarmentCategory.PANTS: 1,
    GarmentCategory.SHORTS: 2,
    GarmentCategory.SHIRT: 3,
    GarmentCategory.HOODIE: 4,
    GarmentCategory.JACKET: 5,
    GarmentCategory.SINGLET: 6,
    GarmentCategory.GENERIC: 99,
}

# (mot-clé dans les détails de design, atelier)
PRINTERS = (
    ("embroid", "EmbroideryPro Inc."),
    ("sublim", "TotalDye Sublimation"),
    ("screen", "ScreenMasters LLC"),
)
DEFAULT_PRINTER = "Universal Printing Services"


def _is_premium_fabric(fabric_type: Optional[str]) -> bool:
    if not fabric_type:
        return False
    lowered = fabric_type.lower()
    return any(term in lowered for term in PREMIUM_FABRICS)


def estimate_price(category: Any, fabric_type: Optional[str]) -> float:
    """
    Prix unitaire indicatif : prix de base de la catégorie,
    majoré de 25% pour un tissu premium.
    """
    resolved, _ = resolve_category(category)
    base_price = BASE_PRICES[resolved]
    price = base_price * PREMIUM_MULTIPLIER if _is_premium_fabric(fabric_type) else base_price
    price = round(price, 2)
    logger.debug(
        "estimate_price: categorie=%s tissu=%r -> %.2f",
        resolved.value,
        fabric_type,
        price,
    )
    return price


def estimate_production_days(category: Any, quantity: int) -> int:
    resolved, _ = resolve_category(category)
    days = BASE_PRODUCTION_DAYS[resolved]
    if quantity > 100:
        days += 7
    elif quantity > 50:
        days += 3
    return days


def minimum_order_quantity(category: Any) -> int:
    resolved, _ = resolve_category(category)
    if resolved is GarmentCategory.JACKET:
        return 8
    if resolved is GarmentCategory.GENERIC:
        return 10
    return 12


def recommend_printer(design_details: Optional[str]) -> str:
    lowered = (design_details or "").lower()
    for keyword, printer in PRINTERS:
        if keyword in lowered:
            return printer
    return DEFAULT_PRINTER


def measurement_schema_id(category: Any) -> int:
    resolved, _ = resolve_category(category)
    return MEASUREMENT_SCHEMA_IDS[resolved]


def manufacturing_specs(
    category: Any,
    fabric_type: Optional[str],
    design_details: Optional[str],
    quantity: int,
) -> Dict[str, Any]:
    """
    Spécifications de fabrication jointes à une ligne persistée.

    Returns:
        dict avec estimated_production_time, minimum_order_quantity,
        recommended_printer et production_notes
    """
    resolved, _ = resolve_category(category)
    specs = {
        "estimated_production_time": f"{estimate_production_days(resolved, quantity)} business days",
        "minimum_order_quantity": minimum_order_quantity(resolved),
        "recommended_printer": recommend_printer(design_details),
        "production_notes": f"{fabric_type or ''} {resolved.value} with {design_details or ''}".strip(),
    }
    logger.debug("manufacturing_specs(%s): %s", resolved.value, specs)
    return specs
