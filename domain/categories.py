# domain/categories.py

"""
Registre des schémas de mesures par catégorie de vêtement.

Source de vérité UNIQUE : le validateur de réponses IA et l'éditeur de lignes
passent tous les deux par fields_for().
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Sequence, Tuple, Union

logger = logging.getLogger(__name__)


class GarmentCategory(Enum):
    """
    Catégories de vêtements connues.
    GENERIC sert de repli pour toute catégorie inconnue.
    """
    PANTS = "pants"
    SHORTS = "shorts"
    SHIRT = "shirt"
    HOODIE = "hoodie"
    JACKET = "jacket"
    SINGLET = "singlet"
    GENERIC = "generic"


MEASUREMENT_SCHEMAS: Dict[GarmentCategory, Tuple[str, ...]] = {
    GarmentCategory.PANTS: ("outseam", "waist", "inseam", "rise", "hip"),
    GarmentCategory.SHORTS: ("outseam", "waist", "hip"),
    GarmentCategory.SHIRT: ("bodyLength", "chest", "shoulder", "sleeve"),
    GarmentCategory.HOODIE: ("bodyLength", "chest", "shoulder", "sleeve"),
    GarmentCategory.JACKET: ("bodyLength", "chest", "shoulder", "sleeve"),
    GarmentCategory.SINGLET: ("bodyLength", "chest", "shoulder"),
    GarmentCategory.GENERIC: ("height", "width"),
}

# Tailles proposées par défaut pour une nouvelle ligne
DEFAULT_SIZES: Tuple[str, ...] = ("small", "medium", "large")

CategoryLike = Union[GarmentCategory, str, None]


def resolve_category(raw: CategoryLike) -> Tuple[GarmentCategory, bool]:
    """
    Résout une catégorie brute (str ou enum).

    Retourne (catégorie, reconnue). Une valeur inconnue donne
    (GENERIC, False) ; ne lève jamais d'exception.
    """
    if isinstance(raw, GarmentCategory):
        return raw, True

    if isinstance(raw, str):
        key = raw.strip().lower()
        for category in GarmentCategory:
            if category.value == key:
                return category, True

    logger.debug("Catégorie inconnue: %r (repli sur generic)", raw)
    return GarmentCategory.GENERIC, False


def fields_for(category: CategoryLike) -> List[str]:
    """Champs de mesure ordonnés de la catégorie, ou ceux de generic."""
    resolved, _ = resolve_category(category)
    return list(MEASUREMENT_SCHEMAS[resolved])


def default_measurements(
    category: CategoryLike,
    sizes: Sequence[str] = DEFAULT_SIZES,
) -> Dict[str, Dict[str, float]]:
    """Grille de mesures à zéro pour chaque taille."""
    fields = fields_for(category)
    return {size: {name: 0.0 for name in fields} for size in sizes}


def list_categories() -> List[str]:
    return [category.value for category in GarmentCategory]
