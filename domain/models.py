# domain/models.py

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from domain.colors import DEFAULT_COLOR_HEX
from domain.templates.base import RequestKind

logger = logging.getLogger(__name__)


Measurements = Dict[str, Dict[str, float]]


@dataclass(frozen=True)
class ReviewFlag:
    """
    Marqueur attaché à un champ dont la valeur a été complétée, bornée
    ou jugée ambiguë. Un drapeau bloquant empêche la persistance.
    """

    path: str
    reason: str
    blocking: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "reason": self.reason, "blocking": self.blocking}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewFlag":
        """Lève ValueError si path est absent ou vide."""
        path = data.get("path")
        if not isinstance(path, str) or not path.strip():
            raise ValueError(f"Drapeau de revue sans chemin: {data!r}")
        return cls(
            path=path.strip(),
            reason=str(data.get("reason") or ""),
            blocking=data.get("blocking") is True,
        )


@dataclass
class ParsedItem:
    """
    Ligne d'article (vêtement) extraite des notes client.

    Ce modèle ne gère ni l'UI ni la persistance : il représente une ligne
    propre en interne. total_yardage est toujours recalculé.
    """

    item_name: str
    category: str = "generic"
    design_details: str = ""
    fabric_type: str = ""
    color_display: str = ""
    color_hex: str = DEFAULT_COLOR_HEX
    yardage_per_unit: float = 1.0
    expected_quantity: int = 1
    price_estimate: float = 0.0
    measurements: Measurements = field(default_factory=dict)
    requires_review: bool = False
    alternative_items: List[str] = field(default_factory=list)
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None

    @property
    def total_yardage(self) -> float:
        return self.yardage_per_unit * self.expected_quantity

    def copy(self) -> "ParsedItem":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Forme sérialisée (clés camelCase, comme le contrat JSON)."""
        data: Dict[str, Any] = {
            "itemName": self.item_name,
            "category": self.category,
            "designDetails": self.design_details,
            "fabricType": self.fabric_type,
            "colorDisplay": self.color_display,
            "colorHex": self.color_hex,
            "yardagePerUnit": self.yardage_per_unit,
            "expectedQuantity": self.expected_quantity,
            "priceEstimate": self.price_estimate,
            "measurements": copy.deepcopy(self.measurements),
            "requiresReview": self.requires_review,
            "alternativeItems": list(self.alternative_items),
        }
        if self.primary_color is not None:
            data["primaryColor"] = self.primary_color
        if self.secondary_color is not None:
            data["secondaryColor"] = self.secondary_color
        return data

    def to_view(self) -> Dict[str, Any]:
        """Forme exposée à l'éditeur : to_dict + totalYardage calculé."""
        view = self.to_dict()
        view["totalYardage"] = self.total_yardage
        return view


# ---------------------------------------------------------------------------
# Recherche tissu
# ---------------------------------------------------------------------------


@dataclass
class FabricProperty:
    name: str
    value: str
    description: str = ""
    unit: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "value": self.value,
            "description": self.description,
        }
        if self.unit is not None:
            data["unit"] = self.unit
        return data


@dataclass
class ManufacturingCost:
    region: str
    base_unit_cost: float
    min_order_quantity: int
    currency: str = "USD"
    lead_time: str = ""
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "region": self.region,
            "baseUnitCost": self.base_unit_cost,
            "minOrderQuantity": self.min_order_quantity,
            "currency": self.currency,
            "leadTime": self.lead_time,
        }
        if self.notes is not None:
            data["notes"] = self.notes
        return data


@dataclass
class SustainabilityInfo:
    environmental_impact: str = ""
    recyclability: str = ""
    certifications: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.environmental_impact or self.recyclability or self.certifications)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "environmentalImpact": self.environmental_impact,
            "recyclability": self.recyclability,
            "certifications": list(self.certifications),
        }


@dataclass
class FabricResearchRecord:
    fabric_type: str
    description: str
    composition: List[str] = field(default_factory=list)
    properties: List[FabricProperty] = field(default_factory=list)
    applications: List[str] = field(default_factory=list)
    manufacturing_costs: List[ManufacturingCost] = field(default_factory=list)
    sustainability_info: SustainabilityInfo = field(default_factory=SustainabilityInfo)
    care_instructions: List[str] = field(default_factory=list)
    alternatives: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fabricType": self.fabric_type,
            "description": self.description,
            "composition": list(self.composition),
            "properties": [p.to_dict() for p in self.properties],
            "applications": list(self.applications),
            "manufacturingCosts": [c.to_dict() for c in self.manufacturing_costs],
            "sustainabilityInfo": self.sustainability_info.to_dict(),
            "careInstructions": list(self.care_instructions),
            "alternatives": list(self.alternatives),
            "sources": list(self.sources),
        }


# ---------------------------------------------------------------------------
# Compatibilité tissu / méthode de production
# ---------------------------------------------------------------------------


@dataclass
class CompatibilityResult:
    """alternatives n'est renseigné que si compatible est False."""

    compatible: bool
    reasons: List[str] = field(default_factory=list)
    alternatives: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "compatible": self.compatible,
            "reasons": list(self.reasons),
        }
        if self.alternatives is not None:
            data["alternatives"] = list(self.alternatives)
        return data


# ---------------------------------------------------------------------------
# Suggestions de tissus
# ---------------------------------------------------------------------------

RATING_FIELDS = (
    "costRating",
    "availabilityRating",
    "durabilityRating",
    "sustainabilityRating",
    "recyclability",
    "waterUsage",
)


@dataclass
class RecommendedFabric:
    name: str
    description: str = ""
    primary_use: str = ""
    best_for: str = ""
    composition: str = ""
    weight: str = ""
    care: str = ""
    property_ratings: Dict[str, float] = field(default_factory=dict)
    # notes 1..5, clés = RATING_FIELDS
    ratings: Dict[str, Optional[float]] = field(default_factory=dict)
    considerations: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "primaryUse": self.primary_use,
            "bestFor": self.best_for,
            "composition": self.composition,
            "weight": self.weight,
            "care": self.care,
            "propertyRatings": dict(self.property_ratings),
            "considerations": self.considerations,
        }
        for key in RATING_FIELDS:
            data[key] = self.ratings.get(key)
        return data


@dataclass
class SuggestionResult:
    """recommended_fabrics est ordonné : meilleure correspondance en premier."""

    product_type: str
    recommended_fabrics: List[RecommendedFabric] = field(default_factory=list)
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productType": self.product_type,
            "recommendedFabrics": [f.to_dict() for f in self.recommended_fabrics],
            "notes": self.notes,
        }


# ---------------------------------------------------------------------------
# Résultat validé
# ---------------------------------------------------------------------------


@dataclass
class ValidatedResult:
    """
    Enregistrement(s) issus du parseur + drapeaux de revue.
    review_flags vide = extraction propre.
    """

    kind: RequestKind
    records: List[Any]
    review_flags: List[ReviewFlag] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.review_flags

    @property
    def blocking_flags(self) -> List[ReviewFlag]:
        return [f for f in self.review_flags if f.blocking]

    @property
    def record(self) -> Any:
        """Premier enregistrement (flux à enregistrement unique)."""
        if not self.records:
            raise ValueError(f"Aucun enregistrement dans le résultat {self.kind.value}.")
        return self.records[0]

    def to_dict(self) -> Dict[str, Any]:
        try:
            if self.kind is RequestKind.ITEM_EXTRACTION:
                payload: Any = {"items": [r.to_dict() for r in self.records]}
            else:
                payload = self.record.to_dict()
            return {
                "kind": self.kind.value,
                "data": payload,
                "reviewFlags": [f.to_dict() for f in self.review_flags],
            }
        except Exception as exc:
            logger.exception("Erreur de sérialisation ValidatedResult.to_dict.")
            raise ValueError(f"Sérialisation impossible: {exc}") from exc
