# domain/validator.py

"""
Parseur + validateur des réponses du service de génération.

Politique : tolérant mais signalé. Une donnée partielle ou ambiguë est
conservée, complétée et marquée pour revue humaine ; seule une réponse
inexploitable (vide, non décodable, mauvaise forme racine) lève
MalformedResponse.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from jsonschema import Draft7Validator

from domain.categories import (
    GarmentCategory,
    default_measurements,
    fields_for,
    resolve_category,
)
from domain.colors import DEFAULT_COLOR_HEX, color_hex_from_name, normalize_hex
from domain.errors import MalformedResponse
from domain.json_utils import locate_json
from domain.manufacturing import estimate_price
from domain.models import (
    RATING_FIELDS,
    CompatibilityResult,
    FabricProperty,
    FabricResearchRecord,
    ManufacturingCost,
    Measurements,
    ParsedItem,
    RecommendedFabric,
    ReviewFlag,
    SuggestionResult,
    SustainabilityInfo,
    ValidatedResult,
)
from domain.request_builder import GenerationRequest, resolve_kind
from domain.templates import RequestKind, ResponseContract, get_contract

logger = logging.getLogger(__name__)

RATING_MIN = 1.0
RATING_MAX = 5.0

_JSON_TYPES = {"object": dict, "array": list}


class _Flags:
    """Accumulateur de drapeaux de revue."""

    def __init__(self) -> None:
        self.items: List[ReviewFlag] = []

    def add(self, path: str, reason: str, blocking: bool = False) -> None:
        flag = ReviewFlag(path=path, reason=reason, blocking=blocking)
        logger.debug("Drapeau de revue: %s", flag)
        self.items.append(flag)

    def count_under(self, prefix: str) -> int:
        return sum(1 for f in self.items if f.path == prefix or f.path.startswith(prefix + "."))


# ---------------------------------------------------------------------------
# Coercitions élémentaires
# ---------------------------------------------------------------------------


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _optional_text(value: Any) -> Optional[str]:
    text = _as_text(value)
    return text or None


def _string_list(
    payload: Mapping[str, Any],
    key: str,
    path: str,
    flags: _Flags,
    flag_absent: bool = True,
) -> List[str]:
    value = payload.get(key)
    if value is None:
        if flag_absent:
            flags.add(path, "section absente, remplacée par une liste vide")
        return []
    if isinstance(value, str):
        flags.add(path, "chaîne reçue au lieu d'une liste, convertie")
        return [value.strip()] if value.strip() else []
    if not isinstance(value, list):
        flags.add(path, f"type invalide ({type(value).__name__}), remplacé par une liste vide")
        return []

    result: List[str] = []
    for index, entry in enumerate(value):
        text = _as_text(entry)
        if text:
            result.append(text)
        elif entry not in (None, ""):
            flags.add(f"{path}[{index}]", "entrée non textuelle ignorée")
    return result


def _clamp_rating(value: Any, path: str, flags: _Flags) -> Optional[float]:
    number = _as_number(value)
    if number is None:
        if value is None:
            flags.add(path, "note absente")
        else:
            flags.add(path, f"note non numérique ({value!r})")
        return None
    if number < RATING_MIN or number > RATING_MAX:
        clamped = min(max(number, RATING_MIN), RATING_MAX)
        flags.add(path, f"note {number:g} hors [1,5], bornée à {clamped:g}")
        return clamped
    return number


# ---------------------------------------------------------------------------
# Contrôle structurel (jsonschema)
# ---------------------------------------------------------------------------


def _check_structure(payload: Any, contract: ResponseContract, raw_text: Optional[str]) -> None:
    """
    Vérifie la forme racine. Les écarts plus profonds ne sont que journalisés :
    les règles champ par champ ci-dessous les corrigent et les signalent.
    """
    expected = _JSON_TYPES.get(contract.root_type, dict)
    if not isinstance(payload, expected):
        logger.error(
            "Forme racine invalide pour %s: %s au lieu de %s",
            contract.kind.value,
            type(payload).__name__,
            contract.root_type,
        )
        raise MalformedResponse(
            f"Réponse {contract.kind.value}: {contract.root_type} JSON attendu.",
            raw_text=raw_text,
        )

    errors = sorted(Draft7Validator(contract.json_schema).iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        logger.warning(
            "JSON non conforme au contrat (%s): %d écart(s), correction champ par champ.",
            contract.kind.value,
            len(errors),
        )
        for err in errors:
            logger.debug("Écart contrat %s @ %s: %s", contract.kind.value, "/".join(map(str, err.path)), err.message)
    else:
        logger.info("Validation JSON réussie (contrat=%s).", contract.kind.value)


# ---------------------------------------------------------------------------
# Lignes d'articles
# ---------------------------------------------------------------------------


def normalize_measurements(
    raw: Any,
    category: Union[GarmentCategory, str],
    path: str,
    flags: _Flags,
) -> Measurements:
    """
    Garantit que chaque taille contient au moins les champs du schéma
    de la catégorie. Champs manquants = 0 + drapeau ; champs en trop conservés.
    """
    fields = fields_for(category)

    if not isinstance(raw, dict) or not raw:
        flags.add(path, "grille de mesures absente, tailles par défaut à 0")
        return default_measurements(category)

    result: Measurements = {}
    for size, values in raw.items():
        size_key = str(size).strip().lower()
        size_path = f"{path}.{size_key}"
        if not isinstance(values, dict):
            flags.add(size_path, "mesures de la taille non lisibles, remplacées par 0")
            values = {}

        grid: Dict[str, float] = {}
        for name, value in values.items():
            number = _as_number(value)
            if number is None:
                flags.add(f"{size_path}.{name}", f"valeur non numérique ({value!r}) remplacée par 0")
                number = 0.0
            elif number < 0:
                flags.add(f"{size_path}.{name}", f"valeur négative ({number:g})")
            grid[str(name)] = number

        for name in fields:
            if name not in grid:
                grid[name] = 0.0
                flags.add(f"{size_path}.{name}", "mesure manquante, valeur par défaut 0")

        result[size_key] = grid

    return result


def _parse_item(raw: Any, index: int, flags: _Flags) -> ParsedItem:
    path = f"items[{index}]"

    if not isinstance(raw, dict):
        flags.add(path, "entrée d'article illisible", blocking=True)
        flags.add(f"{path}.itemName", "nom d'article manquant", blocking=True)
        return ParsedItem(
            item_name="",
            measurements=default_measurements(GarmentCategory.GENERIC),
            requires_review=True,
        )

    item_name = _as_text(raw.get("itemName"))
    if not item_name:
        flags.add(f"{path}.itemName", "nom d'article manquant", blocking=True)

    category, recognized = resolve_category(raw.get("category"))
    if not recognized:
        flags.add(
            f"{path}.category",
            f"catégorie inconnue ({raw.get('category')!r}), remplacée par generic",
        )

    measurements = normalize_measurements(raw.get("measurements"), category, f"{path}.measurements", flags)

    fabric_type = _as_text(raw.get("fabricType"))
    design_details = _as_text(raw.get("designDetails"))
    color_display = _as_text(raw.get("colorDisplay"))

    color_hex = normalize_hex(raw.get("colorHex"))
    if color_hex is None:
        color_hex = color_hex_from_name(color_display) or DEFAULT_COLOR_HEX
        if raw.get("colorHex") in (None, ""):
            flags.add(f"{path}.colorHex", f"couleur hex absente, déduite: {color_hex}")
        else:
            flags.add(f"{path}.colorHex", f"couleur hex invalide ({raw.get('colorHex')!r}), remplacée par {color_hex}")

    yardage = _as_number(raw.get("yardagePerUnit"))
    if yardage is None or yardage <= 0:
        flags.add(f"{path}.yardagePerUnit", f"métrage invalide ({raw.get('yardagePerUnit')!r}), 1.0 par défaut")
        yardage = 1.0

    raw_quantity = raw.get("expectedQuantity")
    quantity = 1
    if raw_quantity is not None:
        number = _as_number(raw_quantity)
        if number is None or number < 1:
            flags.add(f"{path}.expectedQuantity", f"quantité invalide ({raw_quantity!r}), 1 par défaut")
        else:
            quantity = int(round(number))
            if quantity != number:
                flags.add(f"{path}.expectedQuantity", f"quantité non entière ({number:g}), arrondie à {quantity}")

    price = _as_number(raw.get("priceEstimate"))
    if price is None:
        price = estimate_price(category, fabric_type)
        flags.add(f"{path}.priceEstimate", f"prix absent ou invalide, estimé à {price:.2f}")
    elif price < 0:
        flags.add(f"{path}.priceEstimate", f"prix négatif ({price:g}), ramené à 0")
        price = 0.0

    alternatives: List[str] = []
    if isinstance(raw.get("alternativeItems"), list):
        alternatives = [_as_text(a) for a in raw["alternativeItems"] if _as_text(a)]

    item = ParsedItem(
        item_name=item_name,
        category=category.value,
        design_details=design_details,
        fabric_type=fabric_type,
        color_display=color_display,
        color_hex=color_hex,
        yardage_per_unit=yardage,
        expected_quantity=quantity,
        price_estimate=price,
        measurements=measurements,
        alternative_items=alternatives,
        primary_color=_optional_text(raw.get("primaryColor")),
        secondary_color=_optional_text(raw.get("secondaryColor")),
    )
    item.requires_review = flags.count_under(path) > 0 or raw.get("requiresReview") is True
    return item


def _item_entries(payload: Any, raw_text: Optional[str]) -> List[Any]:
    if isinstance(payload, list):
        logger.warning("Tableau JSON reçu à la racine : encapsulé dans {'items': [...]}.")
        entries = payload
    elif isinstance(payload, dict) and "items" in payload:
        entries = payload.get("items")
    elif isinstance(payload, dict) and "itemName" in payload:
        logger.warning("Article unique reçu à la racine : encapsulé dans {'items': [...]}.")
        entries = [payload]
    else:
        raise MalformedResponse("Réponse sans liste 'items'.", raw_text=raw_text)

    if not isinstance(entries, list) or not entries:
        raise MalformedResponse("Aucun article dans la réponse.", raw_text=raw_text)
    return entries


def _validate_items(payload: Any, raw_text: Optional[str], flags: _Flags) -> List[ParsedItem]:
    entries = _item_entries(payload, raw_text)
    _check_structure({"items": entries}, get_contract(RequestKind.ITEM_EXTRACTION), raw_text)
    return [_parse_item(entry, index, flags) for index, entry in enumerate(entries)]


def revalidate_items(items: Sequence[ParsedItem]) -> List[ReviewFlag]:
    """
    Recalcule les drapeaux à partir de l'état courant des lignes (après édition).
    Un drapeau bloquant ne disparaît que si la donnée a réellement été corrigée.
    """
    flags = _Flags()
    for index, item in enumerate(items):
        path = f"items[{index}]"
        if not item.item_name.strip():
            flags.add(f"{path}.itemName", "nom d'article manquant", blocking=True)
        _, recognized = resolve_category(item.category)
        if not recognized:
            flags.add(f"{path}.category", f"catégorie inconnue ({item.category!r})")
        if not item.measurements:
            flags.add(f"{path}.measurements", "grille de mesures vide")
        for size, grid in item.measurements.items():
            for name in fields_for(item.category):
                if name not in grid:
                    flags.add(f"{path}.measurements.{size}.{name}", "mesure manquante")
        if item.yardage_per_unit <= 0:
            flags.add(f"{path}.yardagePerUnit", "métrage doit être > 0")
    return flags.items


# ---------------------------------------------------------------------------
# Recherche tissu
# ---------------------------------------------------------------------------


def _is_empty_path(record: Dict[str, Any], dotted: str) -> bool:
    current: Any = record
    for part in dotted.split("."):
        if not isinstance(current, dict):
            return True
        current = current.get(part)
    return not current


def _validate_research(
    payload: Dict[str, Any],
    request: Optional[GenerationRequest],
    flags: _Flags,
) -> FabricResearchRecord:
    fabric_type = _as_text(payload.get("fabricType"))
    if not fabric_type:
        flags.add("fabricType", "type de tissu manquant", blocking=True)
    description = _as_text(payload.get("description"))
    if not description:
        flags.add("description", "description manquante", blocking=True)

    properties: List[FabricProperty] = []
    raw_properties = payload.get("properties")
    if raw_properties is None:
        flags.add("properties", "section absente, remplacée par une liste vide")
    elif not isinstance(raw_properties, list):
        flags.add("properties", "type invalide, remplacé par une liste vide")
    else:
        for index, entry in enumerate(raw_properties):
            path = f"properties[{index}]"
            if not isinstance(entry, dict):
                flags.add(path, "propriété illisible ignorée")
                continue
            name = _as_text(entry.get("name"))
            if not name:
                flags.add(f"{path}.name", "nom de propriété manquant")
            properties.append(
                FabricProperty(
                    name=name,
                    value=_as_text(entry.get("value")),
                    description=_as_text(entry.get("description")),
                    unit=_optional_text(entry.get("unit")),
                )
            )

    costs: List[ManufacturingCost] = []
    raw_costs = payload.get("manufacturingCosts")
    if raw_costs is None:
        flags.add("manufacturingCosts", "section absente, remplacée par une liste vide")
    elif not isinstance(raw_costs, list):
        flags.add("manufacturingCosts", "type invalide, remplacé par une liste vide")
    else:
        for index, entry in enumerate(raw_costs):
            path = f"manufacturingCosts[{index}]"
            if not isinstance(entry, dict):
                flags.add(path, "coût illisible ignoré")
                continue
            unit_cost = _as_number(entry.get("baseUnitCost"))
            if unit_cost is None or unit_cost < 0:
                flags.add(f"{path}.baseUnitCost", f"coût invalide ({entry.get('baseUnitCost')!r}), 0 par défaut")
                unit_cost = 0.0
            moq = _as_number(entry.get("minOrderQuantity"))
            if moq is None or moq < 0:
                flags.add(f"{path}.minOrderQuantity", f"quantité minimale invalide ({entry.get('minOrderQuantity')!r}), 0 par défaut")
                moq = 0
            region = _as_text(entry.get("region"))
            if not region:
                flags.add(f"{path}.region", "région manquante")
            costs.append(
                ManufacturingCost(
                    region=region,
                    base_unit_cost=unit_cost,
                    min_order_quantity=int(moq),
                    currency=_as_text(entry.get("currency")) or "USD",
                    lead_time=_as_text(entry.get("leadTime")),
                    notes=_optional_text(entry.get("notes")),
                )
            )

    raw_sustainability = payload.get("sustainabilityInfo")
    if raw_sustainability is None:
        flags.add("sustainabilityInfo", "section absente, remplacée par un objet vide")
        raw_sustainability = {}
    elif not isinstance(raw_sustainability, dict):
        flags.add("sustainabilityInfo", "type invalide, remplacé par un objet vide")
        raw_sustainability = {}
    sustainability = SustainabilityInfo(
        environmental_impact=_as_text(raw_sustainability.get("environmentalImpact")),
        recyclability=_as_text(raw_sustainability.get("recyclability")),
        certifications=_string_list(
            raw_sustainability,
            "certifications",
            "sustainabilityInfo.certifications",
            flags,
            flag_absent=False,
        ),
    )

    record = FabricResearchRecord(
        fabric_type=fabric_type,
        description=description,
        composition=_string_list(payload, "composition", "composition", flags),
        properties=properties,
        applications=_string_list(payload, "applications", "applications", flags),
        manufacturing_costs=costs,
        sustainability_info=sustainability,
        care_instructions=_string_list(payload, "careInstructions", "careInstructions", flags),
        alternatives=_string_list(payload, "alternatives", "alternatives", flags),
        sources=_string_list(payload, "sources", "sources", flags),
    )

    if request is not None:
        serialized = record.to_dict()
        for dotted in request.expected_populated:
            if _is_empty_path(serialized, dotted):
                flags.add(dotted, "section demandée mais vide")

        region = request.params.get("region")
        if region and str(region).lower() != "global" and costs:
            if not any(c.region.lower() == str(region).lower() for c in costs):
                flags.add("manufacturingCosts", f"aucune estimation pour la région demandée ({region})")

    return record


# ---------------------------------------------------------------------------
# Compatibilité
# ---------------------------------------------------------------------------


def _validate_compatibility(payload: Dict[str, Any], flags: _Flags) -> CompatibilityResult:
    raw = payload.get("compatible")
    if isinstance(raw, bool):
        compatible = raw
    elif isinstance(raw, str) and raw.strip().lower() in ("true", "yes"):
        compatible = True
        flags.add("compatible", f"booléen reçu sous forme de texte ({raw!r})")
    elif isinstance(raw, str) and raw.strip().lower() in ("false", "no"):
        compatible = False
        flags.add("compatible", f"booléen reçu sous forme de texte ({raw!r})")
    else:
        compatible = False
        flags.add("compatible", f"verdict booléen manquant ou invalide ({raw!r})", blocking=True)

    reasons = _string_list(payload, "reasons", "reasons", flags)

    alternatives: Optional[List[str]] = None
    if compatible:
        if payload.get("alternatives"):
            flags.add("alternatives", "alternatives ignorées pour un verdict compatible")
    elif payload.get("alternatives") is None:
        flags.add("alternatives", "alternatives absentes pour un verdict incompatible, liste vide")
        alternatives = []
    else:
        alternatives = _string_list(payload, "alternatives", "alternatives", flags)

    return CompatibilityResult(compatible=compatible, reasons=reasons, alternatives=alternatives)


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


def _validate_suggestion(
    payload: Dict[str, Any],
    request: Optional[GenerationRequest],
    flags: _Flags,
) -> SuggestionResult:
    product_type = _as_text(payload.get("productType"))
    if not product_type:
        requested = (request.params.get("productType") if request else None) or ""
        flags.add("productType", "type de produit absent, repris de la requête" if requested else "type de produit absent")
        product_type = requested

    requested_properties: List[str] = list(request.params.get("properties", [])) if request else []

    fabrics: List[RecommendedFabric] = []
    raw_fabrics = payload.get("recommendedFabrics")
    if not isinstance(raw_fabrics, list) or not raw_fabrics:
        flags.add("recommendedFabrics", "au moins un tissu recommandé est requis", blocking=True)
        raw_fabrics = []

    for index, entry in enumerate(raw_fabrics):
        path = f"recommendedFabrics[{index}]"
        if not isinstance(entry, dict):
            flags.add(path, "entrée illisible", blocking=True)
            continue

        name = _as_text(entry.get("name"))
        if not name:
            flags.add(f"{path}.name", "nom de tissu manquant", blocking=True)

        property_ratings: Dict[str, float] = {}
        raw_ratings = entry.get("propertyRatings")
        if isinstance(raw_ratings, dict):
            for prop, value in raw_ratings.items():
                rating = _clamp_rating(value, f"{path}.propertyRatings.{prop}", flags)
                if rating is not None:
                    property_ratings[str(prop)] = rating
        elif raw_ratings is not None:
            flags.add(f"{path}.propertyRatings", "type invalide, ignoré")
        for prop in requested_properties:
            if prop not in property_ratings:
                flags.add(f"{path}.propertyRatings.{prop}", "propriété demandée non notée")

        ratings = {key: _clamp_rating(entry.get(key), f"{path}.{key}", flags) for key in RATING_FIELDS}

        fabrics.append(
            RecommendedFabric(
                name=name,
                description=_as_text(entry.get("description")),
                primary_use=_as_text(entry.get("primaryUse")),
                best_for=_as_text(entry.get("bestFor")),
                composition=_as_text(entry.get("composition")),
                weight=_as_text(entry.get("weight")),
                care=_as_text(entry.get("care")),
                property_ratings=property_ratings,
                ratings=ratings,
                considerations=_as_text(entry.get("considerations")),
            )
        )

    return SuggestionResult(
        product_type=product_type,
        recommended_fabrics=fabrics,
        notes=_as_text(payload.get("notes")),
    )


# ---------------------------------------------------------------------------
# Points d'entrée
# ---------------------------------------------------------------------------


def validate_payload(
    kind: Union[RequestKind, str],
    payload: Any,
    request: Optional[GenerationRequest] = None,
    raw_text: Optional[str] = None,
) -> ValidatedResult:
    """
    Valide un payload déjà décodé (dict / list) pour le type demandé.
    Lève MalformedResponse si la forme racine est inexploitable.
    """
    resolved = resolve_kind(kind)
    flags = _Flags()

    if resolved is RequestKind.ITEM_EXTRACTION:
        records: List[Any] = _validate_items(payload, raw_text, flags)
    else:
        _check_structure(payload, get_contract(resolved), raw_text)
        if resolved is RequestKind.FABRIC_RESEARCH:
            records = [_validate_research(payload, request, flags)]
        elif resolved is RequestKind.COMPATIBILITY:
            records = [_validate_compatibility(payload, flags)]
        else:
            records = [_validate_suggestion(payload, request, flags)]

    result = ValidatedResult(kind=resolved, records=records, review_flags=flags.items)
    if result.is_clean:
        logger.info("Extraction %s propre (%d enregistrement(s)).", resolved.value, len(records))
    else:
        logger.warning(
            "Extraction %s à revoir: %d drapeau(x) dont %d bloquant(s).",
            resolved.value,
            len(result.review_flags),
            len(result.blocking_flags),
        )
    return result


def parse(
    kind: Union[RequestKind, str],
    raw_text: Optional[str],
    request: Optional[GenerationRequest] = None,
) -> ValidatedResult:
    """
    Parse le texte brut renvoyé par le service puis applique la validation
    champ par champ. MalformedResponse si le texte n'est pas décodable.
    """
    payload = locate_json(raw_text)
    return validate_payload(kind, payload, request=request, raw_text=raw_text)


def revalidate_record(kind: RequestKind, record: Any) -> List[ReviewFlag]:
    """Drapeaux bloquants recalculés pour un enregistrement unique édité."""
    flags = _Flags()
    if isinstance(record, FabricResearchRecord):
        if not record.fabric_type.strip():
            flags.add("fabricType", "type de tissu manquant", blocking=True)
        if not record.description.strip():
            flags.add("description", "description manquante", blocking=True)
    elif isinstance(record, CompatibilityResult):
        if not isinstance(record.compatible, bool):
            flags.add("compatible", "verdict booléen manquant", blocking=True)
    elif isinstance(record, SuggestionResult):
        if not record.recommended_fabrics:
            flags.add("recommendedFabrics", "au moins un tissu recommandé est requis", blocking=True)
        for index, fabric in enumerate(record.recommended_fabrics):
            if not fabric.name.strip():
                flags.add(f"recommendedFabrics[{index}].name", "nom de tissu manquant", blocking=True)
    else:
        raise TypeError(f"Enregistrement non supporté pour {kind.value}: {type(record).__name__}")
    return flags.items


def flag_paths(flags: Sequence[ReviewFlag]) -> List[str]:
    return [f.path for f in flags]


def split_flags(flags: Sequence[ReviewFlag]) -> Tuple[List[ReviewFlag], List[ReviewFlag]]:
    """(bloquants, non bloquants)"""
    blocking = [f for f in flags if f.blocking]
    return blocking, [f for f in flags if not f.blocking]


def merge_flags(current: Sequence[ReviewFlag], carried: Sequence[ReviewFlag]) -> List[ReviewFlag]:
    """
    Drapeaux recalculés + drapeaux non bloquants reportés du parsing.

    Les bloquants reportés sont ignorés : ils sont toujours recalculés depuis
    la donnée courante. Un seul drapeau par chemin (le recalculé l'emporte).
    """
    merged = list(current)
    seen = {f.path for f in merged}
    for flag in carried:
        if flag.blocking or flag.path in seen:
            continue
        merged.append(flag)
        seen.add(flag.path)
    return merged
