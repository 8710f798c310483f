# domain/request_builder.py

"""
Construction des requêtes de génération (instruction + contrat de réponse)
pour les quatre types de requêtes du pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from domain.contract_text import describe_contract
from domain.errors import InvalidRequest
from domain.prompt import (
    COMPATIBILITY_CONTRACT,
    DETAIL_LEVEL_INSTRUCTIONS,
    FABRIC_RESEARCH_CONTRACT,
    ITEM_EXTRACTION_CONTRACT,
    JSON_OUTPUT_RULES,
    REGION_EMPHASIS,
    SUGGESTION_CONTRACT,
    SUSTAINABILITY_EMPHASIS,
)
from domain.templates import RequestKind, ResponseContract, get_contract

logger = logging.getLogger(__name__)

DETAIL_LEVELS = ("basic", "detailed", "comprehensive")
PRICE_POINTS = ("budget", "mid-range", "premium")
SEASONALITIES = ("summer", "winter", "all-season")

# Sections qui doivent revenir non vides selon le niveau de détail
_DETAIL_EXPECTATIONS: Dict[str, Tuple[str, ...]] = {
    "basic": ("composition", "properties"),
    "detailed": ("composition", "properties", "applications", "careInstructions", "manufacturingCosts"),
    "comprehensive": (
        "composition",
        "properties",
        "applications",
        "careInstructions",
        "manufacturingCosts",
        "alternatives",
        "sources",
    ),
}

_SUSTAINABILITY_EXPECTATIONS = (
    "sustainabilityInfo.environmentalImpact",
    "sustainabilityInfo.recyclability",
    "sustainabilityInfo.certifications",
)


@dataclass
class GenerationRequest:
    """
    Requête prête à envoyer au service de génération.

    expected_populated liste les chemins de champs que l'instruction a
    explicitement demandés : le validateur signale ceux qui reviennent vides.
    """
    kind: RequestKind
    system_instruction: str
    user_instruction: str
    response_contract: ResponseContract
    max_output_tokens: int
    temperature: float
    expected_populated: Tuple[str, ...] = ()
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def instruction(self) -> str:
        return self.system_instruction + "\n\n" + self.user_instruction


# ---------------------------------------------------------------------------
# Helpers de validation des paramètres
# ---------------------------------------------------------------------------


def _require_text(params: Mapping[str, Any], key: str) -> str:
    value = params.get(key)
    if not isinstance(value, str) or not value.strip():
        logger.error("Paramètre requis manquant ou vide: %s", key)
        raise InvalidRequest(f"Paramètre requis manquant ou vide: {key}")
    return value.strip()


def _optional_text(params: Mapping[str, Any], key: str) -> Optional[str]:
    value = params.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRequest(f"Paramètre {key} invalide (str attendu): {value!r}")
    return value.strip() or None


def _flag(params: Mapping[str, Any], key: str) -> bool:
    value = params.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise InvalidRequest(f"Paramètre {key} invalide (booléen attendu): {value!r}")
    return value


def _choice(params: Mapping[str, Any], key: str, allowed: Tuple[str, ...], default: Optional[str]) -> Optional[str]:
    value = _optional_text(params, key)
    if value is None:
        return default
    value = value.lower()
    if value not in allowed:
        raise InvalidRequest(f"Paramètre {key} invalide: {value!r} (attendu: {', '.join(allowed)})")
    return value


def _string_list(params: Mapping[str, Any], key: str, required: bool = False) -> List[str]:
    value = params.get(key)
    if value is None:
        if required:
            raise InvalidRequest(f"Paramètre requis manquant: {key}")
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise InvalidRequest(f"Paramètre {key} invalide (liste de str attendue): {value!r}")
    cleaned = [str(v).strip() for v in value if str(v).strip()]
    return cleaned


def _format_instruction(body: str, contract: ResponseContract) -> str:
    return (
        f"{body}\n\n"
        f"{JSON_OUTPUT_RULES}\n\n"
        "FIELDS OF THE JSON OBJECT:\n"
        f"{describe_contract(contract.json_schema)}"
    )


# ---------------------------------------------------------------------------
# Builders par type
# ---------------------------------------------------------------------------


def _build_item_extraction(params: Mapping[str, Any], contract: ResponseContract) -> GenerationRequest:
    free_text = _require_text(params, "freeText")
    body = (
        "Extract structured apparel item specifications from these client notes:\n\n"
        f"\"\"\"\n{free_text}\n\"\"\"\n\n"
        "Wrap the items in a top-level object: {\"items\": [ ... ]}."
    )
    return GenerationRequest(
        kind=RequestKind.ITEM_EXTRACTION,
        system_instruction=ITEM_EXTRACTION_CONTRACT,
        user_instruction=_format_instruction(body, contract),
        response_contract=contract,
        max_output_tokens=contract.max_output_tokens,
        temperature=contract.temperature,
        params={"freeText": free_text},
    )


def _build_fabric_research(params: Mapping[str, Any], contract: ResponseContract) -> GenerationRequest:
    fabric_type = _require_text(params, "fabricType")
    properties = _string_list(params, "properties")
    region = _optional_text(params, "region") or "global"
    sustainability = _flag(params, "sustainabilityFocus")
    detail_level = _choice(params, "detailLevel", DETAIL_LEVELS, "comprehensive")

    expected: List[str] = list(_DETAIL_EXPECTATIONS[detail_level])
    focus = ", ".join(properties) if properties else "all relevant properties"

    lines = [
        f"Research the following fabric type: {fabric_type}",
        f"Provide {detail_level} information about its properties, focusing on {focus}.",
        DETAIL_LEVEL_INSTRUCTIONS[detail_level],
        f"Include manufacturing cost estimates for {region}.",
    ]
    if region.lower() != "global":
        lines.append(REGION_EMPHASIS.format(region=region))
        if "manufacturingCosts" not in expected:
            expected.append("manufacturingCosts")
    if sustainability:
        lines.append(SUSTAINABILITY_EMPHASIS)
        expected.extend(_SUSTAINABILITY_EXPECTATIONS)
    if properties and "properties" not in expected:
        expected.append("properties")

    return GenerationRequest(
        kind=RequestKind.FABRIC_RESEARCH,
        system_instruction=FABRIC_RESEARCH_CONTRACT,
        user_instruction=_format_instruction("\n".join(lines), contract),
        response_contract=contract,
        max_output_tokens=contract.max_output_tokens,
        temperature=contract.temperature,
        expected_populated=tuple(expected),
        params={
            "fabricType": fabric_type,
            "properties": properties,
            "region": region,
            "sustainabilityFocus": sustainability,
            "detailLevel": detail_level,
        },
    )


def _build_compatibility(params: Mapping[str, Any], contract: ResponseContract) -> GenerationRequest:
    fabric_type = _require_text(params, "fabricType")
    method = _require_text(params, "productionMethod")
    body = (
        f"Analyze the compatibility between {fabric_type} fabric and the {method} "
        "production method.\n"
        "Determine if they are compatible, and why or why not.\n"
        "When they are NOT compatible, list alternative fabrics or methods in \"alternatives\"."
    )
    return GenerationRequest(
        kind=RequestKind.COMPATIBILITY,
        system_instruction=COMPATIBILITY_CONTRACT,
        user_instruction=_format_instruction(body, contract),
        response_contract=contract,
        max_output_tokens=contract.max_output_tokens,
        temperature=contract.temperature,
        params={"fabricType": fabric_type, "productionMethod": method},
    )


def _build_suggestion(params: Mapping[str, Any], contract: ResponseContract) -> GenerationRequest:
    product_type = _require_text(params, "productType")
    properties = _string_list(params, "properties", required=True)
    price_point = _choice(params, "pricePoint", PRICE_POINTS, None)
    if price_point is None:
        raise InvalidRequest("Paramètre requis manquant ou vide: pricePoint")
    seasonality = _choice(params, "seasonality", SEASONALITIES, None)
    sustainability = _flag(params, "sustainability")

    lines = [
        f"Suggest fabrics for a {product_type} with the following requirements:",
        f"- Properties needed: {', '.join(properties) if properties else 'no specific property'}",
        f"- Price point: {price_point}",
    ]
    if seasonality:
        lines.append(f"- Seasonality: {seasonality}")
    if sustainability:
        lines.append("- Sustainability is important")
    lines.append(
        "Order \"recommendedFabrics\" from best match to weakest match. "
        "In \"propertyRatings\", rate each requested property."
    )

    return GenerationRequest(
        kind=RequestKind.SUGGESTION,
        system_instruction=SUGGESTION_CONTRACT,
        user_instruction=_format_instruction("\n".join(lines), contract),
        response_contract=contract,
        max_output_tokens=contract.max_output_tokens,
        temperature=contract.temperature,
        params={
            "productType": product_type,
            "properties": properties,
            "pricePoint": price_point,
            "seasonality": seasonality,
            "sustainability": sustainability,
        },
    )


_BUILDERS: Dict[RequestKind, Callable[[Mapping[str, Any], ResponseContract], GenerationRequest]] = {
    RequestKind.ITEM_EXTRACTION: _build_item_extraction,
    RequestKind.FABRIC_RESEARCH: _build_fabric_research,
    RequestKind.COMPATIBILITY: _build_compatibility,
    RequestKind.SUGGESTION: _build_suggestion,
}


def resolve_kind(kind: Union[RequestKind, str]) -> RequestKind:
    if isinstance(kind, RequestKind):
        return kind
    try:
        return RequestKind(str(kind).strip().lower())
    except ValueError as exc:
        raise InvalidRequest(f"Type de requête inconnu: {kind!r}") from exc


def build(kind: Union[RequestKind, str], params: Optional[Mapping[str, Any]]) -> GenerationRequest:
    """
    Construit la requête de génération pour le type demandé.
    Lève InvalidRequest si les paramètres requis sont absents ou vides.
    """
    resolved = resolve_kind(kind)
    if params is None or not isinstance(params, Mapping):
        raise InvalidRequest(f"Paramètres absents pour la requête {resolved.value}.")

    contract = get_contract(resolved)
    request = _BUILDERS[resolved](params, contract)
    logger.info(
        "Requête %s construite (instruction=%d chars, attendus=%s).",
        resolved.value,
        len(request.instruction),
        list(request.expected_populated),
    )
    return request
