# domain/templates/fabrics.py

from __future__ import annotations

import logging
from typing import Any, Dict

from .base import RATING_SCHEMA, RequestKind, ResponseContract, string_list

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------
# Recherche tissu : toutes les sections doivent être présentes,
# éventuellement vides, pour que l'éditeur affiche des blocs cohérents.
# --------------------------------------------------------------------

FABRIC_RESEARCH_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "fabricType": {"type": "string", "description": "name of the fabric"},
        "description": {"type": "string", "description": "brief description"},
        "composition": string_list("constituent materials"),
        "properties": {
            "type": "array",
            "description": "technical properties",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "property name"},
                    "value": {"type": "string", "description": "property value"},
                    "description": {"type": "string", "description": "brief explanation"},
                    "unit": {"type": "string", "description": "unit of measurement if applicable"},
                },
                "required": ["name", "value"],
            },
        },
        "applications": string_list("typical apparel applications"),
        "manufacturingCosts": {
            "type": "array",
            "description": "manufacturing cost estimates per region",
            "items": {
                "type": "object",
                "properties": {
                    "region": {"type": "string", "description": "region name"},
                    "baseUnitCost": {"type": "number", "description": "cost per unit"},
                    "minOrderQuantity": {"type": "integer", "description": "minimum order quantity"},
                    "currency": {"type": "string", "description": "ISO currency, USD unless specified"},
                    "leadTime": {"type": "string", "description": "production lead time"},
                    "notes": {"type": "string", "description": "optional notes"},
                },
                "required": ["region", "baseUnitCost", "minOrderQuantity", "currency", "leadTime"],
            },
        },
        "sustainabilityInfo": {
            "type": "object",
            "description": "environmental profile",
            "properties": {
                "environmentalImpact": {"type": "string", "description": "environmental impact"},
                "recyclability": {"type": "string", "description": "recyclability"},
                "certifications": string_list("certifications such as OEKO-TEX or GOTS"),
            },
            "required": ["environmentalImpact", "recyclability", "certifications"],
        },
        "careInstructions": string_list("care instructions"),
        "alternatives": string_list("alternative fabrics"),
        "sources": string_list("information sources"),
    },
    "required": [
        "fabricType",
        "description",
        "composition",
        "properties",
        "applications",
        "manufacturingCosts",
        "sustainabilityInfo",
        "careInstructions",
        "alternatives",
        "sources",
    ],
}


COMPATIBILITY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "compatible": {"type": "boolean", "description": "true or false"},
        "reasons": string_list("reasons supporting the verdict"),
        "alternatives": string_list(
            "alternative fabrics or production methods, only when not compatible"
        ),
    },
    "required": ["compatible", "reasons"],
}


RECOMMENDED_FABRIC_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "description": "fabric name"},
        "description": {"type": "string", "description": "short description"},
        "primaryUse": {"type": "string", "description": "primary use"},
        "bestFor": {"type": "string", "description": "what it is best for"},
        "composition": {"type": "string", "description": "composition"},
        "weight": {"type": "string", "description": "fabric weight, e.g. 180 gsm"},
        "care": {"type": "string", "description": "care summary"},
        "propertyRatings": {
            "type": "object",
            "description": "rating from 1 to 5 for each requested property",
            "additionalProperties": RATING_SCHEMA,
        },
        "costRating": dict(RATING_SCHEMA, description="1 (cheap) to 5 (expensive)"),
        "availabilityRating": dict(RATING_SCHEMA, description="1 to 5"),
        "durabilityRating": dict(RATING_SCHEMA, description="1 to 5"),
        "sustainabilityRating": dict(RATING_SCHEMA, description="1 to 5"),
        "recyclability": dict(RATING_SCHEMA, description="1 to 5"),
        "waterUsage": dict(RATING_SCHEMA, description="1 (low) to 5 (high)"),
        "considerations": {"type": "string", "description": "caveats to keep in mind"},
    },
    "required": ["name"],
}

SUGGESTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "productType": {"type": "string", "description": "product type as requested"},
        "recommendedFabrics": {
            "type": "array",
            "minItems": 1,
            "description": "recommended fabrics, best match first",
            "items": RECOMMENDED_FABRIC_SCHEMA,
        },
        "notes": {"type": "string", "description": "general notes"},
    },
    "required": ["productType", "recommendedFabrics"],
}


FABRIC_CONTRACTS: Dict[RequestKind, ResponseContract] = {
    RequestKind.FABRIC_RESEARCH: ResponseContract(
        kind=RequestKind.FABRIC_RESEARCH,
        json_schema=FABRIC_RESEARCH_SCHEMA,
        max_output_tokens=4000,
        temperature=0.2,
    ),
    RequestKind.COMPATIBILITY: ResponseContract(
        kind=RequestKind.COMPATIBILITY,
        json_schema=COMPATIBILITY_SCHEMA,
        max_output_tokens=1000,
        temperature=0.1,
    ),
    RequestKind.SUGGESTION: ResponseContract(
        kind=RequestKind.SUGGESTION,
        json_schema=SUGGESTION_SCHEMA,
        max_output_tokens=1500,
        temperature=0.3,
    ),
}
