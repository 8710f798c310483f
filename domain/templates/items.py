# domain/templates/items.py

from __future__ import annotations

import logging
from typing import Any, Dict

from domain.categories import list_categories

from .base import RequestKind, ResponseContract, string_list

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------
# Une ligne d'article. Seuls itemName / category / measurements sont
# requis : le reste est complété (et signalé) par le validateur.
# --------------------------------------------------------------------

ITEM_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "itemName": {
            "type": "string",
            "description": "clear, descriptive name of the garment",
        },
        "category": {
            "type": "string",
            "enum": list_categories(),
            "description": "garment category",
        },
        "designDetails": {
            "type": "string",
            "description": "logos, artwork, special features",
        },
        "fabricType": {
            "type": "string",
            "description": "specific but realistic fabric type",
        },
        "colorDisplay": {"type": "string", "description": "readable color name"},
        "colorHex": {"type": "string", "description": "closest hex code, format #RRGGBB"},
        "yardagePerUnit": {
            "type": "number",
            "minimum": 0,
            "description": "realistic fabric yardage required per unit",
        },
        "expectedQuantity": {
            "type": "integer",
            "minimum": 1,
            "description": "quantity needed if mentioned, otherwise 1",
        },
        "priceEstimate": {
            "type": "number",
            "minimum": 0,
            "description": "unit price estimate in USD",
        },
        "measurements": {
            "type": "object",
            "description": (
                "object keyed by size (small, medium, large); each size maps "
                "measurement names to numbers in inches"
            ),
            "additionalProperties": {
                "type": "object",
                "additionalProperties": {"type": "number"},
            },
        },
        "alternativeItems": string_list("alternative product suggestions"),
        "primaryColor": {"type": "string", "description": "primary color name"},
        "secondaryColor": {"type": "string", "description": "secondary color name if applicable"},
    },
    "required": ["itemName", "category", "measurements"],
}

ITEM_EXTRACTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "items": {
            "type": "array",
            "minItems": 1,
            "items": ITEM_SCHEMA,
            "description": "one entry per distinct garment requested",
        },
    },
    "required": ["items"],
}

ITEM_CONTRACTS: Dict[RequestKind, ResponseContract] = {
    RequestKind.ITEM_EXTRACTION: ResponseContract(
        kind=RequestKind.ITEM_EXTRACTION,
        json_schema=ITEM_EXTRACTION_SCHEMA,
        max_output_tokens=4000,
        temperature=0.2,
    ),
}
