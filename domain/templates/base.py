# domain/templates/base.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class RequestKind(Enum):
    """
    Types de requêtes d'extraction.
    Chaque valeur correspond à un contrat de réponse JSON.
    """
    ITEM_EXTRACTION = "item_extraction"
    FABRIC_RESEARCH = "fabric_research"
    COMPATIBILITY = "compatibility"
    SUGGESTION = "suggestion"


@dataclass
class ResponseContract:
    """
    Contrat de réponse attendu pour un type de requête.

    - kind              : type de requête
    - json_schema       : schéma JSON (JSON Schema) attendu en sortie de l'IA
    - max_output_tokens : budget de sortie demandé au service
    - temperature       : température de génération
    """
    kind: RequestKind
    json_schema: Dict[str, Any]
    max_output_tokens: int = 1000
    temperature: float = 0.2

    @property
    def root_type(self) -> str:
        return self.json_schema.get("type", "object")


def string_list(description: str) -> Dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "description": description}


# Note 1..5 commune aux suggestions
RATING_SCHEMA: Dict[str, Any] = {
    "type": "number",
    "minimum": 1,
    "maximum": 5,
}
