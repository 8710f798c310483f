# domain/contract_text.py

"""
Rendu d'un JSON Schema de contrat en descriptions de champs en langage naturel.

Le schéma n'est jamais envoyé tel quel au service de génération : on l'insère
dans l'instruction sous forme de liste de champs lisible.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

_TYPE_LABELS = {
    "string": "string",
    "number": "number",
    "integer": "integer",
    "boolean": "true/false",
    "object": "object",
    "array": "array",
}


def _type_label(schema: Dict[str, Any]) -> str:
    raw_type = schema.get("type")
    if isinstance(raw_type, list):
        return " | ".join(_TYPE_LABELS.get(t, str(t)) for t in raw_type)
    if raw_type == "array":
        items = schema.get("items")
        if isinstance(items, dict):
            inner = items.get("type")
            if inner == "object":
                return "array of objects"
            return f"array of {_TYPE_LABELS.get(inner, 'values')}"
    return _TYPE_LABELS.get(raw_type, "value")


def _constraints(schema: Dict[str, Any]) -> List[str]:
    notes: List[str] = []
    if "enum" in schema:
        notes.append("one of: " + ", ".join(str(v) for v in schema["enum"]))
    if "minimum" in schema and "maximum" in schema:
        notes.append(f"between {schema['minimum']} and {schema['maximum']}")
    elif "minimum" in schema:
        notes.append(f"at least {schema['minimum']}")
    if schema.get("minItems"):
        notes.append(f"at least {schema['minItems']} entry")
    return notes


def _walk(schema: Dict[str, Any], indent: int, lines: List[str]) -> None:
    props = schema.get("properties")
    if not isinstance(props, dict):
        return

    required = set(schema.get("required", []))
    pad = "  " * indent
    for name, prop_schema in props.items():
        if not isinstance(prop_schema, dict):
            continue

        parts = [_type_label(prop_schema), "required" if name in required else "optional"]
        parts.extend(_constraints(prop_schema))
        line = f"{pad}- \"{name}\" ({', '.join(parts)})"
        description = prop_schema.get("description")
        if description:
            line += f": {description}"
        lines.append(line)

        # Recurse dans les objets et les tableaux d'objets
        if prop_schema.get("type") == "object":
            _walk(prop_schema, indent + 1, lines)
        items = prop_schema.get("items")
        if isinstance(items, dict) and items.get("type") == "object":
            _walk(items, indent + 1, lines)


def describe_contract(schema: Dict[str, Any]) -> str:
    """
    Transforme un schéma en liste de champs, un par ligne, avec type,
    caractère obligatoire, contraintes et description.
    """
    if not isinstance(schema, dict):
        raise TypeError("schema must be a dict")

    lines: List[str] = []
    _walk(schema, 0, lines)
    logger.debug("describe_contract: %d ligne(s) générée(s).", len(lines))
    return "\n".join(lines)
