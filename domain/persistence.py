# domain/persistence.py

"""
Adaptateur de persistance : résultat validé -> schéma du stockage externe.

Mapping pur (colonnes snake_case + created_by). Les drapeaux bloquants
empêchent la persistance ; les drapeaux non bloquants sont transmis tels quels.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from domain.errors import UnpersistableRecord
from domain.manufacturing import manufacturing_specs, measurement_schema_id
from domain.models import (
    CompatibilityResult,
    FabricResearchRecord,
    ParsedItem,
    ReviewFlag,
    SuggestionResult,
    ValidatedResult,
)
from domain.record_store import RecordStore, RecordStoreError, StorageRecord
from domain.templates import RequestKind
from domain.validator import flag_paths, split_flags

logger = logging.getLogger(__name__)

# Nom de table / type côté stockage
STORAGE_KINDS: Dict[RequestKind, str] = {
    RequestKind.ITEM_EXTRACTION: "parsed_item",
    RequestKind.FABRIC_RESEARCH: "fabric_research",
    RequestKind.COMPATIBILITY: "fabric_compatibility",
    RequestKind.SUGGESTION: "fabric_suggestion",
}


def _flags_under(flags: List[ReviewFlag], prefix: str) -> List[ReviewFlag]:
    return [f for f in flags if f.path == prefix or f.path.startswith(prefix + ".")]


def _item_record(item: ParsedItem, flags: List[ReviewFlag]) -> StorageRecord:
    return {
        "item_name": item.item_name,
        "category": item.category,
        "design_details": item.design_details,
        "fabric_type": item.fabric_type,
        "color_display": item.color_display,
        "color_hex": item.color_hex,
        "yardage_per_unit": item.yardage_per_unit,
        "expected_quantity": item.expected_quantity,
        "price_estimate": item.price_estimate,
        "measurements": {size: dict(grid) for size, grid in item.measurements.items()},
        "alternative_items": list(item.alternative_items),
        "primary_color": item.primary_color,
        "secondary_color": item.secondary_color,
        "measurement_schema_id": measurement_schema_id(item.category),
        "manufacturing_specs": manufacturing_specs(
            item.category,
            item.fabric_type,
            item.design_details,
            item.expected_quantity,
        ),
        "requires_review": item.requires_review or bool(flags),
        "review_flags": [f.to_dict() for f in flags],
    }


def _research_record(record: FabricResearchRecord, flags: List[ReviewFlag]) -> StorageRecord:
    data = record.to_dict()
    return {
        "fabric_type": record.fabric_type,
        "description": record.description,
        "composition": data["composition"],
        "properties": data["properties"],
        "applications": data["applications"],
        "manufacturing_costs": data["manufacturingCosts"],
        "sustainability_info": data["sustainabilityInfo"],
        "care_instructions": data["careInstructions"],
        "alternatives": data["alternatives"],
        "sources": data["sources"],
        "requires_review": bool(flags),
        "review_flags": [f.to_dict() for f in flags],
    }


def _compatibility_record(record: CompatibilityResult, flags: List[ReviewFlag]) -> StorageRecord:
    return {
        "compatible": record.compatible,
        "reasons": list(record.reasons),
        "alternatives": list(record.alternatives) if record.alternatives is not None else None,
        "requires_review": bool(flags),
        "review_flags": [f.to_dict() for f in flags],
    }


def _suggestion_record(record: SuggestionResult, flags: List[ReviewFlag]) -> StorageRecord:
    return {
        "product_type": record.product_type,
        "recommended_fabrics": [f.to_dict() for f in record.recommended_fabrics],
        "notes": record.notes,
        "requires_review": bool(flags),
        "review_flags": [f.to_dict() for f in flags],
    }


def to_storage_record(
    result: ValidatedResult,
    actor_id: Optional[Any],
    context: Optional[Mapping[str, Any]] = None,
) -> List[StorageRecord]:
    """
    Convertit un résultat validé en enregistrement(s) de stockage.

    - une entrée par ligne d'article, une seule pour les autres types
    - created_by = actor_id (None si anonyme)
    - context : colonnes additionnelles (ex: lead_id, production_method)

    Lève UnpersistableRecord si un drapeau bloquant est présent.
    """
    blocking, flags = split_flags(result.review_flags)
    if blocking:
        fields = flag_paths(blocking)
        logger.error(
            "Persistance refusée (%s): drapeau(x) bloquant(s) sur %s",
            result.kind.value,
            fields,
        )
        raise UnpersistableRecord(
            f"Enregistrement {result.kind.value} non persistable: {', '.join(fields)}",
            fields=fields,
        )

    records: List[StorageRecord] = []

    if result.kind is RequestKind.ITEM_EXTRACTION:
        for index, item in enumerate(result.records):
            records.append(_item_record(item, _flags_under(flags, f"items[{index}]")))
    elif result.kind is RequestKind.FABRIC_RESEARCH:
        records.append(_research_record(result.record, flags))
    elif result.kind is RequestKind.COMPATIBILITY:
        records.append(_compatibility_record(result.record, flags))
    else:
        records.append(_suggestion_record(result.record, flags))

    for record in records:
        if context:
            record.update(dict(context))
        record["created_by"] = actor_id

    logger.debug(
        "to_storage_record(%s): %d enregistrement(s), %d drapeau(x) non bloquant(s).",
        result.kind.value,
        len(records),
        len(flags),
    )
    return records


def persist(
    store: RecordStore,
    result: ValidatedResult,
    actor_id: Optional[Any],
    context: Optional[Mapping[str, Any]] = None,
) -> List[Any]:
    """
    Mappe puis crée chaque enregistrement dans le stockage ; renvoie les ids.

    Tout ou rien : si une création échoue, les enregistrements déjà créés
    pour ce résultat sont supprimés avant de relancer l'erreur.
    """
    kind = STORAGE_KINDS[result.kind]
    records = to_storage_record(result, actor_id, context)
    ids: List[Any] = []
    try:
        for record in records:
            ids.append(store.create(kind, record))
    except RecordStoreError:
        logger.error("Échec de persistance %s après %d création(s) : annulation.", kind, len(ids))
        _rollback(store, kind, ids)
        raise
    logger.info("Persistance %s OK: ids=%s (created_by=%r).", kind, ids, actor_id)
    return ids


def _rollback(store: RecordStore, kind: str, ids: List[Any]) -> None:
    for record_id in reversed(ids):
        try:
            store.delete(kind, record_id)
        except RecordStoreError:
            logger.exception("Annulation impossible pour %s #%r.", kind, record_id)
