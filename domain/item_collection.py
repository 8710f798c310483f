# domain/item_collection.py

"""
Collection de travail des lignes extraites + moteur de fusion.

Logique de domaine pure (aucun état d'UI) : l'éditeur reçoit la collection
et appelle add / edit / edit_measurement / remove.
Un seul éditeur à la fois ; pas de verrou interne.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from domain.categories import (
    DEFAULT_SIZES,
    GarmentCategory,
    default_measurements,
    fields_for,
    resolve_category,
)
from domain.colors import DEFAULT_COLOR_HEX, normalize_hex
from domain.models import (
    CompatibilityResult,
    FabricResearchRecord,
    ParsedItem,
    ReviewFlag,
    SuggestionResult,
    ValidatedResult,
)
from domain.templates import RequestKind
from domain.validator import merge_flags, revalidate_items, revalidate_record

logger = logging.getLogger(__name__)


def _positive_float(value: Any) -> float:
    number = _to_float(value)
    if number <= 0:
        raise ValueError(f"Valeur strictement positive attendue: {value!r}")
    return number


def _non_negative_float(value: Any) -> float:
    number = _to_float(value)
    if number < 0:
        raise ValueError(f"Valeur positive ou nulle attendue: {value!r}")
    return number


def _quantity(value: Any) -> int:
    number = _to_float(value)
    if number < 1 or number != int(number):
        raise ValueError(f"Quantité entière >= 1 attendue: {value!r}")
    return int(number)


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Valeur numérique attendue: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Valeur numérique attendue: {value!r}") from exc
    if number != number or number in (float("inf"), float("-inf")):
        raise ValueError(f"Valeur numérique finie attendue: {value!r}")
    return number


def _text(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"Texte attendu: {value!r}")
    return value.strip()


def _hex(value: Any) -> str:
    normalized = normalize_hex(value)
    if normalized is None:
        raise ValueError(f"Couleur hex #RRGGBB attendue: {value!r}")
    return normalized


def _string_items(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"Liste de textes attendue: {value!r}")
    return [v.strip() for v in value if v.strip()]


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return _text(value) or None


def _boolean(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Booléen attendu: {value!r}")
    return value


def _category(value: Any) -> str:
    if not isinstance(value, (str, GarmentCategory)):
        raise ValueError(f"Catégorie attendue: {value!r}")
    resolved, recognized = resolve_category(value)
    if not recognized:
        logger.warning("Catégorie inconnue %r, repli sur generic.", value)
    return resolved.value


# Champ éditable (clé camelCase de l'éditeur) -> (attribut, coercition)
EDITABLE_FIELDS: Dict[str, Any] = {
    "itemName": ("item_name", _text),
    "category": ("category", _category),
    "designDetails": ("design_details", _text),
    "fabricType": ("fabric_type", _text),
    "colorDisplay": ("color_display", _text),
    "colorHex": ("color_hex", _hex),
    "yardagePerUnit": ("yardage_per_unit", _positive_float),
    "expectedQuantity": ("expected_quantity", _quantity),
    "priceEstimate": ("price_estimate", _non_negative_float),
    "requiresReview": ("requires_review", _boolean),
    "alternativeItems": ("alternative_items", _string_items),
    "primaryColor": ("primary_color", _optional_text),
    "secondaryColor": ("secondary_color", _optional_text),
}


def merge_measurements(
    measurements: Dict[str, Dict[str, float]],
    category: Any,
) -> Dict[str, Dict[str, float]]:
    """
    Reforme la grille pour la catégorie : valeurs conservées pour les champs
    communs, nouveaux champs à 0, champs obsolètes retirés. Toutes les tailles
    existantes sont conservées.
    """
    fields = fields_for(category)
    if not measurements:
        return default_measurements(category)

    merged: Dict[str, Dict[str, float]] = {}
    for size, grid in measurements.items():
        merged[size] = {name: float(grid.get(name, 0.0)) for name in fields}
    return merged


def new_item() -> ParsedItem:
    """Ligne par défaut : catégorie generic, grille small/medium/large à 0."""
    return ParsedItem(
        item_name="New Item",
        category=GarmentCategory.GENERIC.value,
        fabric_type="To be specified",
        color_display="Gray",
        color_hex=DEFAULT_COLOR_HEX,
        yardage_per_unit=1.0,
        expected_quantity=1,
        price_estimate=0.0,
        measurements=default_measurements(GarmentCategory.GENERIC, DEFAULT_SIZES),
        requires_review=True,
    )


# ---------------------------------------------------------------------------
# Drapeaux reportés du parsing
# ---------------------------------------------------------------------------

_ITEM_PATH = re.compile(r"^items\[(\d+)\](.*)$")

# (suffixe relatif à la ligne, ex. ".measurements.large.chest", drapeau d'origine)
CarriedFlag = Tuple[str, ReviewFlag]


def _carried_by_item(flags: Sequence[ReviewFlag], count: int) -> List[List[CarriedFlag]]:
    """Répartit les drapeaux non bloquants par ligne (chemins rendus relatifs)."""
    carried: List[List[CarriedFlag]] = [[] for _ in range(count)]
    for flag in flags:
        match = _ITEM_PATH.match(flag.path)
        if flag.blocking or not match or int(match.group(1)) >= count:
            continue
        carried[int(match.group(1))].append((match.group(2), flag))
    return carried


def _touches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + ".") or path.startswith(prefix + "[")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class ItemCollection:
    """
    Séquence ordonnée et dense de ParsedItem.

    Chaque mutation travaille sur une copie puis remplace la ligne :
    une entrée invalide lève ValueError sans modifier l'état.
    """

    def __init__(self, items: Optional[Sequence[ParsedItem]] = None) -> None:
        self._items: List[ParsedItem] = [item.copy() for item in (items or [])]
        self._carried: List[List[CarriedFlag]] = [[] for _ in self._items]
        self._listeners: List[Callable[["ItemCollection"], None]] = []

    # ------------------------------------------------------------------
    # Lecture
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> List[ParsedItem]:
        """Copies des lignes, dans l'ordre."""
        return [item.copy() for item in self._items]

    def get(self, index: int) -> ParsedItem:
        return self._at(index).copy()

    def to_view(self) -> List[Dict[str, Any]]:
        """Séquence complète pour l'éditeur, avec totalYardage calculé."""
        return [item.to_view() for item in self._items]

    def total_yardage(self, index: Optional[int] = None) -> float:
        """Métrage total d'une ligne, ou de toute la collection (jamais stocké)."""
        if index is not None:
            return self._at(index).total_yardage
        return sum(item.total_yardage for item in self._items)

    def snapshot(self) -> ValidatedResult:
        """Résultat validé recalculé à partir de l'état édité courant."""
        items = self.items()
        carried = [
            ReviewFlag(path=f"items[{index}]{suffix}", reason=flag.reason)
            for index, flags in enumerate(self._carried)
            for suffix, flag in flags
        ]
        return ValidatedResult(
            kind=RequestKind.ITEM_EXTRACTION,
            records=items,
            review_flags=merge_flags(revalidate_items(items), carried),
        )

    # ------------------------------------------------------------------
    # Écoute (vue externe)
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[["ItemCollection"], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Erreur dans un listener de la collection.")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def load(self, items: Sequence[ParsedItem], flags: Sequence[ReviewFlag] = ()) -> None:
        """
        Remplace toute la collection (nouveau résultat d'extraction).

        Les drapeaux non bloquants du parsing sont conservés par ligne et
        reportés dans snapshot() tant que le champ concerné n'est pas édité.
        """
        self._items = [item.copy() for item in items]
        self._carried = _carried_by_item(flags, len(self._items))
        logger.info("Collection chargée: %d ligne(s).", len(self._items))
        self._notify()

    def add(self, item: Optional[ParsedItem] = None) -> int:
        """Ajoute une ligne (ou une ligne par défaut) et renvoie son index."""
        added = item.copy() if item is not None else new_item()
        self._items.append(added)
        self._carried.append([])
        logger.debug("Ligne ajoutée (index=%d, nom=%r).", len(self._items) - 1, added.item_name)
        self._notify()
        return len(self._items) - 1

    def edit(self, index: int, field: str, value: Any) -> ParsedItem:
        """
        Met à jour un champ de la ligne.

        Changer "category" ne reforme PAS la grille de mesures :
        appeler merge_category_fields() (ou change_category()).
        """
        if field == "measurements":
            raise ValueError("Utiliser edit_measurement() pour modifier les mesures.")
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Champ non éditable: {field!r}")

        attr, coerce = EDITABLE_FIELDS[field]
        coerced = coerce(value)
        if field == "itemName" and not coerced:
            logger.warning("Ligne %d: nom d'article vidé, la persistance sera bloquée.", index)

        updated = self._at(index).copy()
        setattr(updated, attr, coerced)
        self._items[index] = updated
        if field == "requiresReview" and not coerced:
            # Revue humaine faite : la ligne est acceptée en l'état
            self._carried[index] = []
        else:
            self._drop_carried(index, f".{field}")
        logger.debug("Ligne %d: %s=%r", index, field, coerced)
        self._notify()
        return updated.copy()

    def edit_measurement(self, index: int, size: str, field: str, value: Any) -> ParsedItem:
        """Met à jour une mesure ; une valeur non numérique est rejetée sans écriture."""
        number = _to_float(value)
        if not isinstance(size, str) or not size.strip():
            raise ValueError(f"Taille invalide: {size!r}")
        if not isinstance(field, str) or not field.strip():
            raise ValueError(f"Champ de mesure invalide: {field!r}")

        size, field = size.strip(), field.strip()
        updated = self._at(index).copy()
        if size not in updated.measurements:
            # Nouvelle taille : grille complète de la catégorie, à zéro
            updated.measurements[size] = {name: 0.0 for name in fields_for(updated.category)}
        updated.measurements[size][field] = number
        self._items[index] = updated
        self._drop_carried(index, f".measurements.{size}.{field}", exact=(".measurements",))
        logger.debug("Ligne %d: mesure %s.%s=%s", index, size, field, number)
        self._notify()
        return updated.copy()

    def merge_category_fields(self, index: int) -> ParsedItem:
        """Aligne la grille de mesures sur le schéma de la catégorie courante."""
        updated = self._at(index).copy()
        before = {size: set(grid) for size, grid in updated.measurements.items()}
        updated.measurements = merge_measurements(updated.measurements, updated.category)
        self._items[index] = updated
        # Drapeaux de champs retirés par la fusion : plus de valeur à revoir
        kept = set(fields_for(updated.category))
        self._carried[index] = [
            (suffix, flag)
            for suffix, flag in self._carried[index]
            if suffix.count(".") != 3 or not suffix.startswith(".measurements.") or suffix.rsplit(".", 1)[-1] in kept
        ]
        logger.info(
            "Ligne %d: grille alignée sur %s (tailles=%s, champs avant=%s).",
            index,
            updated.category,
            list(updated.measurements.keys()),
            {k: sorted(v) for k, v in before.items()},
        )
        self._notify()
        return updated.copy()

    def change_category(self, index: int, category: Any) -> ParsedItem:
        """edit(category) puis fusion explicite de la grille."""
        self.edit(index, "category", category)
        return self.merge_category_fields(index)

    def remove(self, index: int) -> ParsedItem:
        """Retire une ligne ; la séquence reste dense."""
        self._at(index)
        removed = self._items.pop(index)
        self._carried.pop(index)
        logger.debug("Ligne %d retirée (%r).", index, removed.item_name)
        self._notify()
        return removed

    # ------------------------------------------------------------------

    def _drop_carried(self, index: int, *prefixes: str, exact: Sequence[str] = ()) -> None:
        self._carried[index] = [
            (suffix, flag)
            for suffix, flag in self._carried[index]
            if suffix not in exact and not any(_touches(suffix, p) for p in prefixes)
        ]

    def _at(self, index: int) -> ParsedItem:
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(self._items):
            raise IndexError(f"Index de ligne invalide: {index!r}")
        return self._items[index]


# ---------------------------------------------------------------------------
# Enregistrement unique (recherche, compatibilité, suggestion)
# ---------------------------------------------------------------------------

_RECORD_KINDS = {
    FabricResearchRecord: RequestKind.FABRIC_RESEARCH,
    CompatibilityResult: RequestKind.COMPATIBILITY,
    SuggestionResult: RequestKind.SUGGESTION,
}


class RecordEditor:
    """Porte un enregistrement unique en cours d'édition avant persistance."""

    def __init__(self) -> None:
        self._record: Optional[Any] = None
        self._carried: List[ReviewFlag] = []

    @property
    def record(self) -> Optional[Any]:
        return self._record

    @property
    def kind(self) -> Optional[RequestKind]:
        if self._record is None:
            return None
        return _RECORD_KINDS[type(self._record)]

    def load(self, record: Any, flags: Sequence[ReviewFlag] = ()) -> None:
        """Charge l'enregistrement avec les drapeaux non bloquants du parsing."""
        if type(record) not in _RECORD_KINDS:
            raise TypeError(f"Enregistrement non supporté: {type(record).__name__}")
        self._record = record
        self._carried = [f for f in flags if not f.blocking]
        logger.info("Enregistrement %s chargé dans l'éditeur.", _RECORD_KINDS[type(record)].value)

    def edit(self, field: str, value: Any) -> Any:
        """Remplace un attribut (nom snake_case) sur une copie de l'enregistrement."""
        if self._record is None:
            raise ValueError("Aucun enregistrement chargé.")
        if field.startswith("_") or not hasattr(self._record, field):
            raise ValueError(f"Champ inconnu: {field!r}")

        current = getattr(self._record, field)
        if field == "compatible" and not isinstance(value, bool):
            raise ValueError(f"Booléen attendu pour compatible: {value!r}")
        if isinstance(current, list) and not isinstance(value, list):
            raise ValueError(f"Liste attendue pour {field}: {value!r}")
        if isinstance(current, str) and not isinstance(value, str):
            raise ValueError(f"Texte attendu pour {field}: {value!r}")

        updated = copy.deepcopy(self._record)
        setattr(updated, field, value)
        if isinstance(updated, CompatibilityResult):
            if updated.compatible:
                updated.alternatives = None
            elif updated.alternatives is None:
                updated.alternatives = []
        self._record = updated
        touched = {_camel(field)}
        if isinstance(updated, CompatibilityResult) and updated.compatible:
            touched.add("alternatives")
        self._carried = [
            f for f in self._carried if not any(_touches(f.path, prefix) for prefix in touched)
        ]
        return updated

    def snapshot(self) -> ValidatedResult:
        if self._record is None:
            raise ValueError("Aucun enregistrement chargé.")
        kind = _RECORD_KINDS[type(self._record)]
        return ValidatedResult(
            kind=kind,
            records=[self._record],
            review_flags=merge_flags(revalidate_record(kind, self._record), self._carried),
        )
