# infrastructure/memory_store.py

from __future__ import annotations

import copy
import itertools
import logging
import threading
from typing import Any, Dict, List

from domain.record_store import RecordStore, RecordStoreError, StorageRecord

logger = logging.getLogger(__name__)


class InMemoryRecordStore(RecordStore):
    """
    Stockage en mémoire (développement et tests).
    Identifiants entiers croissants, partagés entre tous les types.
    """

    def __init__(self) -> None:
        self._records: Dict[str, Dict[int, StorageRecord]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create(self, kind: str, record: StorageRecord) -> int:
        if not isinstance(record, dict):
            raise RecordStoreError(f"Enregistrement {kind} invalide (dict attendu).")
        with self._lock:
            record_id = next(self._ids)
            self._records.setdefault(kind, {})[record_id] = copy.deepcopy(record)
        logger.debug("Enregistrement %s#%d créé.", kind, record_id)
        return record_id

    def delete(self, kind: str, record_id: Any) -> None:
        with self._lock:
            try:
                del self._records[kind][record_id]
            except KeyError as exc:
                raise RecordStoreError(f"Enregistrement {kind}#{record_id} introuvable.") from exc
        logger.debug("Enregistrement %s#%s supprimé.", kind, record_id)

    def get(self, kind: str, record_id: Any) -> StorageRecord:
        with self._lock:
            try:
                return copy.deepcopy(self._records[kind][record_id])
            except KeyError as exc:
                raise RecordStoreError(f"Enregistrement {kind}#{record_id} introuvable.") from exc

    def all(self, kind: str) -> List[StorageRecord]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._records.get(kind, {}).values()]
