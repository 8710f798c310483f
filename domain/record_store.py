# domain/record_store.py

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

logger = logging.getLogger(__name__)

StorageRecord = Dict[str, Any]


class RecordStoreError(RuntimeError):
    """Erreur fonctionnelle liée au stockage externe."""


class RecordStore(ABC):
    """
    Interface du stockage externe (moteur hors périmètre).
    Une fois créé, l'enregistrement appartient au stockage, qui fait foi.
    """

    @abstractmethod
    def create(self, kind: str, record: StorageRecord) -> Any:
        """
        Crée l'enregistrement et renvoie son identifiant.
        Doit lever RecordStoreError en cas de problème fonctionnel.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, kind: str, record_id: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def get(self, kind: str, record_id: Any) -> StorageRecord:
        """Lève RecordStoreError si l'identifiant est inconnu."""
        raise NotImplementedError
