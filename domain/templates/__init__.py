# domain/templates/__init__.py

from __future__ import annotations

import logging
from typing import Dict

from .base import RequestKind, ResponseContract
from .fabrics import FABRIC_CONTRACTS
from .items import ITEM_CONTRACTS

logger = logging.getLogger(__name__)

# Dictionnaire global de tous les contrats disponibles
ALL_CONTRACTS: Dict[RequestKind, ResponseContract] = {
    **ITEM_CONTRACTS,
    **FABRIC_CONTRACTS,
}

logger.debug(
    "ALL_CONTRACTS initialisé avec %d contrats: %s",
    len(ALL_CONTRACTS),
    [kind.value for kind in ALL_CONTRACTS.keys()],
)


def get_contract(kind: RequestKind) -> ResponseContract:
    """
    Récupère un contrat de réponse à partir de son enum RequestKind.
    Lève KeyError si le contrat n'existe pas.
    """
    return ALL_CONTRACTS[kind]
