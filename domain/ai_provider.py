# domain/ai_provider.py

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum

from domain.request_builder import GenerationRequest

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class AIProviderName(Enum):
    """
    Fournisseurs de génération de texte disponibles.
    """
    GEMINI = "gemini"
    OPENAI = "openai"


class TextGenerationGateway(ABC):
    """
    Interface commune des passerelles vers un service de génération de texte.

    Chaque implémentation doit :
    - envoyer une GenerationRequest (instruction système + instruction utilisateur)
    - renvoyer le texte brut produit
    - lever GenerationTimeout après un délai borné, RateLimited sur quota / HTTP 429,
      GenerationError pour toute autre erreur du service

    Aucun retry ici : c'est une politique de l'appelant.
    """

    @property
    @abstractmethod
    def name(self) -> AIProviderName:
        """
        Nom logique du provider.
        """
        raise NotImplementedError

    @abstractmethod
    async def send(self, request: GenerationRequest) -> str:
        """
        Envoie la requête et renvoie le texte brut (JSON attendu, non garanti).
        """
        raise NotImplementedError
