# domain/retry_policy.py

"""
Politique de retry côté appelant pour les appels de génération.

Seules les erreurs transitoires (RateLimited, GenerationTimeout) sont
retentées, avec backoff exponentiel. Une réponse mal formée n'est jamais
retentée.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from domain.errors import GenerationTimeout, RateLimited

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    base_delay: float = 1.0
    factor: float = 2.0
    max_delay: float = 30.0

    def delay_for(self, attempt: int) -> float:
        """Délai avant la tentative attempt+1 (attempt commence à 1)."""
        delay = self.base_delay * (self.factor ** max(attempt - 1, 0))
        return min(delay, self.max_delay)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """
    Exécute operation() et la relance sur RateLimited / GenerationTimeout,
    au plus policy.max_attempts fois au total.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except (RateLimited, GenerationTimeout) as exc:
            if attempt >= max(policy.max_attempts, 1):
                logger.error(
                    "Échec définitif après %d tentative(s): %s (%s)",
                    attempt,
                    exc,
                    exc.status.value,
                )
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "Tentative %d/%d échouée (%s), nouvel essai dans %.1fs.",
                attempt,
                policy.max_attempts,
                exc.status.value,
                delay,
            )
            await sleep(delay)
