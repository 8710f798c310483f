# domain/ai_status.py
from __future__ import annotations

from enum import Enum


class ResultStatus(str, Enum):
    OK = "ok"
    NEEDS_REVIEW = "needs_review"

    # erreurs appelant
    INVALID_REQUEST = "invalid_request"

    # erreurs IA/format
    MALFORMED_RESPONSE = "malformed_response"

    # erreurs infra (transitoires ou non)
    GENERATION_TIMEOUT = "generation_timeout"
    RATE_LIMITED = "rate_limited"
    GENERATION_ERROR = "generation_error"

    # persistance
    UNPERSISTABLE = "unpersistable"

    # dégradations
    CANCELLED = "cancelled"
    FALLBACK_USED = "fallback_used"
