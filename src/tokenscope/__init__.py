"""Token usage and cost accounting for LLM sessions"""

from tokenscope.config import TokenscopeConfig
from tokenscope.errors import (
    BackendUnavailableError,
    ErrorCode,
    MessageRetrievalError,
    PricingConfigError,
    SessionNotFoundError,
    TokenscopeError,
)
from tokenscope.models import SessionReport
from tokenscope.service import TokenscopeService
from tokenscope.sessions.client import SessionClient

__version__ = "1.4.0"

__all__ = [
    "TokenscopeConfig",
    "TokenscopeService",
    "SessionReport",
    "SessionClient",
    "ErrorCode",
    "TokenscopeError",
    "SessionNotFoundError",
    "MessageRetrievalError",
    "BackendUnavailableError",
    "PricingConfigError",
]
