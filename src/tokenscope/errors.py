"""Shared error codes and exceptions for consistent error handling across analyzers"""

from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Standard error codes raised or logged by the analysis engine"""

    # Caller errors
    SESSION_NOT_FOUND = "session_not_found"
    MESSAGE_RETRIEVAL_FAILED = "message_retrieval_failed"

    # Degradations (logged, never raised to the top-level caller)
    BACKEND_UNAVAILABLE = "backend_unavailable"
    COLLABORATOR_FAILED = "collaborator_failed"
    TIMEOUT = "timeout"

    # Configuration
    PRICING_CONFIG_INVALID = "pricing_config_invalid"


class ErrorDetail(BaseModel):
    """Structured error detail attached to an exception"""

    code: ErrorCode
    message: str
    detail: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    class Config:
        use_enum_values = True


class TokenscopeError(Exception):
    """Base class for all tokenscope errors"""

    code: ErrorCode = ErrorCode.COLLABORATOR_FAILED

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.metadata = metadata

    def to_detail(self) -> ErrorDetail:
        """Convert to a serializable ErrorDetail"""
        return ErrorDetail(
            code=self.code,
            message=self.message,
            detail=self.detail,
            metadata=self.metadata
        )


class SessionNotFoundError(TokenscopeError):
    """No usable session id was supplied"""

    code = ErrorCode.SESSION_NOT_FOUND


class MessageRetrievalError(TokenscopeError):
    """The host could not return the messages of the requested session"""

    code = ErrorCode.MESSAGE_RETRIEVAL_FAILED


class BackendUnavailableError(TokenscopeError):
    """A tokenizer backend library is not installed or cannot load a given key"""

    code = ErrorCode.BACKEND_UNAVAILABLE


class PricingConfigError(TokenscopeError):
    """The pricing catalog could not be parsed"""

    code = ErrorCode.PRICING_CONFIG_INVALID
