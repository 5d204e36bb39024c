"""Token counting with lazily loaded, memoized tokenizer backends."""

import asyncio
import logging
import math
from typing import Any, Dict, Optional, Tuple, Union

from tokenscope.errors import BackendUnavailableError
from .backends import BACKEND_REGISTRY, TokenizerBackend, backend_key, get_backend
from .models import TokenModel, TokenizerSpec

logger = logging.getLogger(__name__)

_CacheKey = Tuple[str, str]


class TokenizerManager:
    """
    Count tokens under a tokenizer strategy.

    Encoders are loaded on first use (in the default thread pool) and memoized
    per (backend, key). Concurrent first requests for the same key wait on one
    shared load task. A failed load is remembered as None so the backend is not
    retried; every failure degrades that call to the length approximation.
    """

    def __init__(
        self,
        backends: Optional[Dict[str, TokenizerBackend]] = None,
        load_timeout: Optional[float] = 60.0
    ):
        self._backends = backends if backends is not None else BACKEND_REGISTRY
        self.load_timeout = load_timeout
        self._encoders: Dict[_CacheKey, Any] = {}
        self._loading: Dict[_CacheKey, "asyncio.Task[Any]"] = {}

    @staticmethod
    def approximate_token_count(content: str) -> int:
        """ceil(len / 4)"""
        return math.ceil(len(content) / 4)

    async def count_tokens(self, content: str, model: Union[TokenModel, TokenizerSpec]) -> int:
        """
        Count tokens of content under a strategy.

        Never raises for backend problems: falls back to the approximation for
        this call and keeps the manager usable.
        """
        if not content or not content.strip():
            return 0

        spec = model.spec if isinstance(model, TokenModel) else model
        backend = get_backend(spec, self._backends)
        key = backend_key(spec)
        if backend is None or key is None:
            return self.approximate_token_count(content)

        encoder = await self._get_encoder(spec.kind, backend, key)
        if encoder is None:
            return self.approximate_token_count(content)

        try:
            count = backend.count(encoder, content)
        except Exception as e:
            logger.warning(f"Token counting failed with {backend.name}:{key}, approximating: {e}")
            return self.approximate_token_count(content)

        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            logger.warning(f"Malformed count from {backend.name}:{key} ({count!r}), approximating")
            return self.approximate_token_count(content)
        return count

    def is_loaded(self, kind: str, key: str) -> bool:
        """Whether a usable encoder is cached for (kind, key)"""
        return self._encoders.get((kind, key)) is not None

    async def _get_encoder(self, kind: str, backend: TokenizerBackend, key: str) -> Any:
        cache_key = (kind, key)
        if cache_key in self._encoders:
            return self._encoders[cache_key]

        task = self._loading.get(cache_key)
        if task is None:
            logger.debug(f"Loading tokenizer {backend.name}:{key}")
            task = asyncio.ensure_future(self._load(cache_key, backend, key))
            self._loading[cache_key] = task
        else:
            logger.debug(f"Joining in-flight load for {backend.name}:{key}")

        try:
            # shield: a caller timing out must not cancel the shared load
            if self.load_timeout is None:
                return await asyncio.shield(task)
            return await asyncio.wait_for(asyncio.shield(task), self.load_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Tokenizer {backend.name}:{key} not ready after {self.load_timeout}s, approximating"
            )
            return None

    async def _load(self, cache_key: _CacheKey, backend: TokenizerBackend, key: str) -> Any:
        loop = asyncio.get_event_loop()
        try:
            encoder = await loop.run_in_executor(None, backend.load, key)
        except BackendUnavailableError as e:
            logger.warning(f"{e.message}; using approximate counts for {key}")
            encoder = None
        except Exception as e:
            logger.warning(f"Failed to load tokenizer {backend.name}:{key}: {e}")
            encoder = None

        self._encoders[cache_key] = encoder
        self._loading.pop(cache_key, None)
        return encoder
