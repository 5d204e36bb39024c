"""Pricing catalog loading and lookup.

The catalog maps normalized model names to per-million-token prices and must
contain a "default" entry. It is loaded once (from the packaged models.json or
a configured path) and treated as immutable afterwards.

Example models.json entry:
    "claude-sonnet-4": {"input": 3.0, "output": 15.0, "cacheWrite": 3.75, "cacheRead": 0.30}
"""

import json
import logging
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from tokenscope.errors import PricingConfigError
from .models import DEFAULT_PRICING, ModelPricing

logger = logging.getLogger(__name__)

DEFAULT_KEY = "default"


def normalize_model_name(model_name: str) -> str:
    """Strip a vendor prefix: 'anthropic/claude-sonnet-4' -> 'claude-sonnet-4'"""
    return model_name.split("/")[-1] if "/" in model_name else model_name


class PricingCatalog:
    """Read-only model pricing lookup"""

    def __init__(self, entries: Mapping[str, ModelPricing]):
        data = dict(entries)
        if DEFAULT_KEY not in data:
            data[DEFAULT_KEY] = DEFAULT_PRICING
        self._entries: Mapping[str, ModelPricing] = MappingProxyType(data)
        # Longest keys first so the most specific prefix wins
        self._prefix_order = sorted(
            (key for key in data if key != DEFAULT_KEY),
            key=len,
            reverse=True
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricingCatalog":
        """
        Build from a raw mapping of model name -> pricing dict.

        Raises:
            PricingConfigError: If the mapping or any entry is malformed
        """
        if not isinstance(data, dict):
            raise PricingConfigError("Pricing catalog must be a JSON object")

        entries: Dict[str, ModelPricing] = {}
        for name, raw in data.items():
            try:
                entries[str(name)] = ModelPricing.model_validate(raw)
            except ValidationError as e:
                raise PricingConfigError(f"Invalid pricing for model '{name}'", detail=str(e))
        return cls(entries)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "PricingCatalog":
        """
        Load the catalog from path, or the packaged models.json when path is None.

        An unreadable or invalid file yields a catalog with only the default
        entry; the failure is logged, not raised.
        """
        try:
            if path is None:
                text = resources.files("tokenscope.data").joinpath("models.json").read_text(encoding="utf-8")
                source = "packaged models.json"
            else:
                text = Path(path).read_text(encoding="utf-8")
                source = str(path)
            catalog = cls.from_dict(json.loads(text))
        except (OSError, json.JSONDecodeError, PricingConfigError) as e:
            logger.warning(f"Could not load pricing catalog, using default pricing only: {e}")
            return cls({DEFAULT_KEY: DEFAULT_PRICING})

        logger.info(f"Loaded pricing for {len(catalog) - 1} models from {source}")
        return catalog

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, model_name: object) -> bool:
        return model_name in self._entries

    @property
    def default(self) -> ModelPricing:
        return self._entries[DEFAULT_KEY]

    def get_pricing(self, model_name: Optional[str]) -> ModelPricing:
        """
        Look up pricing for a model name.

        Order: exact match on the normalized name, then the longest catalog key
        that is a case-insensitive prefix of the name, then the default entry.
        """
        if not model_name:
            return self.default

        normalized = normalize_model_name(model_name)
        if normalized in self._entries:
            return self._entries[normalized]

        lower = normalized.lower()
        for key in self._prefix_order:
            if lower.startswith(key.lower()):
                return self._entries[key]

        logger.debug(f"No pricing for model '{model_name}', using default")
        return self.default
