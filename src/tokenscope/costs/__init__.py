"""Cost calculation services

This module handles:
- Pricing catalog loading and model name lookup
- Cost estimation from token usage
- Subscription billing detection
"""

from .models import CostEstimate, ModelPricing, DEFAULT_PRICING
from .pricing_config import PricingCatalog, normalize_model_name
from .calculator import CostCalculator

__all__ = [
    "CostEstimate",
    "ModelPricing",
    "DEFAULT_PRICING",
    "PricingCatalog",
    "normalize_model_name",
    "CostCalculator",
]
