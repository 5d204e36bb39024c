"""Cost calculation service for computing session costs from token usage and pricing.

This module handles:
- Cost estimation from token counts and catalog pricing
- Subscription (flat-rate) billing detection
"""

from typing import Optional, Tuple

from tokenscope.analysis.models import TokenAnalysis
from .models import CostEstimate, ModelPricing
from .pricing_config import PricingCatalog

TOKENS_PER_MILLION = 1_000_000


class CostCalculator:
    """Calculate costs from token usage and pricing"""

    def __init__(self, catalog: PricingCatalog):
        self.catalog = catalog

    def get_pricing(self, model_name: Optional[str]) -> ModelPricing:
        return self.catalog.get_pricing(model_name)

    @staticmethod
    def estimate_cost(
        pricing: ModelPricing,
        input_tokens: int = 0,
        output_tokens: int = 0,
        reasoning_tokens: int = 0,
        cache_read_tokens: int = 0,
        cache_write_tokens: int = 0
    ) -> float:
        """
        Metered cost of a token mix.

        Reasoning tokens are billed at the output price.

        Example:
            ```python
            pricing = ModelPricing(input=3.0, output=15.0, cache_read=0.30, cache_write=3.75)
            CostCalculator.estimate_cost(pricing, input_tokens=1000, output_tokens=500)
            # 0.0105 = 1000/1M * $3 + 500/1M * $15
            ```
        """
        return sum(CostCalculator.class_costs(
            pricing,
            input_tokens,
            output_tokens,
            reasoning_tokens,
            cache_read_tokens,
            cache_write_tokens
        ))

    @staticmethod
    def class_costs(
        pricing: ModelPricing,
        input_tokens: int,
        output_tokens: int,
        reasoning_tokens: int,
        cache_read_tokens: int,
        cache_write_tokens: int
    ) -> Tuple[float, float, float, float]:
        """(input, output, cache read, cache write) costs; reasoning is billed as output"""
        return (
            (input_tokens / TOKENS_PER_MILLION) * pricing.input,
            ((output_tokens + reasoning_tokens) / TOKENS_PER_MILLION) * pricing.output,
            (cache_read_tokens / TOKENS_PER_MILLION) * pricing.cache_read,
            (cache_write_tokens / TOKENS_PER_MILLION) * pricing.cache_write,
        )

    def calculate_cost(self, analysis: TokenAnalysis) -> CostEstimate:
        """
        Estimate the session cost and detect subscription billing.

        A session with assistant activity (input or output tokens) whose
        provider-reported cost is exactly zero is treated as subscription
        billing: the estimate becomes the headline cost.
        """
        pricing = self.get_pricing(analysis.model.name)

        has_activity = analysis.assistant_message_count > 0 and (
            analysis.input_tokens > 0 or analysis.output_tokens > 0
        )
        is_subscription = has_activity and analysis.session_cost == 0

        input_cost, output_cost, cache_read_cost, cache_write_cost = self.class_costs(
            pricing,
            analysis.input_tokens,
            analysis.output_tokens,
            analysis.reasoning_tokens,
            analysis.cache_read_tokens,
            analysis.cache_write_tokens
        )

        return CostEstimate(
            is_subscription=is_subscription,
            api_session_cost=analysis.session_cost,
            api_most_recent_cost=analysis.most_recent_cost,
            estimated_session_cost=input_cost + output_cost + cache_read_cost + cache_write_cost,
            estimated_input_cost=input_cost,
            estimated_output_cost=output_cost,
            estimated_cache_read_cost=cache_read_cost,
            estimated_cache_write_cost=cache_write_cost,
            pricing=pricing,
            input_tokens=analysis.input_tokens,
            output_tokens=analysis.output_tokens,
            reasoning_tokens=analysis.reasoning_tokens,
            cache_read_tokens=analysis.cache_read_tokens,
            cache_write_tokens=analysis.cache_write_tokens,
        )
