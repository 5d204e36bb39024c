"""Pricing and cost estimate data models."""

from pydantic import BaseModel, Field, ConfigDict, field_validator


class ModelPricing(BaseModel):
    """Price per million tokens (USD) for each token class"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    input: float = Field(0.0, ge=0, description="Fresh input tokens")
    output: float = Field(0.0, ge=0, description="Output and reasoning tokens")
    cache_read: float = Field(0.0, alias="cacheRead", ge=0, description="Tokens read from cache")
    cache_write: float = Field(0.0, alias="cacheWrite", ge=0, description="Tokens written to cache")

    @field_validator("input", "output", "cache_read", "cache_write", mode="before")
    @classmethod
    def missing_price_is_free(cls, v):
        return 0.0 if v is None else v


DEFAULT_PRICING = ModelPricing(input=1.0, output=3.0, cache_read=0.0, cache_write=0.0)


class CostEstimate(BaseModel):
    """API-reported and estimated cost of a session"""
    model_config = ConfigDict(populate_by_name=True)

    is_subscription: bool = Field(
        ...,
        alias="isSubscription",
        description="Activity with a reported cost of exactly zero (flat-rate billing)"
    )
    api_session_cost: float = Field(..., alias="apiSessionCost")
    api_most_recent_cost: float = Field(..., alias="apiMostRecentCost")

    # Estimated from token counts and catalog pricing
    estimated_session_cost: float = Field(..., alias="estimatedSessionCost")
    estimated_input_cost: float = Field(..., alias="estimatedInputCost")
    estimated_output_cost: float = Field(..., alias="estimatedOutputCost")
    estimated_cache_read_cost: float = Field(..., alias="estimatedCacheReadCost")
    estimated_cache_write_cost: float = Field(..., alias="estimatedCacheWriteCost")

    pricing: ModelPricing

    input_tokens: int = Field(..., alias="inputTokens")
    output_tokens: int = Field(..., alias="outputTokens")
    reasoning_tokens: int = Field(..., alias="reasoningTokens")
    cache_read_tokens: int = Field(..., alias="cacheReadTokens")
    cache_write_tokens: int = Field(..., alias="cacheWriteTokens")

    @property
    def headline_cost(self) -> float:
        """The cost to show: the metered equivalent for subscriptions, else the API cost"""
        return self.estimated_session_cost if self.is_subscription else self.api_session_cost
