"""Tokenizer strategy models"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ApproxSpec(BaseModel):
    """Length-based approximation: ceil(len / 4)"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["approx"] = "approx"


class TiktokenSpec(BaseModel):
    """Exact GPT-style counting, keyed by a tiktoken model alias"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["tiktoken"] = "tiktoken"
    model: str


class TransformersSpec(BaseModel):
    """Exact Hugging Face counting, keyed by a hub repository id"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["transformers"] = "transformers"
    hub: str


TokenizerSpec = Annotated[
    Union[ApproxSpec, TiktokenSpec, TransformersSpec],
    Field(discriminator="kind"),
]


class TokenModel(BaseModel):
    """A resolved tokenizer strategy and the model name it was resolved for"""
    model_config = ConfigDict(frozen=True)

    name: str
    spec: TokenizerSpec


APPROX_MODEL = TokenModel(name="approx", spec=ApproxSpec())
