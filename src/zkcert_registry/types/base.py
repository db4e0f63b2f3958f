"""Strict pydantic base models shared by every registry value type."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    A base model that uses camelCase aliases on the wire.

    The field `last_block_considered` is written as `lastBlockConsidered`
    when dumped by alias. This is the naming used by the leaf log cache
    files, so cache models can round-trip through JSON unchanged.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
        arbitrary_types_allowed=True,
    )


class StrictBaseModel(CamelModel):
    """A strict, immutable pydantic base model."""

    model_config = CamelModel.model_config | {
        "extra": "forbid",
        "frozen": True,
        "strict": True,
    }
