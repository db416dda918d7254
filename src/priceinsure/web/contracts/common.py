"""Shared pieces of the web contracts.

Fixed-point quantities can exceed the range a JSON number survives in most
clients (2**53), so every one of them is serialized as a decimal string.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# int in Python, string on the wire
BigInt = Annotated[int, PlainSerializer(lambda v: str(v), return_type=str, when_used="json")]


class ApiModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
