"""Shared pydantic base for catalog documents."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model whose stored/submitted form uses camelCase keys.

    Attributes stay snake_case in Python; documents and form payloads use the
    camelCase aliases (``askingPrice``, ``ownerId``...).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        allow_inf_nan=False,
    )
