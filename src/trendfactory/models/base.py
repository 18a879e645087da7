"""Shared pydantic base for persisted models."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model stored with camelCase keys and addressed with snake_case in Python.

    Unknown keys are rejected so a hand-edited or agent-produced payload with a
    typo fails instead of being silently dropped.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def to_json_dict(self) -> dict:
        """Dump to a JSON-compatible dict using the on-disk key names."""
        return self.model_dump(mode="json", by_alias=True)
