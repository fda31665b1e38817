"""Shared pydantic base and field types for models persisted as documents."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from slotbook.utils import ensure_utc, to_iso_z

# Aware UTC instant, serialized as '2026-01-29T09:00:00.000Z' in documents.
UtcDatetime = Annotated[
    datetime,
    AfterValidator(ensure_utc),
    PlainSerializer(to_iso_z, return_type=str, when_used="json"),
]


class DocumentModel(BaseModel):
    """Snake_case in Python, camelCase on disk (``providerUserId``, ``startAt``...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        """Serialize with the persisted field names."""
        return self.model_dump(by_alias=True, mode="json")
