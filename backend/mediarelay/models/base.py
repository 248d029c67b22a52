"""
Base model for records persisted in the key-value store.

Records are stored as JSON with camelCase keys so existing dashboard
clients can read them unchanged.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StoredRecord(BaseModel):
    """JSON document stored under a single key."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_store(self) -> dict:
        """Serialize using the camelCase aliases."""
        return self.model_dump(mode="json", by_alias=True)
