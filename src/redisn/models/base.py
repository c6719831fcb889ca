"""Base model configuration for all Pydantic models."""

from pydantic import BaseModel, ConfigDict


class RedisNBaseModel(BaseModel):
    """Base model with common configuration.

    Models are immutable: push events and requests are values handed
    between tasks, never updated in place.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
    )
