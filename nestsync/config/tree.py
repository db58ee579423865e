from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ._validators import validate_key_name

if TYPE_CHECKING:
    from typing import Self


class TreeConfig(BaseModel):
    """How input forests are read."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    children_key_name: str = Field(
        default="children",
        validation_alias="NESTSYNC_CHILDREN_KEY",
        description="Input key holding a node's child entries",
    )
    key_name: str = Field(
        default="id",
        validation_alias="NESTSYNC_KEY_NAME",
        description="Input key holding a node's identity",
    )

    @field_validator("children_key_name", mode="before")
    @classmethod
    def _validate_children_key(cls, value: Any) -> str:
        return validate_key_name(value, name="Children key name", default="children")

    @field_validator("key_name", mode="before")
    @classmethod
    def _validate_key(cls, value: Any) -> str:
        return validate_key_name(value, name="Key name", default="id")

    @model_validator(mode="after")
    def _ensure_distinct_keys(self) -> Self:
        if self.children_key_name == self.key_name:
            msg = "Children key name and key name must differ"
            raise ValueError(msg)
        return self
