"""Request/response models for the block editor API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from blockengine.kernel.types import DEFAULT_LOCATION, MutationResult


class CreateBlockRequest(BaseModel):
    """What the client sends to create an empty block."""

    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1, max_length=64)
    title: str = ""


class AddFieldRequest(BaseModel):
    model_config = {"extra": "forbid"}

    location: str = DEFAULT_LOCATION
    parent: str | None = None


class ChangeControlRequest(BaseModel):
    model_config = {"extra": "forbid"}

    control: str = Field(min_length=1)


class ChangeSettingsRequest(BaseModel):
    """Settings merged over the field. `name` renames, `location` relocates."""

    model_config = {"extra": "forbid"}

    settings: dict[str, Any]


class ReorderRequest(BaseModel):
    model_config = {"extra": "forbid"}

    from_index: int
    to_index: int
    location: str = DEFAULT_LOCATION
    parent: str | None = None


class RenderRequest(BaseModel):
    """Runtime inputs for one block instance."""

    model_config = {"extra": "forbid"}

    attributes: dict[str, Any] = Field(default_factory=dict)
    values: dict[str, Any] = Field(default_factory=dict)
    preview: bool = False


class RenderResponse(BaseModel):
    html: str


class WarningResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class MutationResponse(BaseModel):
    """What every editing endpoint returns: the whole saved definition."""

    definition: dict[str, Any]
    field_name: str | None = None
    warnings: list[WarningResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: MutationResult) -> MutationResponse:
        return cls(
            definition=result.definition,
            field_name=result.field_name,
            warnings=[WarningResponse(code=w.code, message=w.message, details=w.details) for w in result.warnings],
        )
