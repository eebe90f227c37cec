"""Pydantic schemas for stack declaration files."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class SettingsSchema(BaseModel):
    """Executor settings for a stack.

    CLI options override these values.
    """

    max_attempts: int = Field(default=3, ge=1)
    backoff_seconds: float = Field(default=0.5, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1)
    max_workers: int = Field(default=4, ge=1)


class ResourceSchema(BaseModel):
    """Schema for a single resource declaration.

    Attribute values are literals or reference markers of the form
    ``{"ref": "<resource-id>.<output-key>"}``, possibly nested inside
    lists and mappings.
    """

    id: str = Field(min_length=1)
    kind: str = Field(min_length=1)
    attributes: dict[str, Any] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list)
    description: str | None = None

    @field_validator("depends_on", mode="before")
    @classmethod
    def normalize_depends_on(cls, v: Any) -> list[str]:
        """Accept a single id as shorthand for a one-element list."""
        if isinstance(v, str):
            return [v]
        return v


class SuppressionSchema(BaseModel):
    """Schema for a policy rule suppression attached to a resource."""

    node: str
    rule: str
    reason: str = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def accept_aliases(cls, data: Any) -> Any:
        # Auditor tooling spells these "id"; the declaration file uses "rule".
        if isinstance(data, dict) and "id" in data and "rule" not in data:
            data = dict(data)
            data["rule"] = data.pop("id")
        return data


class StackSchema(BaseModel):
    """Schema for the complete stack declaration file."""

    schema_version: str = "1.0"
    name: str = "stack"
    settings: SettingsSchema = Field(default_factory=SettingsSchema)
    kinds: dict[str, list[str]] = Field(default_factory=dict)
    resources: list[ResourceSchema] = Field(default_factory=list)
    suppressions: list[SuppressionSchema] = Field(default_factory=list)
