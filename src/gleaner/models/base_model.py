# src/gleaner/models/base_model.py
"""Shared Pydantic base model with tolerant enum handling."""

from __future__ import annotations

from enum import Enum
from typing import Any, get_args

from pydantic import BaseModel, ConfigDict, model_validator


def _enum_type(annotation: Any) -> type[Enum] | None:
    for candidate in (annotation, *get_args(annotation)):
        if isinstance(candidate, type) and issubclass(candidate, Enum):
            return candidate
    return None


class GleanerBaseModel(BaseModel):
    """Base model that matches enum members case-insensitively by name or value."""

    # Ignore unexpected keys instead of failing validation.
    model_config = ConfigDict(
        from_attributes=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _coerce_enums(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        for field_name, field_info in cls.model_fields.items():
            enum_type = _enum_type(field_info.annotation)
            value = data.get(field_name)
            if enum_type is None or not isinstance(value, str):
                continue
            for member in enum_type:
                if value.lower() in {member.name.lower(), str(member.value).lower()}:
                    data = {**data, field_name: member}
                    break
        return data


__all__ = ["GleanerBaseModel"]
