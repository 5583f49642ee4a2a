from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
NAME_MAX_LENGTH = 255


def _check_identifier(value: str | None) -> str | None:
    if value is not None and not _IDENTIFIER_RE.match(value):
        raise ValueError(f"{value!r} is not a plain SQL identifier")
    return value


class TableConfig(BaseModel):
    """Which table a facade works on and how it is scoped to a parent row."""

    model_config = ConfigDict(frozen=True)

    table_name: str
    id_column: str = "id"
    value_column: str = "name"
    parent_table_name: str | None = None
    parent_id_column: str = "id"
    foreign_key_column: str | None = None
    foreign_key_value: int | None = None

    @field_validator(
        "table_name",
        "id_column",
        "value_column",
        "parent_table_name",
        "parent_id_column",
        "foreign_key_column",
    )
    @classmethod
    def plain_identifier(cls, v: str | None) -> str | None:
        return _check_identifier(v)

    @model_validator(mode="after")
    def foreign_key_needs_parent(self) -> TableConfig:
        if self.parent_table_name and not self.foreign_key_column:
            raise ValueError("foreign_key_column is required when parent_table_name is set")
        return self

    @property
    def is_scoped(self) -> bool:
        return self.parent_table_name is not None

    def with_foreign_key(self, value: int | None) -> TableConfig:
        return self.model_copy(update={"foreign_key_value": value})


class SortSpec(BaseModel):
    column: str
    direction: Literal["asc", "desc"] = "asc"

    @field_validator("direction", mode="before")
    @classmethod
    def lower_direction(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def toggled(self, column: str) -> SortSpec:
        if column != self.column:
            return SortSpec(column=column, direction="asc")
        return SortSpec(column=column, direction="desc" if self.direction == "asc" else "asc")


class ItemForm(BaseModel):
    id: int | None = None
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)

    @field_validator("id", mode="before")
    @classmethod
    def blank_id(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v
