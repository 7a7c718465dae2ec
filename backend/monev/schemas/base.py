"""Shared schema building blocks."""

from typing import ClassVar

from pydantic import BaseModel, model_validator


class PartialUpdate(BaseModel):
    """PATCH body: omitted fields are left alone; fields in ``not_null`` cannot be cleared."""

    not_null: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def reject_cleared_fields(self):
        cleared = sorted(
            name for name in self.model_fields_set & self.not_null if getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self
