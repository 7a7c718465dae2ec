"""Category schemas."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

CategoryType = Literal["expense", "income"]
HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class _CategoryFields(BaseModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        name = " ".join(v.split())
        if not name:
            raise ValueError("Category name cannot be blank")
        return name

    @field_validator("color", check_fields=False)
    @classmethod
    def lower_color(cls, v: str | None) -> str | None:
        return v.lower() if v else v


class CategoryCreate(_CategoryFields):
    name: str = Field(max_length=100)
    type: CategoryType = "expense"
    icon: str | None = Field(default=None, max_length=50)
    color: str | None = Field(default=None, pattern=HEX_COLOR)


class CategoryUpdate(_CategoryFields):
    name: str | None = Field(default=None, max_length=100)
    type: CategoryType | None = None
    icon: str | None = Field(default=None, max_length=50)
    color: str | None = Field(default=None, pattern=HEX_COLOR)


class CategoryResponse(BaseModel):
    id: int
    name: str
    type: CategoryType
    icon: str
    color: str
    is_system: bool

    model_config = {"from_attributes": True}
