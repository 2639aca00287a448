"""
Pydantic models for the MongoDB 'categories', 'brands' and 'products' collections.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SpecificationType(str, Enum):
    TEXT = "TEXT"
    SELECT = "SELECT"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"


class SpecificationDefinition(BaseModel):
    id: str
    name: str
    type: SpecificationType = SpecificationType.TEXT
    required: bool = False
    options: list[str] = []
    unit: str | None = None

    @field_validator("options", mode="before")
    @classmethod
    def coerce_options(cls, v: Any) -> list[str]:
        """Stored options may mix numbers and strings; keep every scalar, drop the rest."""
        if not isinstance(v, list):
            return []
        options = []
        for option in v:
            if isinstance(option, bool):
                options.append(str(option).lower())
            elif isinstance(option, (int, float, str)):
                text = str(option).strip()
                if text:
                    options.append(text)
        return options


class Category(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    slug: str
    description: str | None = None
    parent_id: str | None = None
    is_active: bool = True
    specifications: list[dict[str, Any]] = []  # Raw definitions, validated on read


class Brand(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    slug: str
    is_active: bool = True


class Product(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    slug: str
    description: str = ""
    price: float
    original_price: float | None = None
    stock: int = 0
    category_id: str
    brand_id: str | None = None
    specifications: dict[str, Any] = {}  # Not validated against the category schema
    tags: list[str] = []
    featured: bool = False
    average_rating: float = 0.0
    sales: int = 0
    created_at: datetime | None = None
