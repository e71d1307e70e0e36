"""
Database Schemas for the Menu Management API (MongoDB)

Each Pydantic model describes the writable fields of a document in one
collection: "category", "subcategory" or "item". Id lists (subCategories,
items) and references (category, subcategory) are ObjectId strings on the
way in and are stored as ObjectId.
"""
from typing import Annotated, List, Optional

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, Field, model_validator


def _check_object_id(value: str) -> str:
    if not ObjectId.is_valid(value):
        raise ValueError("must be a valid ObjectId")
    return value


ObjectIdStr = Annotated[str, AfterValidator(_check_object_id)]


# Category
class CategoryUpdate(BaseModel):
    name: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1, description="Image URL")
    description: str = Field(..., min_length=1)
    taxApplicability: bool = False
    tax: Optional[float] = Field(None, description="Required when taxApplicability is true")

    @model_validator(mode="after")
    def _tax_required_when_applicable(self):
        if self.taxApplicability and self.tax is None:
            raise ValueError("tax is required when taxApplicability is true")
        return self


class CategoryIn(CategoryUpdate):
    taxType: str = "percentage"


# Subcategory
class SubcategoryUpdate(BaseModel):
    name: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1, description="Image URL")
    description: str = Field(..., min_length=1)
    taxApplicability: bool = False
    tax: float = 0
    category: ObjectIdStr = Field(..., description="Parent category _id as string")
    items: List[ObjectIdStr] = Field(default_factory=list)


class SubcategoryIn(SubcategoryUpdate):
    taxType: str = "percentage"


# Item
class ItemIn(BaseModel):
    """Used for both create and full-overwrite update."""

    name: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1, description="Image URL")
    description: str = Field(..., min_length=1)
    taxApplicability: bool = False
    tax: float = 0
    baseAmount: float
    discount: float = 0
    totalAmount: float = Field(..., description="Computed by the caller")
    category: ObjectIdStr = Field(..., description="Parent category _id as string")
    subcategory: ObjectIdStr = Field(..., description="Parent subcategory _id as string")
