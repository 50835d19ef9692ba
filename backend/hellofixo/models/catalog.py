"""
Catalog records - service categories and the problems customers pick from.
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class Problem(BaseModel):
    """A selectable issue within a category."""
    id: str
    name: str
    category_id: Optional[str] = None
    base_min_fee: float = Field(default=0, ge=0)
    estimated_price: float = Field(default=0, ge=0)
    image_id: Optional[str] = None

    model_config = {"extra": "ignore"}

    @field_validator("id", "category_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # Problem ids are integers in the database but strings in URLs
        return None if value is None else str(value)

    @field_validator("base_min_fee", "estimated_price", mode="before")
    @classmethod
    def _null_is_zero(cls, value):
        return 0 if value is None else value

    @property
    def is_other(self) -> bool:
        """The catch-all "Other / Not sure" problem."""
        name = self.name.strip().lower()
        return name.startswith("other") or "not sure" in name


class ServiceCategory(BaseModel):
    """
    A bookable category (mobile phones, laptops, AC, ...).

    ``base_inspection_fee`` is None when the category relies on the default fee.
    """
    id: str
    slug: str
    name: str
    base_inspection_fee: Optional[float] = Field(default=None, ge=0)
    icon_url: Optional[str] = None
    sort_order: Optional[int] = None
    problems: List[Problem] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value)

    @field_validator("problems", mode="before")
    @classmethod
    def _null_is_empty(cls, value):
        return value or []

    def find_problem(self, problem_id: str) -> Optional[Problem]:
        return next((p for p in self.problems if p.id == problem_id), None)
