"""
Pydantic schemas for product endpoints.

Required fields are checked for presence and type, never truthiness, so a
`price` of 0 is valid. Numeric strings are coerced ("12.50" -> Decimal).
Strings are stored as sent; only all-whitespace values are rejected.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Matches the `numeric(12, 2)` column.
PRICE_EXPONENT = Decimal("0.01")
MAX_PRICE = Decimal("9999999999.99")


def _not_blank(value: str | None) -> str | None:
    if value is not None and not value.strip():
        raise ValueError("must not be blank")
    return value


def _to_cents(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    # Same rounding Postgres applies when storing into numeric(12, 2).
    value = value.quantize(PRICE_EXPONENT, rounding=ROUND_HALF_UP)
    if value > MAX_PRICE:
        raise ValueError(f"must be at most {MAX_PRICE}")
    return value


class ProductCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., max_length=255)
    description: str
    price: Decimal = Field(..., ge=0, allow_inf_nan=False)
    image_id: int = Field(..., alias="imageId", ge=1)

    @field_validator("name", "description")
    @classmethod
    def check_text(cls, value):
        return _not_blank(value)

    @field_validator("price")
    @classmethod
    def check_price(cls, value):
        return _to_cents(value)


class ProductUpdate(BaseModel):
    """
    Sparse update: omitted or null fields keep their stored value.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    price: Decimal | None = Field(default=None, ge=0, allow_inf_nan=False)
    image_id: int | None = Field(default=None, alias="imageId", ge=1)

    @field_validator("name", "description")
    @classmethod
    def check_text(cls, value):
        return _not_blank(value)

    @field_validator("price")
    @classmethod
    def check_price(cls, value):
        return _to_cents(value)
