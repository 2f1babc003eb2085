"""
Base Schema Classes for Pydantic Models

RULE: All response schemas that use `from_attributes=True` MUST inherit from BaseResponseSchema.
Money fields on responses use the `MoneyOut` type so they always serialize
as decimal strings with two places ("1180.00").
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated
from uuid import UUID
from pydantic import BaseModel, ConfigDict, PlainSerializer


def _money_str(value: Decimal) -> str:
    return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


MoneyOut = Annotated[Decimal, PlainSerializer(_money_str, return_type=str, when_used="json")]


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Usage:
        class GSTInvoiceBrief(BaseResponseSchema):
            id: UUID
            invoice_number: str
            grand_total: MoneyOut
    """
    model_config = ConfigDict(
        from_attributes=True,
        json_encoders={
            UUID: str,
            datetime: lambda v: v.isoformat() if v else None,
        },
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """Base class for create/input schemas. Unknown fields are ignored."""
    model_config = ConfigDict(
        extra='ignore',
    )


class BaseUpdateSchema(BaseModel):
    """
    Base class for update schemas.

    All fields are optional; services apply only the fields that were set
    (`model_dump(exclude_unset=True)`).
    """
    model_config = ConfigDict(
        extra='ignore',
    )


class MessageResponse(BaseModel):
    message: str
