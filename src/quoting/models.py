"""Pydantic entity shapes for quotes, orders and receipts.

These models define the data contracts between callers and the store.
Numeric and string fields are strict: a "10" string is not a valid total.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints

RequiredText = Annotated[
    str, StringConstraints(strict=True, strip_whitespace=True, min_length=1)
]
PositiveAmount = Annotated[float, Field(strict=True, gt=0)]
Percentage = Annotated[float, Field(strict=True, ge=0, le=100)]
Dimension = Annotated[float, Field(strict=True, ge=0)]


# === Enums ===

class QuoteStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OrderStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReceiptStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"


class AdjustmentType(str, Enum):
    DISCOUNT = "discount"
    SURCHARGE = "surcharge"


# === Entities ===

class Quote(BaseModel):
    """Quote header as submitted by a sales user."""
    client_name: RequiredText
    email: EmailStr
    phone: RequiredText
    project_name: RequiredText
    installation_address: RequiredText
    status: QuoteStatus = QuoteStatus.DRAFT
    total: PositiveAmount
    adjustment_type: Optional[AdjustmentType] = None
    adjustment_percentage: Optional[Percentage] = None
    adjusted_total: Optional[PositiveAmount] = None


class Item(BaseModel):
    """One product line inside a space."""
    model_config = ConfigDict(populate_by_name=True)

    product_id: RequiredText = Field(alias="productId")
    material: RequiredText
    width: Dimension
    height: Dimension
    depth: Dimension
    price: PositiveAmount


class Space(BaseModel):
    """A named area of the installation (kitchen, bathroom...)."""
    name: RequiredText
    items: list[Item] = Field(default_factory=list)


class Order(BaseModel):
    """Order derived from an accepted quote."""
    quote_id: UUID
    status: OrderStatus = OrderStatus.PENDING
    total: PositiveAmount
    adjustment_type: Optional[AdjustmentType] = None
    adjustment_percentage: Optional[Percentage] = None
    adjusted_total: Optional[PositiveAmount] = None


class Receipt(BaseModel):
    """Payment receipt issued against an order."""
    order_id: UUID
    payment_percentage: Percentage
    amount: PositiveAmount
    status: ReceiptStatus = ReceiptStatus.DRAFT

