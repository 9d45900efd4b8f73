"""Billing schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.enums import (
    CaptureOutcomeEnum,
    OrderStatusEnum,
    OrderTypeEnum,
    PaymentMethodEnum,
    VerificationOutcomeEnum,
    VerificationStatusEnum,
)


def _is_http_url(value: str) -> bool:
    lowered = value.strip().lower()
    return lowered.startswith("http://") or lowered.startswith("https://")


class BankTransferSubmission(BaseModel):
    """Raw bank transfer block as submitted; completeness is enforced by the ledger."""

    receipt_url: str | None = Field(default=None, max_length=2048)
    receipt_storage_id: str | None = Field(default=None, max_length=255)
    bank_name: str | None = Field(default=None, max_length=200)
    account_holder_name: str | None = Field(default=None, max_length=200)
    transfer_date: date | None = None
    transfer_reference: str | None = Field(default=None, max_length=200)


class BankTransferEvidence(BaseModel):
    """Immutable proof of a bank transfer attached to an order."""

    model_config = ConfigDict(frozen=True)

    receipt_url: str = Field(min_length=1, max_length=2048)
    receipt_storage_id: str | None = None
    bank_name: str = Field(min_length=1, max_length=200)
    account_holder_name: str = Field(min_length=1, max_length=200)
    transfer_date: date
    transfer_reference: str | None = None

    @field_validator("receipt_url")
    @classmethod
    def validate_receipt_url(cls, value: str) -> str:
        if not _is_http_url(value):
            raise ValueError("receipt_url must be an http(s) URL")
        return value.strip()


class BankTransferRead(BaseModel):
    """Bank transfer sub-record."""

    model_config = ConfigDict(from_attributes=True)

    receipt_url: str
    bank_name: str
    account_holder_name: str
    transfer_date: date
    transfer_reference: str | None
    verification_status: VerificationStatusEnum
    verified_by: UUID | None
    verified_at: datetime | None
    rejection_reason: str | None


class OrderRead(BaseModel):
    """Order response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    order_type: OrderTypeEnum
    booking_id: UUID | None
    course_id: UUID | None
    original_amount: Decimal
    discount_amount: Decimal
    amount: Decimal
    currency: str
    coupon_code: str | None
    status: OrderStatusEnum
    payment_method: PaymentMethodEnum
    external_transaction_id: str | None
    completed_at: datetime | None
    failed_at: datetime | None
    failure_reason: str | None
    refunded_at: datetime | None
    refund_reason: str | None
    cancelled_at: datetime | None
    cancellation_reason: str | None
    bank_transfer: BankTransferRead | None
    created_at: datetime
    updated_at: datetime


class CheckoutRequest(BaseModel):
    """Open an order for an existing booking or a course."""

    booking_id: UUID | None = None
    course_id: UUID | None = None
    payment_method: PaymentMethodEnum
    coupon_code: str | None = Field(default=None, max_length=50)
    bank_transfer: BankTransferSubmission | None = None

    @model_validator(mode="after")
    def validate_target(self) -> "CheckoutRequest":
        if (self.booking_id is None) == (self.course_id is None):
            raise ValueError("Exactly one of booking_id or course_id is required")
        return self


class PaymentCallback(BaseModel):
    """Capture result pushed by a payment provider."""

    order_id: UUID
    payment_method: PaymentMethodEnum
    external_transaction_id: str = Field(min_length=1, max_length=255)
    outcome: CaptureOutcomeEnum
    failure_reason: str | None = Field(default=None, max_length=500)


class BankTransferDecision(BaseModel):
    """Admin verification decision."""

    outcome: VerificationOutcomeEnum
    rejection_reason: str | None = Field(default=None, max_length=500)


class OrderActionRequest(BaseModel):
    """Reason for an admin refund or cancellation."""

    reason: str = Field(min_length=1, max_length=500)


class ManualCompletionRequest(BaseModel):
    """Admin completion of a manual order."""

    reference: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=1000)


class OrderSettlementRequest(BaseModel):
    """Admin settlement of a captured gateway order."""

    external_transaction_id: str = Field(min_length=1, max_length=255)
    notes: str | None = Field(default=None, max_length=1000)
