"""Billing ORM models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin, str_enum
from app.core.enums import OrderStatusEnum, OrderTypeEnum, PaymentMethodEnum, VerificationStatusEnum
from app.modules.billing.schemas import BankTransferEvidence


class Order(BaseModelMixin, Base):
    """Financial record of one purchase attempt."""

    __tablename__ = "orders"
    __table_args__ = (
        Index(
            "uq_orders_pending_booking",
            "booking_id",
            unique=True,
            postgresql_where=text("status = 'pending' AND booking_id IS NOT NULL"),
        ),
        CheckConstraint("original_amount >= 0", name="original_amount_non_negative"),
        CheckConstraint("discount_amount >= 0", name="discount_amount_non_negative"),
        CheckConstraint("amount >= 0", name="amount_non_negative"),
        CheckConstraint("amount = original_amount - discount_amount", name="amount_matches_discount"),
        CheckConstraint(
            "(order_type = 'consultation' AND booking_id IS NOT NULL AND course_id IS NULL) OR "
            "(order_type = 'course' AND course_id IS NOT NULL AND booking_id IS NULL)",
            name="purchase_target",
        ),
    )

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    order_type: Mapped[OrderTypeEnum] = mapped_column(str_enum(OrderTypeEnum, "order_type_enum"), nullable=False)
    booking_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    course_id: Mapped[UUID | None] = mapped_column(ForeignKey("courses.id", ondelete="RESTRICT"), nullable=True)

    original_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    coupon_id: Mapped[UUID | None] = mapped_column(ForeignKey("coupons.id", ondelete="SET NULL"), nullable=True)
    coupon_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    status: Mapped[OrderStatusEnum] = mapped_column(
        str_enum(OrderStatusEnum, "order_status_enum"),
        default=OrderStatusEnum.PENDING,
        nullable=False,
        index=True,
    )
    payment_method: Mapped[PaymentMethodEnum] = mapped_column(
        str_enum(PaymentMethodEnum, "payment_method_enum"),
        nullable=False,
    )
    external_transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    refund_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    bank_transfer: Mapped["BankTransfer | None"] = relationship(
        back_populates="order",
        uselist=False,
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}


class BankTransfer(BaseModelMixin, Base):
    """Evidence and verification state for a bank transfer order."""

    __tablename__ = "bank_transfers"

    order_id: Mapped[UUID] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    receipt_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    receipt_storage_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bank_name: Mapped[str] = mapped_column(String(200), nullable=False)
    account_holder_name: Mapped[str] = mapped_column(String(200), nullable=False)
    transfer_date: Mapped[date] = mapped_column(Date, nullable=False)
    transfer_reference: Mapped[str | None] = mapped_column(String(200), nullable=True)

    verification_status: Mapped[VerificationStatusEnum] = mapped_column(
        str_enum(VerificationStatusEnum, "verification_status_enum"),
        default=VerificationStatusEnum.PENDING,
        nullable=False,
        index=True,
    )
    verified_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    order: Mapped[Order] = relationship(back_populates="bank_transfer")

    @property
    def evidence(self) -> BankTransferEvidence:
        return BankTransferEvidence(
            receipt_url=self.receipt_url,
            receipt_storage_id=self.receipt_storage_id,
            bank_name=self.bank_name,
            account_holder_name=self.account_holder_name,
            transfer_date=self.transfer_date,
            transfer_reference=self.transfer_reference,
        )
