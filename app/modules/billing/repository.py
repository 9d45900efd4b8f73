"""Billing repository layer."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.database import violates_constraint
from app.core.enums import OrderStatusEnum, PaymentMethodEnum, VerificationStatusEnum
from app.modules.billing.models import BankTransfer, Order
from app.modules.billing.schemas import BankTransferEvidence
from app.shared.exceptions import ConflictException

PENDING_ORDER_CONSTRAINT = "uq_orders_pending_booking"


@dataclass(frozen=True)
class OrderFilters:
    """Admin order listing filters."""

    status: OrderStatusEnum | None = None
    payment_method: PaymentMethodEnum | None = None
    verification_status: VerificationStatusEnum | None = None
    user_id: UUID | None = None


class BillingRepository:
    """DB access methods for orders and bank transfers."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_order(self, **fields) -> Order:
        order = Order(**fields)
        try:
            async with self.session.begin_nested():
                self.session.add(order)
                await self.session.flush()
        except IntegrityError as exc:
            if violates_constraint(exc, PENDING_ORDER_CONSTRAINT):
                raise ConflictException(
                    "Booking already has a pending order",
                    code="pending_order_exists",
                ) from exc
            raise
        await self.session.refresh(order, attribute_names=["bank_transfer"])
        return order

    async def create_bank_transfer(self, order: Order, evidence: BankTransferEvidence) -> BankTransfer:
        transfer = BankTransfer(
            order_id=order.id,
            receipt_url=evidence.receipt_url,
            receipt_storage_id=evidence.receipt_storage_id,
            bank_name=evidence.bank_name,
            account_holder_name=evidence.account_holder_name,
            transfer_date=evidence.transfer_date,
            transfer_reference=evidence.transfer_reference,
            verification_status=VerificationStatusEnum.PENDING,
        )
        self.session.add(transfer)
        await self.session.flush()
        await self.session.refresh(order, attribute_names=["bank_transfer"])
        return transfer

    async def get_order_by_id(self, order_id: UUID) -> Order | None:
        stmt = select(Order).where(Order.id == order_id)
        return await self.session.scalar(stmt)

    async def get_pending_order_for_booking(self, booking_id: UUID) -> Order | None:
        stmt = select(Order).where(
            Order.booking_id == booking_id,
            Order.status == OrderStatusEnum.PENDING,
        )
        return await self.session.scalar(stmt)

    async def list_user_orders(
        self,
        user_id: UUID,
        limit: int,
        offset: int,
    ) -> tuple[list[Order], int]:
        return await self.list_orders(OrderFilters(user_id=user_id), limit, offset)

    async def list_orders(
        self,
        filters: OrderFilters,
        limit: int,
        offset: int,
    ) -> tuple[list[Order], int]:
        base_stmt: Select[tuple[Order]] = select(Order)
        if filters.user_id is not None:
            base_stmt = base_stmt.where(Order.user_id == filters.user_id)
        if filters.status is not None:
            base_stmt = base_stmt.where(Order.status == filters.status)
        if filters.payment_method is not None:
            base_stmt = base_stmt.where(Order.payment_method == filters.payment_method)
        if filters.verification_status is not None:
            base_stmt = base_stmt.join(BankTransfer, BankTransfer.order_id == Order.id).where(
                BankTransfer.verification_status == filters.verification_status,
            )

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Order.created_at.desc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def save(self, order: Order) -> Order:
        try:
            await self.session.flush()
        except StaleDataError as exc:
            raise ConflictException(
                "Order was modified concurrently, retry the request",
                code="concurrent_modification",
            ) from exc
        return order
