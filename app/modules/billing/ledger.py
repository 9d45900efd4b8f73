"""Order amount and evidence rules with no storage dependency."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from pydantic import ValidationError

from app.modules.billing.schemas import BankTransferEvidence, BankTransferSubmission
from app.shared.exceptions import ValidationException
from app.shared.utils import quantize_money

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class OrderAmounts:
    """Amount breakdown satisfying amount = original - discount >= 0."""

    original_amount: Decimal
    discount_amount: Decimal
    amount: Decimal


def compute_order_amounts(original_amount: Decimal, discount_amount: Decimal = ZERO) -> OrderAmounts:
    original = quantize_money(original_amount)
    if original < ZERO:
        raise ValidationException("Order amount cannot be negative", code="invalid_amount")
    discount = min(max(quantize_money(discount_amount), ZERO), original)
    return OrderAmounts(original_amount=original, discount_amount=discount, amount=original - discount)


def build_bank_transfer_evidence(submission: BankTransferSubmission | None) -> BankTransferEvidence:
    """Turn a raw submission into evidence, rejecting anything incomplete."""
    if submission is None or not (submission.receipt_url or "").strip():
        raise ValidationException(
            "Bank transfer requires an uploaded receipt",
            code="bank_transfer_evidence_required",
        )

    missing = [
        name
        for name in ("bank_name", "account_holder_name", "transfer_date")
        if not str(getattr(submission, name) or "").strip()
    ]
    if missing:
        raise ValidationException(
            f"Bank transfer details are incomplete: {', '.join(missing)}",
            code="bank_transfer_details_required",
        )

    try:
        return BankTransferEvidence(
            receipt_url=submission.receipt_url,
            receipt_storage_id=submission.receipt_storage_id,
            bank_name=submission.bank_name.strip(),
            account_holder_name=submission.account_holder_name.strip(),
            transfer_date=submission.transfer_date,
            transfer_reference=submission.transfer_reference,
        )
    except ValidationError as exc:
        raise ValidationException(
            "Bank transfer receipt must be an http(s) URL",
            code="bank_transfer_receipt_invalid",
        ) from exc
