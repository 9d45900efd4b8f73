"""Consultation booking core schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:30:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=64)


role_enum = _enum("role_enum", "user", "admin")
category_enum = _enum(
    "consultation_category_enum",
    "sports",
    "life_coaching",
    "group",
    "vip",
    "nutrition",
    "general",
)
consultation_type_enum = _enum("consultation_type_enum", "online", "in_person", "both")
meeting_type_enum = _enum("meeting_type_enum", "online", "in_person")
booking_status_enum = _enum(
    "booking_status_enum",
    "pending_payment",
    "pending_confirmation",
    "confirmed",
    "rescheduled",
    "completed",
    "cancelled",
    "no_show",
)
booking_payment_status_enum = _enum("booking_payment_status_enum", "pending", "completed", "failed", "refunded")
cancelled_by_enum = _enum("cancelled_by_enum", "user", "admin", "system")
order_type_enum = _enum("order_type_enum", "course", "consultation")
order_status_enum = _enum("order_status_enum", "pending", "completed", "failed", "refunded", "cancelled")
payment_method_enum = _enum("payment_method_enum", "paypal", "stripe", "bank_transfer", "manual")
verification_status_enum = _enum("verification_status_enum", "pending", "verified", "rejected")
discount_type_enum = _enum("discount_type_enum", "percentage", "fixed")
coupon_scope_enum = _enum("coupon_scope_enum", "all", "courses", "consultations", "specific")
audit_severity_enum = _enum("audit_severity_enum", "low", "medium", "high", "critical")
audit_action_enum = _enum(
    "audit_action_enum",
    "user.create",
    "user.update",
    "user.delete",
    "user.suspend",
    "user.activate",
    "users.list",
    "course.create",
    "course.update",
    "course.delete",
    "course.publish",
    "course.unpublish",
    "course.enroll",
    "booking.create",
    "booking.confirm",
    "booking.reschedule",
    "booking.cancel",
    "booking.complete",
    "booking.no_show",
    "booking.feedback",
    "order.create",
    "order.update",
    "order.complete",
    "order.fail",
    "order.refund",
    "order.cancel",
    "bank_transfer.verify",
    "bank_transfer.reject",
    "coupon.create",
    "coupon.update",
    "coupon.delete",
    "coupon.redeem",
    "login",
    "logout",
    "password.reset",
    "settings.update",
    "unauthorized_access_attempt",
    "permission_denied",
    "analytics.view",
    "reports.generate",
    "integrity.violation",
)
outbox_status_enum = _enum("outbox_status_enum", "pending", "processed", "failed")

ACTIVE_BOOKING_STATUS_SQL = "status IN ('pending_payment', 'pending_confirmation', 'confirmed', 'rescheduled')"


def _id_col() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _created_col() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated_col() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def _uuid_col(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), nullable=nullable)


def _jsonb_col(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, postgresql.JSONB(astext_type=sa.Text()), nullable=nullable)


def _money_col(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(10, 2), nullable=False)


def _ts_col(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "roles",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("name", role_enum, nullable=False),
        sa.UniqueConstraint("name", name="uq_roles_name"),
    )

    op.create_table(
        "users",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _uuid_col("role_id"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], name="fk_users_role_id_roles", ondelete="RESTRICT"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=False)

    op.create_table(
        "consultation_offerings",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", category_enum, nullable=False),
        _money_col("price"),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("consultation_type", consultation_type_enum, nullable=False),
        _jsonb_col("available_days"),
        _jsonb_col("available_time_slots"),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.CheckConstraint("price >= 0", name="ck_consultation_offerings_price_non_negative"),
        sa.CheckConstraint(
            "duration_minutes BETWEEN 15 AND 480",
            name="ck_consultation_offerings_duration_range",
        ),
    )
    op.create_index("ix_consultation_offerings_category", "consultation_offerings", ["category"], unique=False)
    op.create_index("ix_consultation_offerings_is_active", "consultation_offerings", ["is_active"], unique=False)

    op.create_table(
        "courses",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("title", sa.String(length=200), nullable=False),
        _money_col("price"),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("is_published", sa.Boolean(), nullable=False),
        sa.CheckConstraint("price >= 0", name="ck_courses_price_non_negative"),
    )

    op.create_table(
        "coupons",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("discount_type", discount_type_enum, nullable=False),
        _money_col("discount_value"),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("used_count", sa.Integer(), nullable=False),
        _ts_col("valid_from", nullable=False),
        _ts_col("valid_until", nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("applicable_to", coupon_scope_enum, nullable=False),
        _jsonb_col("specific_course_ids"),
        _jsonb_col("specific_consultation_ids"),
        _money_col("min_purchase_amount"),
        _uuid_col("created_by", nullable=True),
        sa.ForeignKeyConstraint(
            ["created_by"],
            ["users.id"],
            name="fk_coupons_created_by_users",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("code", name="uq_coupons_code"),
        sa.CheckConstraint("discount_value >= 0", name="ck_coupons_discount_value_non_negative"),
        sa.CheckConstraint(
            "discount_type <> 'percentage' OR discount_value <= 100",
            name="ck_coupons_percentage_at_most_100",
        ),
        sa.CheckConstraint("used_count >= 0", name="ck_coupons_used_count_non_negative"),
        sa.CheckConstraint("max_uses IS NULL OR max_uses >= 1", name="ck_coupons_max_uses_positive"),
        sa.CheckConstraint("max_uses IS NULL OR used_count <= max_uses", name="ck_coupons_used_count_within_cap"),
        sa.CheckConstraint("min_purchase_amount >= 0", name="ck_coupons_min_purchase_non_negative"),
    )
    op.create_index("ix_coupons_code", "coupons", ["code"], unique=False)
    op.create_index("ix_coupons_is_active", "coupons", ["is_active"], unique=False)

    op.create_table(
        "bookings",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("reference", sa.String(length=32), nullable=False),
        _uuid_col("user_id"),
        _uuid_col("offering_id"),
        sa.Column("offering_title", sa.String(length=200), nullable=False),
        sa.Column("offering_category", category_enum, nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        _money_col("price"),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("meeting_type", meeting_type_enum, nullable=False),
        sa.Column("preferred_date", sa.Date(), nullable=False),
        sa.Column("preferred_time", sa.Time(), nullable=False),
        sa.Column("alternative_date", sa.Date(), nullable=True),
        sa.Column("alternative_time", sa.Time(), nullable=True),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        _ts_col("confirmed_date_time"),
        sa.Column("status", booking_status_enum, nullable=False),
        sa.Column("payment_status", booking_payment_status_enum, nullable=False),
        _jsonb_col("user_details"),
        sa.Column("is_first_booking", sa.Boolean(), nullable=False),
        _ts_col("payment_completed_at"),
        _ts_col("confirmed_at"),
        _uuid_col("confirmed_by", nullable=True),
        _ts_col("completed_at"),
        _ts_col("no_show_marked_at"),
        _ts_col("cancelled_at"),
        sa.Column("cancelled_by", cancelled_by_enum, nullable=True),
        sa.Column("cancellation_reason", sa.String(length=500), nullable=True),
        _jsonb_col("rescheduled_from", nullable=True),
        sa.Column("rescheduled_reason", sa.String(length=500), nullable=True),
        sa.Column("rescheduled_count", sa.Integer(), nullable=False),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("feedback_rating", sa.Integer(), nullable=True),
        sa.Column("feedback_comment", sa.String(length=1000), nullable=True),
        sa.Column("feedback_is_public", sa.Boolean(), nullable=False),
        _ts_col("feedback_submitted_at"),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_bookings_user_id_users", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["offering_id"],
            ["consultation_offerings.id"],
            name="fk_bookings_offering_id_consultation_offerings",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["confirmed_by"],
            ["users.id"],
            name="fk_bookings_confirmed_by_users",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("reference", name="uq_bookings_reference"),
        sa.CheckConstraint("rescheduled_count >= 0", name="ck_bookings_rescheduled_count_non_negative"),
        sa.CheckConstraint(
            "feedback_rating IS NULL OR (feedback_rating >= 1 AND feedback_rating <= 5)",
            name="ck_bookings_feedback_rating_range",
        ),
    )
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"], unique=False)
    op.create_index("ix_bookings_offering_id", "bookings", ["offering_id"], unique=False)
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)
    op.create_index("ix_bookings_confirmed_date_time", "bookings", ["confirmed_date_time"], unique=False)
    op.create_index(
        "uq_bookings_active_user_offering",
        "bookings",
        ["user_id", "offering_id"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_BOOKING_STATUS_SQL),
    )

    op.create_table(
        "booking_sequences",
        sa.Column("day", sa.Date(), primary_key=True, nullable=False),
        sa.Column("last_value", sa.Integer(), nullable=False),
    )

    op.create_table(
        "orders",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("user_id"),
        sa.Column("order_type", order_type_enum, nullable=False),
        _uuid_col("booking_id", nullable=True),
        _uuid_col("course_id", nullable=True),
        _money_col("original_amount"),
        _money_col("discount_amount"),
        _money_col("amount"),
        sa.Column("currency", sa.String(length=3), nullable=False),
        _uuid_col("coupon_id", nullable=True),
        sa.Column("coupon_code", sa.String(length=50), nullable=True),
        sa.Column("status", order_status_enum, nullable=False),
        sa.Column("payment_method", payment_method_enum, nullable=False),
        sa.Column("external_transaction_id", sa.String(length=255), nullable=True),
        _ts_col("completed_at"),
        _ts_col("failed_at"),
        sa.Column("failure_reason", sa.String(length=500), nullable=True),
        _ts_col("refunded_at"),
        sa.Column("refund_reason", sa.String(length=500), nullable=True),
        _ts_col("cancelled_at"),
        sa.Column("cancellation_reason", sa.String(length=500), nullable=True),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_orders_user_id_users", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["booking_id"],
            ["bookings.id"],
            name="fk_orders_booking_id_bookings",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], name="fk_orders_course_id_courses", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["coupon_id"], ["coupons.id"], name="fk_orders_coupon_id_coupons", ondelete="SET NULL"),
        sa.CheckConstraint("original_amount >= 0", name="ck_orders_original_amount_non_negative"),
        sa.CheckConstraint("discount_amount >= 0", name="ck_orders_discount_amount_non_negative"),
        sa.CheckConstraint("amount >= 0", name="ck_orders_amount_non_negative"),
        sa.CheckConstraint("amount = original_amount - discount_amount", name="ck_orders_amount_matches_discount"),
        sa.CheckConstraint(
            "(order_type = 'consultation' AND booking_id IS NOT NULL AND course_id IS NULL) OR "
            "(order_type = 'course' AND course_id IS NOT NULL AND booking_id IS NULL)",
            name="ck_orders_purchase_target",
        ),
    )
    op.create_index("ix_orders_user_id", "orders", ["user_id"], unique=False)
    op.create_index("ix_orders_booking_id", "orders", ["booking_id"], unique=False)
    op.create_index("ix_orders_status", "orders", ["status"], unique=False)
    op.create_index("ix_orders_external_transaction_id", "orders", ["external_transaction_id"], unique=False)
    op.create_index(
        "uq_orders_pending_booking",
        "orders",
        ["booking_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending' AND booking_id IS NOT NULL"),
    )

    op.create_table(
        "bank_transfers",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("order_id"),
        sa.Column("receipt_url", sa.String(length=2048), nullable=False),
        sa.Column("receipt_storage_id", sa.String(length=255), nullable=True),
        sa.Column("bank_name", sa.String(length=200), nullable=False),
        sa.Column("account_holder_name", sa.String(length=200), nullable=False),
        sa.Column("transfer_date", sa.Date(), nullable=False),
        sa.Column("transfer_reference", sa.String(length=200), nullable=True),
        sa.Column("verification_status", verification_status_enum, nullable=False),
        _uuid_col("verified_by", nullable=True),
        _ts_col("verified_at"),
        sa.Column("rejection_reason", sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["orders.id"],
            name="fk_bank_transfers_order_id_orders",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["verified_by"],
            ["users.id"],
            name="fk_bank_transfers_verified_by_users",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("order_id", name="uq_bank_transfers_order_id"),
    )
    op.create_index(
        "ix_bank_transfers_verification_status",
        "bank_transfers",
        ["verification_status"],
        unique=False,
    )

    op.create_table(
        "course_enrollments",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("user_id"),
        _uuid_col("course_id"),
        _uuid_col("order_id", nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_course_enrollments_user_id_users",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["course_id"],
            ["courses.id"],
            name="fk_course_enrollments_course_id_courses",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["orders.id"],
            name="fk_course_enrollments_order_id_orders",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("user_id", "course_id", name="uq_course_enrollments_user_course"),
    )
    op.create_index("ix_course_enrollments_user_id", "course_enrollments", ["user_id"], unique=False)

    op.create_table(
        "coupon_redemptions",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("coupon_id"),
        _uuid_col("user_id"),
        _uuid_col("order_id"),
        _ts_col("redeemed_at", nullable=False),
        sa.ForeignKeyConstraint(
            ["coupon_id"],
            ["coupons.id"],
            name="fk_coupon_redemptions_coupon_id_coupons",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_coupon_redemptions_user_id_users",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["orders.id"],
            name="fk_coupon_redemptions_order_id_orders",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("coupon_id", "user_id", name="uq_coupon_redemptions_coupon_user"),
        sa.UniqueConstraint("order_id", name="uq_coupon_redemptions_order_id"),
    )
    op.create_index("ix_coupon_redemptions_coupon_id", "coupon_redemptions", ["coupon_id"], unique=False)

    op.create_table(
        "audit_logs",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("actor_id", nullable=True),
        sa.Column("action", audit_action_enum, nullable=False),
        sa.Column("severity", audit_severity_enum, nullable=False),
        sa.Column("entity_type", sa.String(length=128), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=True),
        _jsonb_col("payload"),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"], name="fk_audit_logs_actor_id_users", ondelete="SET NULL"),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"], unique=False)
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)
    op.create_index("ix_audit_logs_severity", "audit_logs", ["severity"], unique=False)

    op.create_table(
        "outbox_events",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("aggregate_type", sa.String(length=128), nullable=False),
        sa.Column("aggregate_id", sa.String(length=128), nullable=False),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        _jsonb_col("payload"),
        sa.Column("status", outbox_status_enum, nullable=False),
        _ts_col("occurred_at", nullable=False),
        _ts_col("processed_at"),
        sa.Column("retries", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
    )
    op.create_index("ix_outbox_events_aggregate_type", "outbox_events", ["aggregate_type"], unique=False)
    op.create_index("ix_outbox_events_aggregate_id", "outbox_events", ["aggregate_id"], unique=False)
    op.create_index("ix_outbox_events_event_type", "outbox_events", ["event_type"], unique=False)
    op.create_index("ix_outbox_events_status", "outbox_events", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_outbox_events_status", table_name="outbox_events")
    op.drop_index("ix_outbox_events_event_type", table_name="outbox_events")
    op.drop_index("ix_outbox_events_aggregate_id", table_name="outbox_events")
    op.drop_index("ix_outbox_events_aggregate_type", table_name="outbox_events")
    op.drop_table("outbox_events")

    op.drop_index("ix_audit_logs_severity", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_actor_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_coupon_redemptions_coupon_id", table_name="coupon_redemptions")
    op.drop_table("coupon_redemptions")

    op.drop_index("ix_course_enrollments_user_id", table_name="course_enrollments")
    op.drop_table("course_enrollments")

    op.drop_index("ix_bank_transfers_verification_status", table_name="bank_transfers")
    op.drop_table("bank_transfers")

    op.drop_index("uq_orders_pending_booking", table_name="orders")
    op.drop_index("ix_orders_external_transaction_id", table_name="orders")
    op.drop_index("ix_orders_status", table_name="orders")
    op.drop_index("ix_orders_booking_id", table_name="orders")
    op.drop_index("ix_orders_user_id", table_name="orders")
    op.drop_table("orders")

    op.drop_table("booking_sequences")

    op.drop_index("uq_bookings_active_user_offering", table_name="bookings")
    op.drop_index("ix_bookings_confirmed_date_time", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_offering_id", table_name="bookings")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_coupons_is_active", table_name="coupons")
    op.drop_index("ix_coupons_code", table_name="coupons")
    op.drop_table("coupons")

    op.drop_table("courses")

    op.drop_index("ix_consultation_offerings_is_active", table_name="consultation_offerings")
    op.drop_index("ix_consultation_offerings_category", table_name="consultation_offerings")
    op.drop_table("consultation_offerings")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    op.drop_table("roles")
