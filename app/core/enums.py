"""Core enums used across modules."""

from enum import StrEnum


class RoleEnum(StrEnum):
    """System roles."""

    USER = "user"
    ADMIN = "admin"


class CurrencyEnum(StrEnum):
    """Supported settlement currencies."""

    USD = "USD"
    SAR = "SAR"
    EGP = "EGP"


class ConsultationCategoryEnum(StrEnum):
    """Consultation offering category."""

    SPORTS = "sports"
    LIFE_COACHING = "life_coaching"
    GROUP = "group"
    VIP = "vip"
    NUTRITION = "nutrition"
    GENERAL = "general"


class ConsultationTypeEnum(StrEnum):
    """Meeting modes an offering supports."""

    ONLINE = "online"
    IN_PERSON = "in_person"
    BOTH = "both"


class MeetingTypeEnum(StrEnum):
    """Meeting mode requested for a booking."""

    ONLINE = "online"
    IN_PERSON = "in_person"


class BookingStatusEnum(StrEnum):
    """Consultation booking lifecycle status."""

    PENDING_PAYMENT = "pending_payment"
    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"
    RESCHEDULED = "rescheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class BookingPaymentStatusEnum(StrEnum):
    """Payment status mirrored on the booking."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class CancelledByEnum(StrEnum):
    """Party that cancelled a booking."""

    USER = "user"
    ADMIN = "admin"
    SYSTEM = "system"


class GenderEnum(StrEnum):
    """Gender values accepted in booking user details."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class FitnessLevelEnum(StrEnum):
    """Self-reported fitness level."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class OrderTypeEnum(StrEnum):
    """What an order purchases."""

    COURSE = "course"
    CONSULTATION = "consultation"


class OrderStatusEnum(StrEnum):
    """Order lifecycle status."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class PaymentMethodEnum(StrEnum):
    """Supported payment methods."""

    PAYPAL = "paypal"
    STRIPE = "stripe"
    BANK_TRANSFER = "bank_transfer"
    MANUAL = "manual"


class CaptureOutcomeEnum(StrEnum):
    """Definitive result of an external capture."""

    SUCCESS = "success"
    FAILURE = "failure"


class VerificationStatusEnum(StrEnum):
    """Bank transfer verification status."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class VerificationOutcomeEnum(StrEnum):
    """Decision an administrator can take on a bank transfer."""

    VERIFIED = "verified"
    REJECTED = "rejected"


class DiscountTypeEnum(StrEnum):
    """Coupon discount type."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CouponScopeEnum(StrEnum):
    """What a coupon may be applied to."""

    ALL = "all"
    COURSES = "courses"
    CONSULTATIONS = "consultations"
    SPECIFIC = "specific"


class PurchaseKindEnum(StrEnum):
    """Kind of purchase a coupon is validated against."""

    COURSE = "course"
    CONSULTATION = "consultation"


class AuditSeverityEnum(StrEnum):
    """Audit log severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AuditActionEnum(StrEnum):
    """Closed set of audited actions."""

    USER_CREATE = "user.create"
    USER_UPDATE = "user.update"
    USER_DELETE = "user.delete"
    USER_SUSPEND = "user.suspend"
    USER_ACTIVATE = "user.activate"
    USERS_LIST = "users.list"
    COURSE_CREATE = "course.create"
    COURSE_UPDATE = "course.update"
    COURSE_DELETE = "course.delete"
    COURSE_PUBLISH = "course.publish"
    COURSE_UNPUBLISH = "course.unpublish"
    COURSE_ENROLL = "course.enroll"
    BOOKING_CREATE = "booking.create"
    BOOKING_CONFIRM = "booking.confirm"
    BOOKING_RESCHEDULE = "booking.reschedule"
    BOOKING_CANCEL = "booking.cancel"
    BOOKING_COMPLETE = "booking.complete"
    BOOKING_NO_SHOW = "booking.no_show"
    BOOKING_FEEDBACK = "booking.feedback"
    ORDER_CREATE = "order.create"
    ORDER_UPDATE = "order.update"
    ORDER_COMPLETE = "order.complete"
    ORDER_FAIL = "order.fail"
    ORDER_REFUND = "order.refund"
    ORDER_CANCEL = "order.cancel"
    BANK_TRANSFER_VERIFY = "bank_transfer.verify"
    BANK_TRANSFER_REJECT = "bank_transfer.reject"
    COUPON_CREATE = "coupon.create"
    COUPON_UPDATE = "coupon.update"
    COUPON_DELETE = "coupon.delete"
    COUPON_REDEEM = "coupon.redeem"
    LOGIN = "login"
    LOGOUT = "logout"
    PASSWORD_RESET = "password.reset"
    SETTINGS_UPDATE = "settings.update"
    UNAUTHORIZED_ACCESS_ATTEMPT = "unauthorized_access_attempt"
    PERMISSION_DENIED = "permission_denied"
    ANALYTICS_VIEW = "analytics.view"
    REPORTS_GENERATE = "reports.generate"
    INTEGRITY_VIOLATION = "integrity.violation"


class OutboxStatusEnum(StrEnum):
    """Outbox event status for integration publishing."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"
