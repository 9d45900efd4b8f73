"""Seed idempotent demo data for local/non-production environments."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import get_settings
from app.core.database import SessionLocal, close_engine
from app.core.enums import ConsultationCategoryEnum, ConsultationTypeEnum, DiscountTypeEnum, RoleEnum
from app.core.security import create_access_token
from app.modules.audit.repository import AuditRepository
from app.modules.catalog.models import ConsultationOffering, Course
from app.modules.catalog.repository import CatalogRepository
from app.modules.coupons.repository import CouponRepository
from app.modules.coupons.schemas import CouponCreate
from app.modules.coupons.service import CouponService
from app.modules.identity.models import Role, User

DEMO_ADMIN_EMAIL = "demo-admin@consultations.dev"
DEMO_USER_EMAIL = "demo-user@consultations.dev"
DEMO_TIMEZONE = "Asia/Riyadh"

DEMO_OFFERINGS = (
    {
        "title": "استشارة رياضية فردية",
        "category": ConsultationCategoryEnum.SPORTS,
        "price": Decimal("150.00"),
        "duration_minutes": 60,
        "consultation_type": ConsultationTypeEnum.BOTH,
        "available_days": ["sunday", "monday", "tuesday", "wednesday", "thursday"],
        "available_time_slots": [{"start": "09:00", "end": "12:00"}, {"start": "16:00", "end": "21:00"}],
    },
    {
        "title": "جلسة تغذية",
        "category": ConsultationCategoryEnum.NUTRITION,
        "price": Decimal("90.00"),
        "duration_minutes": 45,
        "consultation_type": ConsultationTypeEnum.ONLINE,
        "available_days": [],
        "available_time_slots": [],
    },
)
DEMO_COURSE_TITLE = "أساسيات اللياقة البدنية"
DEMO_COURSE_PRICE = Decimal("49.00")
DEMO_COUPON_CODE = "WELCOME10"


@dataclass(slots=True)
class SeedStats:
    roles_created: int = 0
    users_created: int = 0
    offerings_created: int = 0
    course_created: bool = False
    coupon_created: bool = False
    tokens: dict[str, str] = field(default_factory=dict)


async def _ensure_roles(session: AsyncSession) -> int:
    created = 0
    for role_name in (RoleEnum.USER, RoleEnum.ADMIN):
        existing = await session.scalar(select(Role).where(Role.name == role_name))
        if existing is None:
            session.add(Role(name=role_name))
            created += 1
    await session.flush()
    return created


async def _ensure_user(
    session: AsyncSession,
    *,
    email: str,
    full_name: str,
    role_name: RoleEnum,
) -> tuple[User, bool]:
    role = await session.scalar(select(Role).where(Role.name == role_name))
    if role is None:
        raise RuntimeError(f"Role {role_name} was not found after ensure_roles")

    user = await session.scalar(
        select(User).options(selectinload(User.role)).where(User.email == email),
    )
    created = False
    if user is None:
        user = User(
            email=email,
            full_name=full_name,
            timezone=DEMO_TIMEZONE,
            is_active=True,
            role_id=role.id,
        )
        session.add(user)
        created = True
    else:
        user.role_id = role.id
        user.is_active = True

    await session.flush()
    await session.refresh(user, attribute_names=["role"])
    return user, created


async def _ensure_offerings(session: AsyncSession, currency: str) -> int:
    repository = CatalogRepository(session)
    created = 0
    for offering in DEMO_OFFERINGS:
        existing = await session.scalar(
            select(ConsultationOffering).where(ConsultationOffering.title == offering["title"]),
        )
        if existing is not None:
            continue
        await repository.create_offering(currency=currency, **offering)
        created += 1
    return created


async def _ensure_course(session: AsyncSession, currency: str) -> bool:
    existing = await session.scalar(select(Course).where(Course.title == DEMO_COURSE_TITLE))
    if existing is not None:
        return False
    await CatalogRepository(session).create_course(DEMO_COURSE_TITLE, DEMO_COURSE_PRICE, currency)
    return True


async def _ensure_coupon(session: AsyncSession, admin_user: User) -> bool:
    repository = CouponRepository(session)
    if await repository.get_coupon_by_code(DEMO_COUPON_CODE) is not None:
        return False

    service = CouponService(repository, AuditRepository(session))
    await service.create_coupon(
        CouponCreate(
            code=DEMO_COUPON_CODE,
            description="Demo welcome discount",
            discount_type=DiscountTypeEnum.PERCENTAGE,
            discount_value=Decimal("10"),
            max_uses=100,
            valid_until=datetime.now(UTC) + timedelta(days=90),
        ),
        admin_user,
    )
    return True


async def _run_seed(*, allow_production: bool) -> SeedStats:
    settings = get_settings()
    app_env = settings.app_env.strip().lower()
    if app_env in {"production", "prod"} and not allow_production:
        raise RuntimeError(
            "Refusing to seed demo data in production. "
            "Re-run with --allow-production only if you are absolutely sure.",
        )

    stats = SeedStats()

    async with SessionLocal() as session:
        try:
            stats.roles_created = await _ensure_roles(session)

            admin_user, admin_created = await _ensure_user(
                session,
                email=DEMO_ADMIN_EMAIL,
                full_name="Demo Admin",
                role_name=RoleEnum.ADMIN,
            )
            demo_user, user_created = await _ensure_user(
                session,
                email=DEMO_USER_EMAIL,
                full_name="Demo User",
                role_name=RoleEnum.USER,
            )
            stats.users_created = sum([admin_created, user_created])

            stats.offerings_created = await _ensure_offerings(session, settings.default_currency)
            stats.course_created = await _ensure_course(session, settings.default_currency)
            stats.coupon_created = await _ensure_coupon(session, admin_user)

            await session.commit()
        except Exception:
            await session.rollback()
            raise

    stats.tokens = {
        "admin": create_access_token(str(admin_user.id)),
        "user": create_access_token(str(demo_user.id)),
    }
    return stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Seed idempotent demo data for the consultation service (users, offerings, "
            "a course and a welcome coupon)."
        ),
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow seeding even when APP_ENV is production/prod.",
    )
    return parser


def _print_summary(stats: SeedStats) -> None:
    print("Demo seed completed.")
    print(f"- Roles created: {stats.roles_created}")
    print(f"- Users created: {stats.users_created}")
    print(f"- Offerings created: {stats.offerings_created}")
    print(f"- Course created: {stats.course_created}")
    print(f"- Coupon {DEMO_COUPON_CODE} created: {stats.coupon_created}")
    print("")
    print("Demo access tokens (non-production only):")
    print(f"- admin: {DEMO_ADMIN_EMAIL}\n  {stats.tokens['admin']}")
    print(f"- user:  {DEMO_USER_EMAIL}\n  {stats.tokens['user']}")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    try:
        stats = asyncio.run(_run_seed(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Demo seed failed: {exc}")
        return 1
    finally:
        asyncio.run(close_engine())

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
