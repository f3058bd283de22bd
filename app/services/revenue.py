from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import ConfigurationError, ValidationError
from app.db.models.payments import Payment
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.entitlements.rules import PURCHASE_TYPES
from app.economy.pricing.service import PricingService
from app.services.admin_auth import verify_session

logger = structlog.get_logger(__name__)

ANONYMOUS_USER_PREFIX = "anon_"
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 500
SERIES_DAYS = 30
UNKNOWN = "Unknown"

UserIdentity = tuple[str, str | None, str | None]


@dataclass(frozen=True, slots=True)
class DateRange:
    start: date
    end: date


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def _rupees(payment: Payment) -> Decimal:
    return Decimal(payment.amount_minor or 0) / 100


def _paid_on(payment: Payment) -> datetime:
    return payment.paid_at or payment.created_at


def _parse_day(raw: str, *, field: str) -> date:
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise ValidationError(f"{field} must be a YYYY-MM-DD date") from exc


def parse_date_range(start_raw: str | None, end_raw: str | None) -> DateRange | None:
    """Inclusive day range; a lone start date covers that single day."""
    if not start_raw:
        if end_raw:
            raise ValidationError("startDate is required when endDate is given")
        return None
    start = _parse_day(start_raw, field="startDate")
    end = _parse_day(end_raw, field="endDate") if end_raw else start
    if end < start:
        raise ValidationError("endDate must not be before startDate")
    return DateRange(start=start, end=end)


def resolve_business_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown BUSINESS_TIMEZONE: {name}") from exc


def _sum(payments: Iterable[Payment]) -> Decimal:
    return sum((_rupees(p) for p in payments), Decimal("0"))


def _day_start(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _between(payments: Iterable[Payment], start: datetime, end: datetime | None = None) -> list[Payment]:
    return [p for p in payments if _paid_on(p) >= start and (end is None or _paid_on(p) < end)]


def _transaction_row(
    payment: Payment,
    *,
    identities: dict[str, tuple[str | None, str | None]],
) -> dict[str, object]:
    email, name = identities.get(payment.user_id or "", (None, None))
    return {
        "id": payment.id,
        "date": _paid_on(payment).isoformat(),
        "userId": payment.user_id,
        "userEmail": email or payment.customer_email or UNKNOWN,
        "userName": name or UNKNOWN,
        "amount": _money(_rupees(payment)),
        "bundleId": payment.item_id if payment.purchase_type == "bundle" else None,
        "itemId": payment.item_id,
        "type": payment.purchase_type,
        "gateway": payment.gateway,
        "status": payment.status,
    }


def build_revenue_summary(
    payments: Sequence[Payment],
    users: Sequence[UserIdentity],
    *,
    now_utc: datetime,
    tz: tzinfo,
    bundle_ids: Sequence[str],
    date_range: DateRange | None = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> dict[str, object]:
    if page < 1:
        raise ValidationError("page must be >= 1")
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValidationError(f"pageSize must be between 1 and {MAX_PAGE_SIZE}")

    paid = sorted(
        (p for p in payments if p.status == "paid"),
        key=_paid_on,
        reverse=True,
    )

    today = now_utc.astimezone(tz).date()
    start_of_today = _day_start(today, tz)
    # Weeks start on Sunday.
    start_of_week = _day_start(today - timedelta(days=(today.weekday() + 1) % 7), tz)
    start_of_month = _day_start(today.replace(day=1), tz)
    start_of_year = _day_start(today.replace(month=1, day=1), tz)
    last_month_day = today.replace(day=1) - timedelta(days=1)
    start_of_last_month = _day_start(last_month_day.replace(day=1), tz)

    total = _sum(paid)
    this_month = _sum(_between(paid, start_of_month))
    last_month = _sum(_between(paid, start_of_last_month, start_of_month))
    if last_month > 0:
        mom_growth = f"{(this_month - last_month) / last_month * 100:.1f}"
    else:
        mom_growth = "N/A"

    by_type = {
        purchase_type: _money(_sum(p for p in paid if p.purchase_type == purchase_type))
        for purchase_type in PURCHASE_TYPES
    }
    bundle_breakdown: dict[str, dict[str, object]] = {}
    for bundle_id in bundle_ids:
        matches = [p for p in paid if p.purchase_type == "bundle" and p.item_id == bundle_id]
        bundle_breakdown[bundle_id] = {"count": len(matches), "revenue": _money(_sum(matches))}

    paying_users = {p.user_id for p in paid if p.user_id}
    arpu = _money(total / len(paying_users)) if paying_users else "0"
    registered = [identity for identity in users if not identity[0].startswith(ANONYMOUS_USER_PREFIX)]
    identities = {user_id: (email, name) for user_id, email, name in registered}

    series: list[dict[str, object]] = []
    for offset in range(SERIES_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        day_start = _day_start(day, tz)
        day_total = _sum(_between(paid, day_start, _day_start(day + timedelta(days=1), tz)))
        series.append({"date": day.isoformat(), "revenue": _money(day_total)})

    offset = (page - 1) * page_size
    summary: dict[str, object] = {
        "currency": "INR",
        "totalRevenue": _money(total),
        "revenueToday": _money(_sum(_between(paid, start_of_today))),
        "revenueThisWeek": _money(_sum(_between(paid, start_of_week))),
        "revenueThisMonth": _money(this_month),
        "revenueThisYear": _money(_sum(_between(paid, start_of_year))),
        "revenueLastMonth": _money(last_month),
        "momGrowth": mom_growth,
        "revenueByType": by_type,
        "bundleBreakdown": bundle_breakdown,
        "arpu": arpu,
        "totalPayments": len(payments),
        "successfulPayments": len(paid),
        "failedPayments": sum(1 for p in payments if p.status == "failed"),
        "pendingPayments": sum(1 for p in payments if p.status == "created"),
        "revenueOverTime": series,
        "recentTransactions": [
            _transaction_row(p, identities=identities) for p in paid[offset : offset + page_size]
        ],
        "pagination": {"page": page, "pageSize": page_size, "total": len(paid)},
        "totalUsers": len(registered),
        "uniquePayingUsers": len(paying_users),
    }

    if date_range is not None:
        in_range = _between(
            paid,
            _day_start(date_range.start, tz),
            _day_start(date_range.end + timedelta(days=1), tz),
        )
        summary.update(
            {
                "customDateRevenue": _money(_sum(in_range)),
                "customDatePaymentCount": len(in_range),
                "customDateTransactions": [
                    _transaction_row(p, identities=identities) for p in in_range
                ],
                "customDateRange": {
                    "start": date_range.start.isoformat(),
                    "end": date_range.end.isoformat(),
                },
            }
        )
    return summary


async def get_revenue(
    session: AsyncSession,
    *,
    token: str | None,
    now_utc: datetime,
    date_range: DateRange | None = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> dict[str, object]:
    admin_id = await verify_session(session, token=token, now_utc=now_utc)
    tz = resolve_business_timezone(get_settings().business_timezone)

    payments = await PaymentsRepo.list_all(session)
    users = await UsersRepo.list_identities(session)
    pricing = await PricingService.get_pricing()

    summary = build_revenue_summary(
        payments,
        users,
        now_utc=now_utc,
        tz=tz,
        bundle_ids=pricing.bundle_ids(),
        date_range=date_range,
        page=page,
        page_size=page_size,
    )
    logger.info(
        "admin_revenue_report_built",
        admin_id=admin_id,
        payments_scanned=len(payments),
        custom_range=date_range is not None,
    )
    return summary
