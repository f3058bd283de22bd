from __future__ import annotations

import argparse
import asyncio
import getpass
from datetime import datetime, timezone

from app.db.models.admins import Admin
from app.db.models.promo_codes import PromoCode
from app.db.repo.admin_repo import AdminRepo
from app.db.repo.promo_repo import PromoRepo
from app.db.session import SessionLocal
from app.services.admin_auth import hash_password


def _parse_utc_datetime(raw: str) -> datetime:
    value = datetime.fromisoformat(raw.strip())
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Checkout backend operator tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    admin = subparsers.add_parser("create-admin", help="Create an admin login")
    admin.add_argument("--admin-id", required=True)
    admin.add_argument("--password", help="Prompted for when omitted")

    promo = subparsers.add_parser("create-promo", help="Create a promo code")
    promo.add_argument("--code", required=True)
    promo.add_argument("--discount", type=int, default=100)
    promo.add_argument("--discount-type", choices=("percent", "fixed"), default="percent")
    promo.add_argument("--coins", type=int, default=100)
    promo.add_argument("--plan", default="yearly")
    promo.add_argument("--max-uses", type=int)
    promo.add_argument("--expires-at", help="ISO datetime")
    promo.add_argument("--no-unlock-all", action="store_true")
    promo.add_argument("--inactive", action="store_true")
    return parser.parse_args(argv)


def _validate_args(args: argparse.Namespace) -> None:
    if args.command != "create-promo":
        return
    if not args.code.strip():
        raise ValueError("--code must not be empty")
    if args.discount_type == "percent" and not (0 <= args.discount <= 100):
        raise ValueError("--discount must be in range 0..100 for percent discounts")
    if args.discount < 0 or args.coins < 0:
        raise ValueError("--discount and --coins must not be negative")
    if args.max_uses is not None and args.max_uses < 0:
        raise ValueError("--max-uses must not be negative")


async def _create_admin(args: argparse.Namespace) -> str:
    password = args.password or getpass.getpass("Admin password: ")
    if not password:
        raise ValueError("password must not be empty")

    async with SessionLocal.begin() as session:
        if await AdminRepo.get_admin(session, args.admin_id) is not None:
            raise ValueError(f"admin already exists: {args.admin_id}")
        await AdminRepo.create_admin(
            session,
            admin=Admin(
                id=args.admin_id,
                password_hash=hash_password(password),
                created_at=datetime.now(timezone.utc),
            ),
        )
    return f"created admin={args.admin_id}"


async def _create_promo(args: argparse.Namespace) -> str:
    code = args.code.strip().upper()
    async with SessionLocal.begin() as session:
        if await PromoRepo.get_by_id(session, code) is not None:
            raise ValueError(f"promo code already exists: {code}")
        await PromoRepo.create(
            session,
            promo_code=PromoCode(
                id=code,
                active=not args.inactive,
                expires_at=_parse_utc_datetime(args.expires_at) if args.expires_at else None,
                max_uses=args.max_uses,
                used_count=0,
                discount=args.discount,
                discount_type=args.discount_type,
                coins=args.coins,
                plan=args.plan,
                unlock_all=not args.no_unlock_all,
                created_at=datetime.now(timezone.utc),
            ),
        )
    return f"created promo={code} max_uses={args.max_uses or 'unlimited'}"


async def _run(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    _validate_args(args)
    if args.command == "create-admin":
        message = await _create_admin(args)
    else:
        message = await _create_promo(args)
    print(message)  # noqa: T201
    return 0


def main(argv: list[str] | None = None) -> int:
    return asyncio.run(_run(argv))


if __name__ == "__main__":
    raise SystemExit(main())
