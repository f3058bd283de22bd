from app.db.models.ab_test_assignments import ABTestAssignment
from app.db.models.ab_test_events import ABTestEvent
from app.db.models.ab_test_stats import ABTestStats
from app.db.models.ab_tests import ABTest
from app.db.models.admins import Admin, AdminSession
from app.db.models.app_settings import AppSetting
from app.db.models.base import Base
from app.db.models.ledger_entries import LedgerEntry
from app.db.models.payments import Payment
from app.db.models.promo_codes import PromoCode
from app.db.models.reconciliation_runs import ReconciliationRun
from app.db.models.users import User

__all__ = [
    "ABTest",
    "ABTestAssignment",
    "ABTestEvent",
    "ABTestStats",
    "Admin",
    "AdminSession",
    "AppSetting",
    "Base",
    "LedgerEntry",
    "Payment",
    "PromoCode",
    "ReconciliationRun",
    "User",
]
