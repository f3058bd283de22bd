from app.db.repo.ab_tests_repo import ABTestsRepo
from app.db.repo.admin_repo import AdminRepo
from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.promo_repo import PromoRepo
from app.db.repo.reconciliation_runs_repo import ReconciliationRunsRepo
from app.db.repo.settings_repo import SettingsRepo
from app.db.repo.users_repo import UsersRepo

__all__ = [
    "ABTestsRepo",
    "AdminRepo",
    "LedgerRepo",
    "PaymentsRepo",
    "PromoRepo",
    "ReconciliationRunsRepo",
    "SettingsRepo",
    "UsersRepo",
]
