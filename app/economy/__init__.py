from app.economy.entitlements.service import EntitlementService
from app.economy.experiments.service import ExperimentService
from app.economy.payments.service import PaymentService
from app.economy.pricing.service import PricingService
from app.economy.promo.service import PromoService

__all__ = [
    "EntitlementService",
    "ExperimentService",
    "PaymentService",
    "PricingService",
    "PromoService",
]
