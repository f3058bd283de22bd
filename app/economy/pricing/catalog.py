from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.economy.entitlements.rules import FeatureKey

PRICING_SETTINGS_KEY = "pricing"


class _CatalogModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class _PricedPlan(_CatalogModel):
    kind: ClassVar[str]

    id: str = Field(min_length=1)
    price: float = Field(gt=0)
    original_price: float | None = None
    active: bool = True


class BundlePlan(_PricedPlan):
    kind: ClassVar[str] = "bundle"

    name: str
    discount: str | None = None
    description: str = ""
    features: list[FeatureKey] = Field(min_length=1)
    feature_list: list[str] = Field(default_factory=list)
    popular: bool = False
    limited_offer: bool = False


class UpsellPlan(_PricedPlan):
    kind: ClassVar[str] = "upsell"

    name: str
    discount: str | None = None
    description: str = ""
    feature: FeatureKey


class ReportPlan(_PricedPlan):
    kind: ClassVar[str] = "report"

    name: str
    feature: FeatureKey


class CoinPackage(_PricedPlan):
    kind: ClassVar[str] = "coins"

    coins: int = Field(gt=0)


@dataclass(frozen=True, slots=True)
class PurchaseItem:
    kind: str
    item_id: str
    title: str
    price: Decimal
    features: tuple[str, ...] = ()
    coins: int = 0

    @property
    def amount_text(self) -> str:
        return f"{self.price.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}"

    @property
    def amount_minor(self) -> int:
        return int((self.price * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @property
    def feature(self) -> str:
        # Single-feature purchases echo their feature to the gateway; bundles do not.
        return self.features[0] if self.kind in {"upsell", "report"} and self.features else ""


def _to_price(value: float) -> Decimal:
    return Decimal(str(value))


class PricingConfig(_CatalogModel):
    bundles: list[BundlePlan] = Field(default_factory=list)
    upsells: list[UpsellPlan] = Field(default_factory=list)
    reports: list[ReportPlan] = Field(default_factory=list)
    coin_packages: list[CoinPackage] = Field(default_factory=list)

    def to_storage(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)

    def bundle_ids(self) -> list[str]:
        return [bundle.id for bundle in self.bundles]

    def resolve(self, purchase_type: str, item_id: str) -> PurchaseItem | None:
        if purchase_type == "bundle":
            for bundle in self.bundles:
                if bundle.id == item_id and bundle.active:
                    return PurchaseItem(
                        kind=bundle.kind,
                        item_id=bundle.id,
                        title=bundle.name,
                        price=_to_price(bundle.price),
                        features=tuple(bundle.features),
                    )
        elif purchase_type in {"upsell", "report"}:
            plans: list[UpsellPlan] | list[ReportPlan] = (
                self.upsells if purchase_type == "upsell" else self.reports
            )
            for plan in plans:
                if plan.id == item_id and plan.active:
                    return PurchaseItem(
                        kind=plan.kind,
                        item_id=plan.id,
                        title=plan.name,
                        price=_to_price(plan.price),
                        features=(plan.feature,),
                    )
        elif purchase_type == "coins":
            for package in self.coin_packages:
                if package.id == item_id and package.active:
                    return PurchaseItem(
                        kind=package.kind,
                        item_id=package.id,
                        title=f"{package.coins} Coins",
                        price=_to_price(package.price),
                        coins=package.coins,
                    )
        return None


DEFAULT_PRICING = PricingConfig(
    bundles=[
        BundlePlan(
            id="palm-reading",
            name="Palm Reading",
            price=559,
            original_price=699,
            discount="20% OFF",
            description="Personalized palm reading report delivered instantly.",
            features=["palmReading"],
            feature_list=[
                "Complete palm line analysis",
                "Life, heart, head line insights",
                "Personality traits revealed",
            ],
        ),
        BundlePlan(
            id="palm-birth",
            name="Palm + Birth Chart",
            price=839,
            original_price=1199,
            discount="30% OFF",
            description="Deep palm insights plus your full zodiac reading.",
            features=["palmReading", "birthChart"],
            feature_list=[
                "Everything in Palm Reading",
                "Complete birth chart analysis",
                "Planetary positions & houses",
            ],
            popular=True,
        ),
        BundlePlan(
            id="palm-birth-compat",
            name="Palm + Birth Chart + Compatibility Report",
            price=1599,
            original_price=3199,
            discount="50% OFF",
            description="Complete cosmic package with all reports included.",
            features=["palmReading", "birthChart", "compatibilityTest"],
            feature_list=[
                "Everything in Palm + Birth Chart",
                "Full compatibility analysis",
                "Partner matching report",
            ],
            limited_offer=True,
        ),
    ],
    upsells=[
        UpsellPlan(
            id="2026-predictions",
            name="2026 Future Predictions",
            price=499,
            original_price=999,
            discount="50% OFF",
            description="Detailed predictions for your 2026 journey.",
            feature="prediction2026",
        ),
    ],
    reports=[
        ReportPlan(
            id="report-2026",
            name="2026 Future Predictions",
            price=582,
            original_price=999,
            feature="prediction2026",
        ),
        ReportPlan(
            id="report-birth-chart",
            name="Birth Chart Report",
            price=582,
            original_price=999,
            feature="birthChart",
        ),
        ReportPlan(
            id="report-compatibility",
            name="Compatibility Report",
            price=582,
            original_price=999,
            feature="compatibilityTest",
        ),
    ],
    coin_packages=[
        CoinPackage(id="coins-50", coins=50, price=416, original_price=500),
        CoinPackage(id="coins-150", coins=150, price=1082, original_price=1500),
        CoinPackage(id="coins-300", coins=300, price=1666, original_price=2500),
        CoinPackage(id="coins-500", coins=500, price=2499, original_price=3500),
    ],
)
