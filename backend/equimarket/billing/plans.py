"""Plan definitions — pricing tiers and feature bundles."""

from collections.abc import Iterator, Mapping
from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from equimarket.errors import InvalidPlan


class PlanName(str, Enum):
    FREE = "Free"
    TROT = "Trot"
    GALLOP = "Gallop"
    ROYAL_STALLION = "Royal Stallion"


# "Starter" is the storefront name of the free tier.
PLAN_ALIASES: dict[str, PlanName] = {"Starter": PlanName.FREE}

PLAN_PRIORITY: dict[PlanName, int] = {
    PlanName.FREE: 0,
    PlanName.TROT: 1,
    PlanName.GALLOP: 2,
    PlanName.ROYAL_STALLION: 3,
}

NO_PLAN_PRIORITY = -1


class BoostAllowance(BaseModel):
    """Featured listing boosts granted per plan. duration_days == 0 means no boosts."""

    model_config = ConfigDict(frozen=True)

    count: int = 0
    duration_days: int = 0


class FeatureBundle(BaseModel):
    """Entitlements granted by a plan.

    Frozen value type: two bundles are equal when every field is equal, and a
    bundle can be shared without any seller being able to alter another
    seller's entitlements.
    """

    model_config = ConfigDict(frozen=True)

    max_photos: int = 0
    max_listings: int = 0
    listing_duration_days: int = 0
    verification_level: str = "none"  # none, basic, premium
    virtual_stable_tour: bool = False
    analytics: bool = False
    homepage_spotlights_per_month: int = 0
    spotlight_duration_days: int = 0
    featured_listing_boosts: BoostAllowance = BoostAllowance()
    priority_placement: bool = False
    badges: tuple[str, ...] = ()
    search_placement: str = "none"  # none, basic, premium
    social_media_sharing: bool = False
    serious_buyer_access: bool = False


class PlanDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: PlanName
    price_minor: int  # paise, e.g. 199900 = ₹1,999.00
    duration_days: int
    features: FeatureBundle

    @property
    def priority(self) -> int:
        return PLAN_PRIORITY[self.name]

    @property
    def is_free(self) -> bool:
        return self.price_minor == 0


# Bundle for a seller who never bought a plan.
NO_PLAN_FEATURES = FeatureBundle()

# Bundle a seller falls back to once their plan lapses with nothing queued.
EXPIRED_FEATURES = FeatureBundle(
    verification_level="basic",
    badges=("Free User",),
    search_placement="basic",
)


DEFAULT_PLANS: tuple[PlanDefinition, ...] = (
    PlanDefinition(
        name=PlanName.FREE,
        price_minor=0,
        duration_days=7,
        features=FeatureBundle(
            max_photos=1,
            max_listings=1,
            listing_duration_days=7,
            verification_level="basic",
            badges=("Free User",),
            search_placement="basic",
        ),
    ),
    PlanDefinition(
        name=PlanName.TROT,
        price_minor=199900,
        duration_days=30,
        features=FeatureBundle(
            max_photos=5,
            max_listings=5,
            listing_duration_days=30,
            verification_level="basic",
            badges=("Basic Seller",),
            search_placement="basic",
        ),
    ),
    PlanDefinition(
        name=PlanName.GALLOP,
        price_minor=499900,
        duration_days=30,
        features=FeatureBundle(
            max_photos=10,
            max_listings=10,
            listing_duration_days=60,
            verification_level="basic",
            analytics=True,
            homepage_spotlights_per_month=2,
            spotlight_duration_days=5,
            featured_listing_boosts=BoostAllowance(count=1, duration_days=5),
            badges=("Verified Seller",),
            search_placement="basic",
            social_media_sharing=True,
        ),
    ),
    PlanDefinition(
        name=PlanName.ROYAL_STALLION,
        price_minor=999900,
        duration_days=30,
        features=FeatureBundle(
            max_photos=20,
            max_listings=9999,
            listing_duration_days=90,
            verification_level="premium",
            virtual_stable_tour=True,
            analytics=True,
            homepage_spotlights_per_month=5,
            spotlight_duration_days=7,
            featured_listing_boosts=BoostAllowance(count=3, duration_days=7),
            priority_placement=True,
            badges=("Top Seller", "Premium Stable"),
            search_placement="premium",
            social_media_sharing=True,
            serious_buyer_access=True,
        ),
    ),
)


class PlanCatalog:
    """Immutable lookup of plan tiers, built once and passed to whoever needs it."""

    def __init__(self, plans: tuple[PlanDefinition, ...] = DEFAULT_PLANS) -> None:
        self._plans: Mapping[PlanName, PlanDefinition] = MappingProxyType(
            {plan.name: plan for plan in plans}
        )

    def __iter__(self) -> Iterator[PlanDefinition]:
        return iter(sorted(self._plans.values(), key=lambda p: p.priority))

    def __contains__(self, plan_name: object) -> bool:
        try:
            self.resolve(plan_name)  # type: ignore[arg-type]
        except InvalidPlan:
            return False
        return True

    def resolve(self, plan_name: str | PlanName | None) -> PlanName:
        """Map a plan name (or alias) to a PlanName, raising InvalidPlan if unknown."""
        if isinstance(plan_name, PlanName) and plan_name in self._plans:
            return plan_name
        if isinstance(plan_name, str):
            name = PLAN_ALIASES.get(plan_name)
            if name is None:
                try:
                    name = PlanName(plan_name)
                except ValueError:
                    name = None
            if name is not None and name in self._plans:
                return name
        raise InvalidPlan(plan_name)

    def get(self, plan_name: str | PlanName) -> PlanDefinition:
        return self._plans[self.resolve(plan_name)]

    def features_for(self, plan_name: str | PlanName) -> FeatureBundle:
        """Return a private copy of the plan's feature bundle."""
        return self.get(plan_name).features.model_copy(deep=True)

    def duration_days(self, plan_name: str | PlanName) -> int:
        return self.get(plan_name).duration_days

    def price_minor(self, plan_name: str | PlanName) -> int:
        return self.get(plan_name).price_minor


def plan_priority(plan_name: PlanName | None) -> int:
    """Tier ordering used by the upgrade rule. No plan ranks below every tier."""
    if plan_name is None:
        return NO_PLAN_PRIORITY
    return PLAN_PRIORITY[plan_name]
