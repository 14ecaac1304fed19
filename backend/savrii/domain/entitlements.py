"""Plan entitlement resolution.

Decides, for a user record and a feature identifier:
- whether the feature is accessible now
- which plan an upgrade prompt should advertise
- how far through the starter trial the user is

Every operation is total: unknown plans resolve to starter, unknown features
are denied, missing trial dates mean "no trial". No DB access, no caching;
time-dependent operations take an injectable ``now``.

Access rules, applied in order (first match wins):
1. Missing user -> denied
2. Starter user with an expired trial -> denied, whatever the feature
3. Feature in the override table -> the table's value for the user's plan
4. Feature in the plan's allow-list -> allowed
5. Legacy identifier -> its rule over the plan's flags / tier
6. Anything else -> denied
"""

from collections.abc import Mapping
from datetime import UTC, datetime, tzinfo
from functools import lru_cache

import structlog

from savrii.core.config import get_settings
from savrii.core.exceptions import FeatureAccessDenied, PlanConfigurationError
from savrii.domain.features import FEATURE_ACCESS, LegacyFeature, TierLadder, legacy_access
from savrii.domain.plans import (
    DEFAULT_PLAN,
    PLANS,
    TIER_ORDER,
    TRIAL_PLAN,
    UNLIMITED,
    Plan,
    lookup_plan,
    tier_rank,
)
from savrii.domain.trial import (
    as_utc,
    calendar_day_number,
    days_until,
    resolve_timezone,
    trial_end_for,
)
from savrii.schemas.entitlements import TrialStatus, UserRecord

logger = structlog.get_logger(__name__)


class EntitlementResolver:
    """Evaluate plan entitlements against a fixed set of tables.

    The module-level functions use the production tables; build your own
    resolver to evaluate alternative tables.
    """

    def __init__(
        self,
        plans: Mapping[str, Plan] = PLANS,
        feature_access: Mapping[str, Mapping[str, bool]] = FEATURE_ACCESS,
        tier_order: tuple[str, ...] = TIER_ORDER,
        trial_plan: str = TRIAL_PLAN,
        default_plan: str = DEFAULT_PLAN,
    ):
        if len(tier_order) < 2:
            raise PlanConfigurationError("At least two tiers are required for upgrade targets")
        missing = [tier for tier in tier_order if tier not in plans]
        if missing:
            raise PlanConfigurationError(f"Tiers without a plan definition: {missing}")
        if default_plan not in plans:
            raise PlanConfigurationError(f"Default plan '{default_plan}' is not defined")
        if trial_plan not in plans:
            raise PlanConfigurationError(f"Trial plan '{trial_plan}' is not defined")
        if not plans[trial_plan].trial_length_days:
            raise PlanConfigurationError(f"Trial plan '{trial_plan}' has no trial length")

        self.plans = plans
        self.feature_access = feature_access
        self.tier_order = tuple(tier_order)
        self.trial_plan = trial_plan
        self.default_plan = default_plan
        self.ladder = TierLadder(order=self.tier_order, trial_plan=trial_plan)

    # ── Plans ────────────────────────────────────────────────────────

    def get_plan_features(self, plan_id: str | None) -> Plan:
        """Return the plan for plan_id; unknown ids fall back to the default (starter) tier."""
        return lookup_plan(self.plans, plan_id, self.default_plan)

    @property
    def mid_tier(self) -> str:
        return self.tier_order[1]

    @property
    def top_tier(self) -> str:
        return self.tier_order[-1]

    @property
    def trial_length_days(self) -> int:
        return self.plans[self.trial_plan].trial_length_days

    def ordered_plans(self) -> list[Plan]:
        return [self.plans[tier] for tier in self.tier_order]

    # ── Trial ────────────────────────────────────────────────────────

    def _on_trial_plan(self, user: UserRecord | None) -> bool:
        return user is not None and user.plan == self.trial_plan

    def start_trial(self, now: datetime | None = None) -> UserRecord:
        """Create the user record for a fresh sign-up on the trial tier."""
        now = now or datetime.now(UTC)
        return UserRecord(
            plan=str(self.trial_plan),
            trial_start_date=now,
            trial_end_date=trial_end_for(now, self.trial_length_days),
        )

    def is_trial_expired(self, user: UserRecord | None, now: datetime | None = None) -> bool:
        """True only for a trial-tier user whose trial_end_date is strictly in the past."""
        if not self._on_trial_plan(user) or user.trial_end_date is None:
            return False
        return as_utc(now or datetime.now(UTC)) > as_utc(user.trial_end_date)

    def get_days_left_in_trial(self, user: UserRecord | None, now: datetime | None = None) -> int:
        """Whole days left in the trial, rounded up; 0 when not on a trial."""
        if not self._on_trial_plan(user) or user.trial_end_date is None:
            return 0
        return days_until(user.trial_end_date, now or datetime.now(UTC))

    def get_current_trial_day(
        self,
        user: UserRecord | None,
        now: datetime | None = None,
        tz: str | tzinfo | None = None,
    ) -> int:
        """Calendar day of the trial, 1..trial_length_days; 1 when not on a trial.

        Days roll over at midnight in ``tz`` (defaults to Settings.trial_day_timezone).
        """
        if not self._on_trial_plan(user) or user.trial_start_date is None:
            return 1
        zone = resolve_timezone(tz if tz is not None else get_settings().trial_day_timezone)
        return calendar_day_number(
            user.trial_start_date,
            now or datetime.now(UTC),
            zone,
            self.trial_length_days,
        )

    def get_trial_status(
        self,
        user: UserRecord | None,
        now: datetime | None = None,
        tz: str | tzinfo | None = None,
    ) -> TrialStatus:
        now = now or datetime.now(UTC)
        on_trial = self._on_trial_plan(user)
        return TrialStatus(
            plan=user.plan if user is not None else str(self.default_plan),
            on_trial_plan=on_trial,
            trial_start_date=user.trial_start_date if user is not None else None,
            trial_end_date=user.trial_end_date if user is not None else None,
            trial_length_days=self.trial_length_days if on_trial else None,
            days_left=self.get_days_left_in_trial(user, now),
            current_day=self.get_current_trial_day(user, now, tz),
            expired=self.is_trial_expired(user, now),
        )

    # ── Features ─────────────────────────────────────────────────────

    def can_access_feature(
        self,
        user: UserRecord | None,
        feature: str,
        now: datetime | None = None,
    ) -> bool:
        """Whether the user may use feature right now. Never raises."""
        if user is None:
            return False

        if self._on_trial_plan(user) and self.is_trial_expired(user, now):
            return False

        access = self.feature_access.get(feature)
        if access is not None:
            return bool(access.get(user.plan, False))

        plan = self.get_plan_features(user.plan)
        if feature in plan.allowed_features:
            return True

        return legacy_access(feature, plan, self.ladder)

    def get_upgrade_target(self, current_plan_id: str | None, feature: str) -> str:
        """Plan the upgrade prompt should advertise for feature.

        Looks only at the allow-lists; the override table and legacy rules are
        not consulted, so this is a display hint rather than an access check.
        """
        mid = str(self.mid_tier)
        top = str(self.top_tier)
        if feature in self.plans[mid].allowed_features:
            current = self.get_plan_features(current_plan_id).id
            if tier_rank(current, self.tier_order) >= tier_rank(mid, self.tier_order):
                return top
            return mid
        if feature in self.plans[top].allowed_features:
            return top
        return mid

    def ensure_feature_access(
        self,
        user: UserRecord | None,
        feature: str,
        now: datetime | None = None,
    ) -> None:
        """Raise FeatureAccessDenied unless the user may use feature."""
        if self.can_access_feature(user, feature, now):
            return
        trial_expired = self.is_trial_expired(user, now)
        current_plan = user.plan if user is not None else None
        upgrade_target = str(self.get_upgrade_target(current_plan, feature))
        logger.info(
            "feature_access_denied",
            feature=feature,
            plan=current_plan,
            upgrade_target=upgrade_target,
            trial_expired=trial_expired,
        )
        raise FeatureAccessDenied(
            feature=feature,
            upgrade_target=upgrade_target,
            trial_expired=trial_expired,
        )

    def feature_map(self, user: UserRecord | None, now: datetime | None = None) -> dict[str, bool]:
        """Access decision for every known feature, keyed by identifier."""
        now = now or datetime.now(UTC)
        return {feature: self.can_access_feature(user, feature, now) for feature in sorted(self.known_features())}

    def known_features(self) -> frozenset[str]:
        """Every identifier referenced by an allow-list, the override table or a legacy rule."""
        features: set[str] = set(self.feature_access)
        features.update(str(member) for member in LegacyFeature)
        for plan in self.plans.values():
            features.update(plan.allowed_features)
        return frozenset(features)

    def features_without_upgrade_tier(self) -> frozenset[str]:
        """Referenced features no plan's allow-list names; upgrade prompts fall back to the mid tier."""
        listed: set[str] = set()
        for plan in self.plans.values():
            listed.update(plan.allowed_features)
        return frozenset(self.known_features() - listed)

    # ── Limits ───────────────────────────────────────────────────────

    def get_query_limit(self, user: UserRecord | None, now: datetime | None = None) -> int:
        """Monthly query allowance; 0 after the trial expires, -1 for unlimited."""
        if self.is_trial_expired(user, now):
            return 0
        return self.get_plan_features(user.plan if user is not None else None).query_limit

    def has_query_quota(self, user: UserRecord | None, used: int, now: datetime | None = None) -> bool:
        limit = self.get_query_limit(user, now)
        if limit == UNLIMITED:
            return True
        return used < limit

    def get_team_member_limit(self, user: UserRecord | None) -> int:
        return self.get_plan_features(user.plan if user is not None else None).team_member_limit

    def can_add_team_member(self, user: UserRecord | None, current_members: int) -> bool:
        """Seat check: is there room for one more member on the user's plan?"""
        limit = self.get_team_member_limit(user)
        if limit == UNLIMITED:
            return True
        return current_members < limit


@lru_cache
def get_resolver() -> EntitlementResolver:
    """Process-wide resolver over the production tables."""
    return EntitlementResolver()


def get_plan_features(plan_id: str | None) -> Plan:
    return get_resolver().get_plan_features(plan_id)


def is_trial_expired(user: UserRecord | None, now: datetime | None = None) -> bool:
    return get_resolver().is_trial_expired(user, now)


def get_days_left_in_trial(user: UserRecord | None, now: datetime | None = None) -> int:
    return get_resolver().get_days_left_in_trial(user, now)


def get_current_trial_day(
    user: UserRecord | None,
    now: datetime | None = None,
    tz: str | tzinfo | None = None,
) -> int:
    return get_resolver().get_current_trial_day(user, now, tz)


def can_access_feature(user: UserRecord | None, feature: str, now: datetime | None = None) -> bool:
    return get_resolver().can_access_feature(user, feature, now)


def get_upgrade_target(current_plan_id: str | None, feature: str) -> str:
    return get_resolver().get_upgrade_target(current_plan_id, feature)
