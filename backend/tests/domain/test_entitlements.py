"""Tests for feature access and upgrade target resolution.

Tests enforce pure function behavior:
- Rule order: expired trial > override table > allow-list > legacy rules
- Every input resolves without raising
- Upgrade targets stay consistent with the allow-lists
"""

from dataclasses import replace
from datetime import timedelta
from types import MappingProxyType

import pytest

from savrii.core.exceptions import FeatureAccessDenied, PlanConfigurationError
from savrii.domain.entitlements import (
    EntitlementResolver,
    can_access_feature,
    get_upgrade_target,
)
from savrii.domain.features import FEATURE_ACCESS, LegacyFeature
from savrii.domain.plans import PLANS, TIER_ORDER, Plan, PlanId
from savrii.schemas.entitlements import UserRecord

pytestmark = pytest.mark.unit


# ============================================================================
# can_access_feature
# ============================================================================


class TestExpiredTrialGate:
    def test_expired_trial_blocks_every_feature(self, expired_user, now, resolver):
        """Expired starter users lose even the features starter allow-lists."""
        for feature in resolver.known_features() | {"totally_unknown"}:
            assert can_access_feature(expired_user, feature, now) is False

    def test_expired_trial_blocks_own_allow_list(self, expired_user, now):
        for feature in PLANS["starter"].allowed_features:
            assert can_access_feature(expired_user, feature, now) is False

    def test_active_trial_keeps_starter_features(self, trial_user, now):
        assert can_access_feature(trial_user, "basic_responses", now) is True
        assert can_access_feature(trial_user, "single_integration", now) is True

    def test_past_end_date_on_paid_plan_is_ignored(self, now):
        """Trial dates left on a paid account do not gate anything."""
        user = UserRecord(plan="pro", trial_end_date=now - timedelta(days=30))
        assert can_access_feature(user, "prompt_builder", now) is True


class TestOverrideTable:
    @pytest.mark.parametrize("feature", ["daily_reports", "export_data", "brand_voice"])
    def test_pro_and_up_override(self, feature, trial_user, pro_user, enterprise_user, now):
        """Override-only features follow the table, not the allow-lists."""
        assert can_access_feature(trial_user, feature, now) is False
        assert can_access_feature(pro_user, feature, now) is True
        assert can_access_feature(enterprise_user, feature, now) is True

    def test_override_grants_outside_allow_list(self, enterprise_user, now):
        """enterprise does not allow-list prompt_builder but the table grants it."""
        assert "prompt_builder" not in PLANS["enterprise"].allowed_features
        assert can_access_feature(enterprise_user, "prompt_builder", now) is True

    def test_webhooks_enterprise_only(self, pro_user, enterprise_user, now):
        assert can_access_feature(pro_user, "webhooks", now) is False
        assert can_access_feature(enterprise_user, "webhooks", now) is True

    def test_unknown_plan_in_override_is_denied(self, now):
        """A plan missing from the override entry is denied, even though it resolves to starter."""
        user = UserRecord(plan="platinum")
        assert can_access_feature(user, "lead_capture", now) is False

    def test_override_revokes_allow_listed_feature(self, pro_user, now):
        """When the tables disagree, the override wins."""
        revoking = MappingProxyType({
            **FEATURE_ACCESS,
            "file_uploads": MappingProxyType({"starter": False, "pro": False, "enterprise": True}),
        })
        resolver = EntitlementResolver(feature_access=revoking)

        assert "file_uploads" in PLANS["pro"].allowed_features
        assert EntitlementResolver().can_access_feature(pro_user, "file_uploads", now) is True
        assert resolver.can_access_feature(pro_user, "file_uploads", now) is False

    def test_override_missing_tier_defaults_to_false(self, pro_user, now):
        partial = {"advanced_responses": {"enterprise": True}}
        resolver = EntitlementResolver(feature_access=partial)
        assert resolver.can_access_feature(pro_user, "advanced_responses", now) is False


class TestAllowList:
    @pytest.mark.parametrize("plan_id", TIER_ORDER)
    def test_every_allow_listed_feature_is_accessible(self, plan_id, now):
        user = UserRecord(plan=plan_id)
        for feature in PLANS[plan_id].allowed_features:
            assert can_access_feature(user, feature, now) is True, feature

    def test_pro_feature_denied_on_starter(self, trial_user, now):
        assert can_access_feature(trial_user, "multilingual_support", now) is False

    def test_enterprise_feature_denied_on_pro(self, pro_user, now):
        assert can_access_feature(pro_user, "fine_tuned_ai", now) is False


class TestLegacyRules:
    @pytest.mark.parametrize(
        "feature,starter,pro,enterprise",
        [
            ("customPrompts", False, True, True),
            ("brandVoiceTraining", False, True, True),
            ("apiAccess", False, False, True),
            ("whiteLabelOptions", False, False, True),
            ("advancedAnalytics", False, True, True),
        ],
    )
    def test_camel_case_flags(self, feature, starter, pro, enterprise, trial_user, now):
        assert can_access_feature(trial_user, feature, now) is starter
        assert can_access_feature(UserRecord(plan="pro"), feature, now) is pro
        assert can_access_feature(UserRecord(plan="enterprise"), feature, now) is enterprise

    def test_unknown_plan_uses_starter_flags(self, now):
        """Tier comparisons run on the resolved plan, so unknown ids get starter rules."""
        assert can_access_feature(UserRecord(plan="free_trial"), "advancedAnalytics", now) is False
        assert can_access_feature(UserRecord(plan="platinum"), "apiAccess", now) is False

    def test_every_legacy_member_resolves(self, enterprise_user, now):
        for member in LegacyFeature:
            assert isinstance(can_access_feature(enterprise_user, str(member), now), bool)

    def test_parse_unknown_returns_none(self):
        assert LegacyFeature.parse("customPrompts") is LegacyFeature.CUSTOM_PROMPTS
        assert LegacyFeature.parse("nope") is None


class TestTotality:
    @pytest.mark.parametrize("feature", ["", "unknown", "PROMPT_BUILDER", "sso ", "💥"])
    def test_unknown_features_are_denied(self, feature, enterprise_user, now):
        assert can_access_feature(enterprise_user, feature, now) is False

    def test_missing_user_is_denied(self, now):
        assert can_access_feature(None, "basic_responses", now) is False


# ============================================================================
# get_upgrade_target
# ============================================================================


class TestUpgradeTarget:
    def test_pro_feature_from_starter(self):
        assert get_upgrade_target("starter", "prompt_builder") == "pro"

    def test_pro_feature_from_pro_or_above(self):
        assert get_upgrade_target("pro", "prompt_builder") == "enterprise"
        assert get_upgrade_target("enterprise", "prompt_builder") == "enterprise"

    def test_enterprise_only_feature_skips_mid_tier(self):
        assert get_upgrade_target("starter", "fine_tuned_ai") == "enterprise"
        assert get_upgrade_target("starter", "sso") == "enterprise"

    @pytest.mark.parametrize("plan", ["starter", "pro", "enterprise", "free_trial", ""])
    def test_unknown_feature_falls_back_to_mid_tier(self, plan):
        assert get_upgrade_target(plan, "no_such_feature") == "pro"

    def test_override_only_feature_falls_back_to_mid_tier(self):
        """Override-table features are not consulted, even enterprise-only ones."""
        assert "security_compliance" in FEATURE_ACCESS
        assert get_upgrade_target("starter", "security_compliance") == "pro"

    def test_unknown_current_plan_ranks_as_starter(self):
        assert get_upgrade_target("free_trial", "lead_capture") == "pro"

    @pytest.mark.parametrize("current", ["starter", "pro", "enterprise", "unknown"])
    def test_targets_unlock_their_allow_listed_features(self, current, now):
        """Whatever target is suggested can use every feature it allow-lists."""
        features = set().union(*(plan.allowed_features for plan in PLANS.values()))
        for feature in features:
            target = get_upgrade_target(current, feature)
            target_user = UserRecord(plan=target)
            for allowed in PLANS[target].allowed_features:
                assert can_access_feature(target_user, allowed, now) is True


# ============================================================================
# Resolver construction and helpers
# ============================================================================


class TestResolver:
    def test_missing_tier_definition_rejected(self):
        with pytest.raises(PlanConfigurationError):
            EntitlementResolver(plans={"starter": PLANS["starter"]})

    @pytest.mark.parametrize("length", [None, 0])
    def test_trial_plan_without_length_rejected(self, length):
        plans = {**PLANS, "starter": replace(PLANS["starter"], trial_length_days=length)}
        with pytest.raises(PlanConfigurationError):
            EntitlementResolver(plans=plans)

    def test_single_tier_rejected(self):
        with pytest.raises(PlanConfigurationError):
            EntitlementResolver(tier_order=(PlanId.STARTER,))

    def test_custom_tiers(self, now):
        plans = {
            "free": Plan(id="free", name="Free", price_amount=0, trial_length_days=7),
            "team": Plan(id="team", name="Team", price_amount=10, allowed_features=frozenset({"shared_inbox"})),
            "org": Plan(id="org", name="Org", price_amount=50, allowed_features=frozenset({"audit_log"})),
        }
        resolver = EntitlementResolver(
            plans=plans,
            feature_access={},
            tier_order=("free", "team", "org"),
            trial_plan="free",
            default_plan="free",
        )
        assert resolver.get_upgrade_target("free", "shared_inbox") == "team"
        assert resolver.get_upgrade_target("team", "shared_inbox") == "org"
        assert resolver.get_plan_features("missing").id == "free"
        assert resolver.trial_length_days == 7

    def test_custom_tiers_tier_identity_rules(self, now):
        """Legacy tier rules follow the resolver's own ladder, not the production one."""
        plans = {
            "free": Plan(id="free", name="Free", price_amount=0, trial_length_days=7),
            "team": Plan(id="team", name="Team", price_amount=10),
            "org": Plan(id="org", name="Org", price_amount=50),
        }
        resolver = EntitlementResolver(
            plans=plans,
            feature_access={},
            tier_order=("free", "team", "org"),
            trial_plan="free",
            default_plan="free",
        )
        expected = {
            "advancedAnalytics": [False, True, True],
            "team_collaboration": [False, True, True],
            "unlimited_team": [False, False, True],
            "realtime_analytics": [False, False, True],
        }
        for feature, access in expected.items():
            actual = [
                resolver.can_access_feature(UserRecord(plan=tier), feature, now)
                for tier in ("free", "team", "org")
            ]
            assert actual == access, feature

    def test_ensure_feature_access(self, pro_user, expired_user, now, resolver):
        resolver.ensure_feature_access(pro_user, "prompt_builder", now)

        with pytest.raises(FeatureAccessDenied) as exc_info:
            resolver.ensure_feature_access(pro_user, "fine_tuned_ai", now)
        assert exc_info.value.upgrade_target == "enterprise"
        assert exc_info.value.trial_expired is False

        with pytest.raises(FeatureAccessDenied) as exc_info:
            resolver.ensure_feature_access(expired_user, "basic_responses", now)
        assert exc_info.value.trial_expired is True

    def test_known_features_cover_all_tables(self, resolver):
        known = resolver.known_features()
        assert set(FEATURE_ACCESS) <= known
        assert {str(m) for m in LegacyFeature} <= known
        for plan in PLANS.values():
            assert plan.allowed_features <= known

    def test_features_without_upgrade_tier(self, resolver):
        orphaned = resolver.features_without_upgrade_tier()
        assert "daily_reports" in orphaned
        assert "customPrompts" in orphaned
        assert "prompt_builder" not in orphaned

    def test_feature_map(self, pro_user, now, resolver):
        features = resolver.feature_map(pro_user, now)
        assert features["prompt_builder"] is True
        assert features["sso"] is False
        assert set(features) == resolver.known_features()
