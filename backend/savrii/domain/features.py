"""Feature access tables that sit beside the per-plan allow-lists.

FEATURE_ACCESS overrides allow-list membership for the features it names.
LegacyFeature covers historical identifiers (camelCase flags and renamed
features) that resolve against Plan capability flags or tier identity.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType

from savrii.core.exceptions import PlanConfigurationError
from savrii.domain.plans import TIER_ORDER, TRIAL_PLAN, Plan, PlanId, tier_rank

_PRO_AND_UP = MappingProxyType({PlanId.STARTER: False, PlanId.PRO: True, PlanId.ENTERPRISE: True})
_ENTERPRISE_ONLY = MappingProxyType({PlanId.STARTER: False, PlanId.PRO: False, PlanId.ENTERPRISE: True})

# feature -> {plan id -> allowed}; a plan missing from the inner map is denied
FEATURE_ACCESS: MappingProxyType[str, MappingProxyType[str, bool]] = MappingProxyType({
    # Pro features
    "prompt_builder": _PRO_AND_UP,
    "brand_voice": _PRO_AND_UP,
    "prompt_templates": _PRO_AND_UP,
    "all_integrations": _PRO_AND_UP,
    "team_collaboration": _PRO_AND_UP,
    "advanced_analytics": _PRO_AND_UP,
    "daily_reports": _PRO_AND_UP,
    "lead_capture": _PRO_AND_UP,
    "export_data": _PRO_AND_UP,
    # Enterprise features
    "real_time_analytics": _ENTERPRISE_ONLY,
    "workflow_automation": _ENTERPRISE_ONLY,
    "custom_ai_model": _ENTERPRISE_ONLY,
    "webhooks": _ENTERPRISE_ONLY,
    "white_label": _ENTERPRISE_ONLY,
    "security_compliance": _ENTERPRISE_ONLY,
})


class LegacyFeature(StrEnum):
    """Historical feature identifiers still sent by older UI code."""

    CUSTOM_PROMPTS = "customPrompts"
    PROMPT_BUILDER = "prompt_builder"
    BRAND_VOICE_TRAINING_FLAG = "brandVoiceTraining"
    BRAND_VOICE_TRAINING = "brand_voice_training"
    API_ACCESS_FLAG = "apiAccess"
    API_ACCESS = "api_access"
    WHITE_LABEL_OPTIONS = "whiteLabelOptions"
    WHITE_LABEL = "white_label"
    ADVANCED_ANALYTICS_FLAG = "advancedAnalytics"
    ADVANCED_ANALYTICS = "advanced_analytics"
    REALTIME_ANALYTICS = "realtime_analytics"
    TEAM_COLLABORATION = "team_collaboration"
    UNLIMITED_TEAM = "unlimited_team"
    SSO = "sso"
    WEBHOOKS_ZAPIER = "webhooks_zapier"
    MODEL_SWITCHING = "model_switching"
    DATA_COMPLIANCE = "data_compliance"
    CUSTOM_DOMAIN = "custom_domain"
    FILE_UPLOADS = "file_uploads"

    @classmethod
    def parse(cls, value: str) -> "LegacyFeature | None":
        """Return the matching member, or None for identifiers we don't know."""
        try:
            return cls(value)
        except ValueError:
            return None

@dataclass(frozen=True)
class TierLadder:
    """Tier order the tier-identity legacy rules compare against."""

    order: tuple[str, ...] = TIER_ORDER
    trial_plan: str = TRIAL_PLAN

    @property
    def top(self) -> str:
        return self.order[-1]

    def above_trial(self, plan_id: str) -> bool:
        return tier_rank(plan_id, self.order) > tier_rank(self.trial_plan, self.order)


PRODUCTION_LADDER = TierLadder()

LegacyRule = Callable[[Plan, TierLadder], bool]

LEGACY_RULES: MappingProxyType[LegacyFeature, LegacyRule] = MappingProxyType({
    LegacyFeature.CUSTOM_PROMPTS: lambda plan, ladder: plan.custom_prompts,
    LegacyFeature.PROMPT_BUILDER: lambda plan, ladder: plan.custom_prompts,
    LegacyFeature.BRAND_VOICE_TRAINING_FLAG: lambda plan, ladder: plan.brand_voice_training,
    LegacyFeature.BRAND_VOICE_TRAINING: lambda plan, ladder: plan.brand_voice_training,
    LegacyFeature.API_ACCESS_FLAG: lambda plan, ladder: plan.api_access,
    LegacyFeature.API_ACCESS: lambda plan, ladder: plan.api_access,
    LegacyFeature.WHITE_LABEL_OPTIONS: lambda plan, ladder: plan.white_label_options,
    LegacyFeature.WHITE_LABEL: lambda plan, ladder: plan.white_label_options,
    LegacyFeature.ADVANCED_ANALYTICS_FLAG: lambda plan, ladder: ladder.above_trial(plan.id),
    LegacyFeature.ADVANCED_ANALYTICS: lambda plan, ladder: ladder.above_trial(plan.id),
    LegacyFeature.REALTIME_ANALYTICS: lambda plan, ladder: plan.id == ladder.top,
    LegacyFeature.TEAM_COLLABORATION: lambda plan, ladder: ladder.above_trial(plan.id),
    LegacyFeature.UNLIMITED_TEAM: lambda plan, ladder: plan.id == ladder.top,
    LegacyFeature.SSO: lambda plan, ladder: plan.sso,
    LegacyFeature.WEBHOOKS_ZAPIER: lambda plan, ladder: plan.webhooks,
    LegacyFeature.MODEL_SWITCHING: lambda plan, ladder: plan.model_switching,
    LegacyFeature.DATA_COMPLIANCE: lambda plan, ladder: plan.data_compliance,
    LegacyFeature.CUSTOM_DOMAIN: lambda plan, ladder: plan.custom_domain,
    LegacyFeature.FILE_UPLOADS: lambda plan, ladder: plan.file_uploads,
})

_missing_rules = set(LegacyFeature) - set(LEGACY_RULES)
if _missing_rules:
    raise PlanConfigurationError(f"Legacy features without a rule: {sorted(_missing_rules)}")


def legacy_access(feature: str, plan: Plan, ladder: TierLadder = PRODUCTION_LADDER) -> bool:
    """Resolve a legacy identifier against a plan. Unknown identifiers are denied.

    Tier-identity rules (analytics, team features) compare plan.id against ladder.
    """
    legacy = LegacyFeature.parse(feature)
    if legacy is None:
        return False
    return bool(LEGACY_RULES[legacy](plan, ladder))
