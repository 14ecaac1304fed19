"""Plan tiers and their static definitions.

Pure domain data with no external dependencies beyond structlog.
Tiers are ordered starter < pro < enterprise; only starter carries a trial.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

import structlog

logger = structlog.get_logger(__name__)

UNLIMITED = -1


class PlanId(StrEnum):
    """Closed set of subscription tiers."""

    STARTER = "starter"
    PRO = "pro"
    ENTERPRISE = "enterprise"


# Lowest tier first
TIER_ORDER: tuple[PlanId, ...] = (PlanId.STARTER, PlanId.PRO, PlanId.ENTERPRISE)

TRIAL_PLAN = PlanId.STARTER
DEFAULT_PLAN = PlanId.STARTER


@dataclass(frozen=True)
class Plan:
    """One subscription tier. Limits use -1 for unlimited."""

    id: PlanId
    name: str
    price_amount: int
    price_currency: str = "USD"
    billing_interval: str = "month"
    trial_length_days: int | None = None
    query_limit: int = 0
    team_member_limit: int = 1
    allowed_features: frozenset[str] = frozenset()

    # Capability flags
    custom_prompts: bool = False
    brand_voice_training: bool = False
    api_access: bool = False
    white_label_options: bool = False
    file_uploads: bool = False
    sso: bool = False
    webhooks: bool = False
    model_switching: bool = False
    data_compliance: bool = False
    custom_domain: bool = False

    # Pricing page bullets
    highlights: tuple[str, ...] = field(default=(), compare=False)

    @property
    def has_unlimited_queries(self) -> bool:
        return self.query_limit == UNLIMITED

    @property
    def has_unlimited_team(self) -> bool:
        return self.team_member_limit == UNLIMITED


PLANS: MappingProxyType[str, Plan] = MappingProxyType({
    PlanId.STARTER: Plan(
        id=PlanId.STARTER,
        name="Starter (Free)",
        price_amount=0,
        trial_length_days=14,
        query_limit=100,
        team_member_limit=1,
        allowed_features=frozenset({
            "basic_responses",
            "email_support",
            "basic_analytics",
            "single_integration",
        }),
        highlights=(
            "100 queries per month",
            "Basic AI responses",
            "Email support",
            "1 integration",
            "Basic analytics",
        ),
    ),
    PlanId.PRO: Plan(
        id=PlanId.PRO,
        name="Pro",
        price_amount=29,
        query_limit=5000,
        team_member_limit=3,
        allowed_features=frozenset({
            "basic_responses",
            "advanced_responses",
            "priority_support",
            "all_integrations",
            "advanced_analytics",
            "prompt_builder",
            "brand_voice_training",
            "multilingual_support",
            "prompt_templates",
            "daily_summary",
            "lead_capture",
            "team_collaboration",
            "conversation_export",
            "file_uploads",
        }),
        custom_prompts=True,
        brand_voice_training=True,
        file_uploads=True,
        highlights=(
            "5,000 queries per month",
            "Advanced AI responses",
            "Priority support",
            "All integrations",
            "Advanced analytics",
            "Custom prompt builder",
            "Brand voice training",
            "Multilingual support",
            "Prompt library templates",
            "Daily summary email",
            "Lead capture forms",
            "Team collaboration (3 users)",
            "Conversation history export",
        ),
    ),
    PlanId.ENTERPRISE: Plan(
        id=PlanId.ENTERPRISE,
        name="Enterprise",
        price_amount=99,
        query_limit=UNLIMITED,
        team_member_limit=UNLIMITED,
        allowed_features=frozenset({
            "basic_responses",
            "advanced_responses",
            "premium_responses",
            "phone_chat_support",
            "realtime_analytics",
            "api_access",
            "white_label",
            "unlimited_team",
            "account_manager",
            "data_compliance",
            "custom_domain",
            "webhooks_zapier",
            "fine_tuned_ai",
            "model_switching",
            "custom_workflows",
            "unlimited_uploads",
            "sso",
        }),
        custom_prompts=True,
        brand_voice_training=True,
        api_access=True,
        white_label_options=True,
        file_uploads=True,
        sso=True,
        webhooks=True,
        model_switching=True,
        data_compliance=True,
        custom_domain=True,
        highlights=(
            "Unlimited queries",
            "Premium AI responses",
            "24/7 phone & chat support",
            "Real-time analytics",
            "API access",
            "White-label options",
            "Unlimited team members",
            "Dedicated account manager",
            "Data compliance tools (GDPR export, audit logs)",
            "Custom domain integration",
            "Webhook & Zapier support",
            "Fine-tuned AI (trained on user's own data)",
            "Model switching (GPT-4, Claude, etc.)",
            "Custom AI workflows",
            "Unlimited file uploads",
            "SSO (Single Sign-On)",
        ),
    ),
})


def lookup_plan(
    plans: MappingProxyType[str, Plan] | dict[str, Plan],
    plan_id: str | None,
    default: str = DEFAULT_PLAN,
) -> Plan:
    """Return the plan for plan_id, or the default tier for anything unknown.

    Matching is case-sensitive. Never raises for unknown ids.
    """
    plan = plans.get(plan_id) if isinstance(plan_id, str) else None
    if plan is None:
        logger.debug("unknown_plan_defaulted", plan_id=plan_id, default=str(default))
        return plans[default]
    return plan


def tier_rank(plan_id: str | None, order: tuple[str, ...] = TIER_ORDER) -> int:
    """Ordinal of plan_id in the tier order. Unknown ids rank as the lowest tier."""
    try:
        return order.index(plan_id)
    except ValueError:
        return 0
