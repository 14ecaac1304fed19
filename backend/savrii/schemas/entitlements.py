"""Entitlement schemas: the user record we consume and the API response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from savrii.domain.plans import Plan


class UserRecord(BaseModel):
    """The slice of a user account the resolver reads.

    Supplied by the auth provider / session store. Accepts camelCase keys
    (trialStartDate, trialEndDate) as well as snake_case.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    plan: str = "starter"
    trial_start_date: datetime | None = Field(default=None, alias="trialStartDate")
    trial_end_date: datetime | None = Field(default=None, alias="trialEndDate")


class TrialStatus(BaseModel):
    """Trial countdown snapshot for the dashboard."""

    plan: str
    on_trial_plan: bool
    trial_start_date: datetime | None
    trial_end_date: datetime | None
    trial_length_days: int | None
    days_left: int
    current_day: int
    expired: bool


class PlanResponse(BaseModel):
    id: str
    name: str
    price_amount: int
    price_currency: str
    billing_interval: str
    trial_length_days: int | None
    query_limit: int  # -1 = unlimited
    team_member_limit: int  # -1 = unlimited
    allowed_features: list[str]
    capabilities: dict[str, bool]
    highlights: list[str]

    @classmethod
    def from_plan(cls, plan: Plan) -> "PlanResponse":
        return cls(
            id=str(plan.id),
            name=plan.name,
            price_amount=plan.price_amount,
            price_currency=plan.price_currency,
            billing_interval=plan.billing_interval,
            trial_length_days=plan.trial_length_days,
            query_limit=plan.query_limit,
            team_member_limit=plan.team_member_limit,
            allowed_features=sorted(plan.allowed_features),
            capabilities={
                "custom_prompts": plan.custom_prompts,
                "brand_voice_training": plan.brand_voice_training,
                "api_access": plan.api_access,
                "white_label_options": plan.white_label_options,
                "file_uploads": plan.file_uploads,
                "sso": plan.sso,
                "webhooks": plan.webhooks,
                "model_switching": plan.model_switching,
                "data_compliance": plan.data_compliance,
                "custom_domain": plan.custom_domain,
            },
            highlights=list(plan.highlights),
        )


class FeatureAccessResponse(BaseModel):
    feature: str
    allowed: bool
    upgrade_target: str
    trial_expired: bool


class EntitlementsResponse(BaseModel):
    plan: PlanResponse
    trial: TrialStatus
    query_limit: int  # 0 once the trial has expired
    team_member_limit: int
    features: dict[str, bool]
