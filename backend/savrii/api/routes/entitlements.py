"""Entitlement routes — what the signed-in user's plan unlocks.

The UI calls these to decide whether to render a feature or an upgrade prompt.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from savrii.core.auth import get_current_user
from savrii.domain.entitlements import get_resolver
from savrii.schemas.entitlements import (
    EntitlementsResponse,
    FeatureAccessResponse,
    PlanResponse,
    UserRecord,
)

router = APIRouter()


@router.get("", response_model=EntitlementsResponse)
async def get_entitlements(user: UserRecord = Depends(get_current_user)) -> EntitlementsResponse:
    """Plan, trial countdown, limits and per-feature access for the current user."""
    resolver = get_resolver()
    now = datetime.now(UTC)
    return EntitlementsResponse(
        plan=PlanResponse.from_plan(resolver.get_plan_features(user.plan)),
        trial=resolver.get_trial_status(user, now),
        query_limit=resolver.get_query_limit(user, now),
        team_member_limit=resolver.get_team_member_limit(user),
        features=resolver.feature_map(user, now),
    )


@router.get("/{feature}", response_model=FeatureAccessResponse)
async def get_feature_access(
    feature: str,
    user: UserRecord = Depends(get_current_user),
) -> FeatureAccessResponse:
    """Access decision and upgrade hint for a single feature."""
    resolver = get_resolver()
    now = datetime.now(UTC)
    return FeatureAccessResponse(
        feature=feature,
        allowed=resolver.can_access_feature(user, feature, now),
        upgrade_target=str(resolver.get_upgrade_target(user.plan, feature)),
        trial_expired=resolver.is_trial_expired(user, now),
    )
