"""Plan-based feature gating for FastAPI routes.

Usage:
    @router.post("/prompts", dependencies=[Depends(require_feature("prompt_builder"))])
    async def create_prompt():
        ...
"""

from fastapi import Depends, HTTPException

from savrii.core.auth import get_current_user
from savrii.core.exceptions import FeatureAccessDenied
from savrii.domain.entitlements import get_resolver
from savrii.schemas.entitlements import UserRecord


def require_feature(feature: str):
    """Create a FastAPI dependency that requires the user's plan to unlock feature.

    Denied requests get a 403 whose detail tells the UI whether the trial
    expired and which plan to advertise.

    Args:
        feature: Feature identifier to require

    Returns:
        Async dependency function that validates feature access
    """
    async def dependency(user: UserRecord = Depends(get_current_user)) -> UserRecord:
        resolver = get_resolver()
        try:
            resolver.ensure_feature_access(user, feature)
        except FeatureAccessDenied as exc:
            if exc.trial_expired:
                error = "trial_expired"
                message = (
                    f"Your {resolver.trial_length_days}-day free trial has expired. "
                    "Upgrade to keep using this feature."
                )
            else:
                error = "plan_not_eligible"
                message = f"This feature requires the {exc.upgrade_target} plan."
            raise HTTPException(
                status_code=403,
                detail={
                    "error": error,
                    "feature": exc.feature,
                    "upgrade_target": exc.upgrade_target,
                    "message": message,
                },
            ) from exc
        return user

    return dependency
