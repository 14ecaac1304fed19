"""Plan catalogue routes (public pricing data)."""

from fastapi import APIRouter

from savrii.domain.entitlements import get_resolver
from savrii.schemas.entitlements import PlanResponse

router = APIRouter()


@router.get("", response_model=list[PlanResponse])
async def list_plans() -> list[PlanResponse]:
    """All plans, lowest tier first."""
    return [PlanResponse.from_plan(plan) for plan in get_resolver().ordered_plans()]


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan(plan_id: str) -> PlanResponse:
    """One plan. Unknown ids return the starter plan, matching the resolver."""
    return PlanResponse.from_plan(get_resolver().get_plan_features(plan_id))
