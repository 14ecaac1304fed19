"""Current-user seam for FastAPI.

Authentication itself belongs to the external auth provider. Its middleware
stores the signed-in user's record on ``request.state.user`` (a UserRecord or
a mapping with plan / trial dates); routes read it through get_current_user.
"""

from fastapi import HTTPException, Request
from pydantic import ValidationError

from savrii.schemas.entitlements import UserRecord


async def get_current_user(request: Request) -> UserRecord:
    """Return the authenticated user's record. Raises 401 if none is attached."""
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    if isinstance(user, UserRecord):
        return user
    try:
        return UserRecord.model_validate(user, from_attributes=True)
    except ValidationError as exc:
        raise HTTPException(status_code=401, detail="Invalid user record") from exc
