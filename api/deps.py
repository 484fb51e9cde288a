from typing import Optional

from fastapi import Header, HTTPException

from services.authorization import CurrentUser, UserRole
from services.identifiers import NumberGenerator, RandomNumberGenerator

_number_generator = RandomNumberGenerator()


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CurrentUser:
    """Caller identity as forwarded by the auth gateway."""
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        role = UserRole(x_user_role.strip().upper())
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown role: {x_user_role}") from None
    return CurrentUser(id=x_user_id, role=role)


def get_number_generator() -> NumberGenerator:
    return _number_generator
