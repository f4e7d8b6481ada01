from typing import Optional
from fastapi import Header, HTTPException, status

from services.authorization import Caller, Role


def get_caller(
    x_user_id: Optional[int] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_family_id: Optional[int] = Header(None),
) -> Caller:
    """Identity as resolved upstream (gateway / auth middleware) and forwarded in headers"""
    if x_user_id is None or not x_user_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing caller identity")
    try:
        role = Role(x_user_role.upper())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Unknown role: {x_user_role}")
    return Caller(user_id=x_user_id, role=role, family_id=x_family_id)
