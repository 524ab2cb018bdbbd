# app/api/deps/auth.py - JWT authentication and role-based authorization
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from sqlalchemy import select
from app.core.db import get_db
from app.core.security import decode_token
from app.models.user import User, BACK_OFFICE_ROLES
from typing import Dict, Any, List

security = HTTPBearer()

BACK_OFFICE_DENIED_MESSAGE = "Permissão negada. Apenas administradores podem executar esta operação."


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Decode JWT and return user + claims.
    Returns: {"user": User, "claims": dict}
    """
    claims = decode_token(credentials.credentials)

    # sub holds the user id as a string
    user_id_str = claims.get("sub")
    if not user_id_str:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing user ID"
        )

    try:
        user_id = int(user_id_str)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format"
        )

    user = db.execute(
        select(User).where(User.id == user_id)
    ).scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account deactivated"
        )

    return {
        "user": user,
        "claims": claims
    }


def require_roles(required_roles: List[str], detail: str = None):
    """
    Create a dependency that requires specific roles.
    Usage: @router.get("/admin", dependencies=[Depends(require_roles(["admin", "manager"]))])
    """
    def role_checker(ctx = Depends(get_current_user)):
        user = ctx["user"]
        if not user.has_any_role(required_roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=detail or f"Access denied. Required roles: {required_roles}"
            )
        return ctx
    return role_checker


# Admins and managers drive the enrollment pipeline and the back-office CRUD
require_back_office = require_roles(BACK_OFFICE_ROLES, detail=BACK_OFFICE_DENIED_MESSAGE)
