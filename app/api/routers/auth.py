# app/api/routers/auth.py - Login and current user
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import select, or_
from datetime import datetime
from typing import Dict, Any
import logging

from app.core.db import get_db
from app.core.security import token_manager, password_manager
from app.api.deps.auth import get_current_user
from app.models.user import User
from app.schemas.auth import LoginIn, LoginOut
from app.schemas.student import UserOut

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/login", response_model=LoginOut)
async def login(
    credentials: LoginIn,
    db: Session = Depends(get_db)
):
    """Authenticate with email (or username) and password"""
    login_name = credentials.email.strip().lower()

    user = db.execute(
        select(User).where(or_(User.email == login_name, User.username == login_name))
    ).scalars().first()

    if not user or not password_manager.verify_password(credentials.password, user.password_hash):
        logger.warning(f"Failed login attempt for {login_name}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email ou senha inválidos"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Conta desativada"
        )

    user.last_login = datetime.utcnow()
    db.commit()

    access_token = token_manager.create_access_token(
        subject=user.id,
        additional_claims={"role": user.role, "portal_type": user.portal_type}
    )

    logger.info(f"User {user.id} logged in")
    return LoginOut(access_token=access_token, user=UserOut.model_validate(user))


@router.get("/me", response_model=UserOut)
async def me(ctx: Dict[str, Any] = Depends(get_current_user)):
    return ctx["user"]
