# app/core/security.py - Authentication utilities (JWT, password hashing)
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional, Union
import re
import secrets
import string

import jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status

from app.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
    bcrypt__ident="2b"
)

TEMPORARY_PASSWORD_LENGTH = 8


class SecurityError(Exception):
    """Custom exception for security-related errors"""
    pass


class TokenManager:
    """Manages JWT token creation and validation"""

    def __init__(self):
        self.secret_key = settings.JWT_SECRET
        self.algorithm = settings.JWT_ALGORITHM
        self.issuer = settings.JWT_ISSUER
        self.audience = settings.JWT_AUDIENCE
        self.access_token_expire_minutes = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

    def create_access_token(
        self,
        subject: Union[str, Any],
        expires_delta: Optional[timedelta] = None,
        additional_claims: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Create a JWT access token.

        Args:
            subject: Token subject (the user id)
            expires_delta: Custom expiration time
            additional_claims: Additional JWT claims (role, portal type)

        Returns:
            Encoded JWT token string

        Raises:
            SecurityError: If token creation fails
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))

        payload = {
            "sub": str(subject),
            "iat": now,
            "exp": expire,
            "iss": self.issuer,
            "aud": self.audience,
            "type": "access",
            "jti": secrets.token_hex(16),
        }

        if additional_claims:
            reserved_claims = {"sub", "iat", "exp", "iss", "aud", "type", "jti"}
            for claim in additional_claims:
                if claim in reserved_claims:
                    raise SecurityError(f"Cannot override reserved JWT claim: {claim}")
            payload.update(additional_claims)

        try:
            return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        except jwt.PyJWTError as e:
            raise SecurityError(f"Failed to create access token: {e}")

    def decode_token(self, token: str, expected_type: str = "access") -> Dict[str, Any]:
        """
        Decode and validate a JWT token.

        Raises:
            HTTPException: If token is invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except jwt.ExpiredSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"},
            )
        except jwt.InvalidTokenError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token: {e}",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if payload.get("type") != expected_type:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token type. Expected {expected_type}",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return payload


class PasswordManager:
    """Manages password hashing, verification and initial-password seeds"""

    @staticmethod
    def hash_password(password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        if not password:
            raise SecurityError("Password cannot be empty")

        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash. Malformed hashes verify as False."""
        if not plain_password or not hashed_password:
            return False

        try:
            return pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            return False

    @staticmethod
    def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
        """Random lowercase alphanumeric token used when no CPF is available."""
        alphabet = string.ascii_lowercase + string.digits
        return "".join(secrets.choice(alphabet) for _ in range(length))

    @classmethod
    def initial_password_from_cpf(cls, cpf: Optional[str]) -> str:
        """
        Derive the initial student password from a CPF.

        All non-digit characters are stripped; an empty result falls back to a
        random temporary password.
        """
        digits = only_digits(cpf)
        return digits or cls.generate_temporary_password()


def only_digits(value: Optional[str]) -> str:
    """Strip every non-digit character ("123.456.789-00" -> "12345678900")."""
    if not value:
        return ""
    return re.sub(r"\D", "", value)


token_manager = TokenManager()
password_manager = PasswordManager()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create access token from a claims dict holding at least 'sub'"""
    subject = data.get("sub")
    if not subject:
        raise SecurityError("Token data must include 'sub' (subject)")

    additional_claims = {k: v for k, v in data.items() if k != "sub"}
    return token_manager.create_access_token(subject, expires_delta, additional_claims)


def decode_token(token: str) -> Dict[str, Any]:
    return token_manager.decode_token(token)


def hash_password(password: str) -> str:
    return password_manager.hash_password(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return password_manager.verify_password(plain_password, hashed_password)


__all__ = [
    "TokenManager", "PasswordManager", "SecurityError",
    "token_manager", "password_manager",
    "create_access_token", "decode_token", "hash_password", "verify_password",
    "only_digits",
]
