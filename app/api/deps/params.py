# app/api/deps/params.py - Path parameter parsing
from fastapi import HTTPException, status


def parse_id(raw: str, label: str = "ID") -> int:
    """Numeric path ids; anything else is a 400, not a validation 422"""
    value = (raw or "").strip()
    if not value.isdigit():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{label} inválido"
        )
    return int(value)
