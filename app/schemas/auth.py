# app/schemas/auth.py - Login schemas
from pydantic import BaseModel
from app.schemas.student import UserOut


class LoginIn(BaseModel):
    email: str
    password: str

    class Config:
        json_schema_extra = {
            "example": {
                "email": "admin@edunexia.com.br",
                "password": "secret"
            }
        }


class LoginOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
