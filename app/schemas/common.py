# app/schemas/common.py - Uniform response envelope
from pydantic import BaseModel
from typing import Any, Optional


class ApiResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Any] = None
    error: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "message": "Processamento concluído. Matrículas processadas: 3, falhas: 0",
                "data": {"processed": 3, "failed": 0}
            }
        }
