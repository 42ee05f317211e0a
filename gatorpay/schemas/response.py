from pydantic import BaseModel
from typing import Optional, Any

class ApiEnvelope(BaseModel):
    """
    Standard response structure wrapping every backend payload.
    """
    success: bool
    message: str = ""
    data: Optional[Any] = None

class ErrorResponse(BaseModel):
    """
    Inline error shown next to a form.
    """
    error: str
    code: str
    details: Optional[Any] = None
