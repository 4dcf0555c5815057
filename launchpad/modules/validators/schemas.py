from pydantic import BaseModel
from typing import Optional


class ValidationResult(BaseModel):
    valid: bool
    message: str
    details: Optional[str] = None


class ValidateKeyRequest(BaseModel):
    api_key: str
    provider: Optional[str] = None
