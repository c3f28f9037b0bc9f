# schemas/common.py
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """Envelope of every successful response."""
    success: bool = True
    message: str = "Success"
    data: Optional[DataT] = None


class ErrorResponse(BaseModel):
    """Envelope of every failed response. Never carries data."""
    success: bool = False
    message: str
    code: Optional[str] = None
