from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiResponse(BaseModel):
    """Standard envelope wrapping every JSON API response."""

    success: bool
    data: Any = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def ok(cls, data: Any) -> "ApiResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ApiResponse":
        return cls(success=False, error=error)


class ErmForm(BaseModel):
    id: int
    name: str
    code: str
    icon: str = ""


class ErmResult(BaseModel):
    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    totalRows: int = 0
    formId: int
    procedureName: str = "ReadNewERM"


class NavigationData(BaseModel):
    modules: List[Dict[str, Any]] = Field(default_factory=list)
    children: List[Dict[str, Any]] = Field(default_factory=list)


class RequestLogEntry(BaseModel):
    id: str
    method: str
    url: str
    status_code: Optional[int] = None
    duration_ms: Optional[float] = None
    procedure_name: Optional[str] = None
    error: Optional[str] = None
    created_at: str
