from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

from .models import Availability, DayType, SortMode


class DayRecord(BaseModel):
    """One calendar day with its classification already resolved."""
    date_key: int = Field(..., description="Sortable date key, e.g. month * 100 + day")
    day_type: DayType = Field(DayType.WEEKDAY, description="'weekday' or 'holiday'")
    label: Optional[str] = Field(None, description="Display label such as '3/1(Sun)'")
    availability: Dict[str, Availability] = Field(
        default_factory=dict,
        description="Participant name -> available / maybe / unavailable (○ / △ / × accepted)",
    )

    @field_validator("availability", mode="before")
    @classmethod
    def _parse_symbols(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(name): Availability.parse(symbol) for name, symbol in value.items()}
        return value


class RoleSlotRecord(BaseModel):
    label: str = Field(..., min_length=1)
    candidates: List[str] = Field(default_factory=list)


class SearchPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")
    days: List[DayRecord]
    lead: List[str] = Field(default_factory=list, description="Participants required on every day")
    required_hours: PositiveInt
    pool: Optional[List[str]] = None
    group_size: Optional[PositiveInt] = None
    role_slots: Optional[List[RoleSlotRecord]] = None
    allow_maybe: bool = True
    # Omitted fields fall back to the server settings.
    max_results: Optional[Union[PositiveInt, Literal["unbounded"]]] = None
    step_limit: Optional[PositiveInt] = None
    weekday_hours: Optional[PositiveInt] = None
    holiday_hours: Optional[PositiveInt] = None
    sort_mode: Optional[SortMode] = None


class StartSearchRequest(BaseModel):
    request_id: Optional[str] = Field(None, description="Caller-chosen id; generated when omitted")
    payload: SearchPayload


class ResultDay(BaseModel):
    date_key: int
    day_type: DayType
    label: Optional[str] = None


class SlotAssignment(BaseModel):
    label: str
    name: str


class CandidateRecord(BaseModel):
    model_config = ConfigDict(extra="allow")
    variant: Literal["group", "slots"] = "group"
    days: List[ResultDay]
    lead: List[str] = Field(default_factory=list)
    group: Optional[List[str]] = None
    slots: Optional[List[SlotAssignment]] = None
    uses_maybe: bool = False
    is_contiguous: bool = True
    capacity: int = 0


class RankRequest(BaseModel):
    results: List[CandidateRecord]
    sort_mode: SortMode = SortMode.HOLIDAY_FIRST


class SearchResult(BaseModel):
    status: str
    aborted: bool
    cancelled: bool
    sort_mode: SortMode
    steps: int
    step_limit: int
    date_set_count: int
    elapsed_ms: int
    results: List[Dict[str, Any]]
    num_results: int


class SearchRunResponse(BaseModel):
    request_id: str
    status: str
    created_at: float
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    steps: int = 0
    step_limit: int = 0
    date_set_count: int = 0
    active: bool = False
    error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None


class ProgressMessage(BaseModel):
    type: Literal["progress"] = "progress"
    request_id: str
    steps: int
    limit: int
    date_set_count: int


class ResultMessage(BaseModel):
    type: Literal["result"] = "result"
    request_id: str
    results: List[Dict[str, Any]]
    aborted: bool
    cancelled: bool


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    request_id: str
    message: str


__all__ = [
    "CandidateRecord",
    "DayRecord",
    "ErrorMessage",
    "ProgressMessage",
    "RankRequest",
    "ResultMessage",
    "RoleSlotRecord",
    "SearchPayload",
    "SearchResult",
    "SearchRunResponse",
    "StartSearchRequest",
]
