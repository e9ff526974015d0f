from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class StatusRecord(BaseModel):
    """Progress of one tracked item (usually a domain) within a session."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    item_key: str = Field(alias="domain")
    status: str
    last_message: Optional[str] = Field(default=None, alias="lastMessage")


class ResultRecord(BaseModel):
    """Final output for one item. Any extra analysis fields are kept as-is."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    item_key: str = Field(alias="domain")
    status: Optional[str] = None
    error: Optional[str] = None


class ConnectedEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["connected"] = "connected"
    session_id: str = Field(alias="sessionId")


class UpdateEvent(BaseModel):
    type: Literal["update"] = "update"
    domains: List[Dict[str, Any]]


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    domains: List[Dict[str, Any]]


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


StreamEvent = Union[ConnectedEvent, UpdateEvent, CompleteEvent, ErrorEvent]


class SessionSnapshotResponse(BaseModel):
    """One-shot view of a session returned by the status endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    domains: List[Dict[str, Any]]
    results_ready: bool = Field(alias="resultsReady")
    complete: bool
