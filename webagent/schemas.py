"""Pydantic schemas for WebAgent state and API contracts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class TaskStatus(str, Enum):
    """Task lifecycle status."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


class LogKind(str, Enum):
    """Kinds of entries in the agent log feed."""

    THOUGHT = "thought"
    ACTION = "action"
    SYSTEM = "system"
    ERROR = "error"
    SUCCESS = "success"


class ToolName(str, Enum):
    """Tools the agent model may choose from."""

    GOOGLE_SEARCH = "google_search"
    BROWSE = "browse"
    COMPLETE_TASK = "complete_task"
    FINISH = "finish"
    FAIL = "fail"


# --- Agent state ---


class Task(BaseModel):
    """One planner-generated step toward the goal."""

    id: int = Field(..., ge=1)
    text: str
    status: TaskStatus = TaskStatus.PENDING


class LogEntry(BaseModel):
    """Entry in the append-only log feed."""

    id: int = Field(..., ge=0)
    task_id: int | None = None
    timestamp: datetime = Field(default_factory=datetime.now)
    message: str
    kind: LogKind


# --- Model responses ---


class ActionParameters(BaseModel):
    """Parameters for a proposed tool call."""

    query: str | None = None
    url: str | None = None
    reason: str | None = None


class ProposedAction(BaseModel):
    """Tool call proposed by the agent model.

    ``tool`` stays a plain string so that an unknown tool name can be
    reported back to the model instead of failing validation.
    """

    tool: str
    parameters: ActionParameters = Field(default_factory=ActionParameters)

    @field_validator("parameters", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return {} if value is None else value


class AgentAction(BaseModel):
    """Thought and action returned by the agent model for one step."""

    thought: str
    action: ProposedAction


class ActionRecord(BaseModel):
    """A proposed action plus the textual output of running it."""

    action: AgentAction
    output: str


class SearchLink(BaseModel):
    """Grounding link returned by a search."""

    uri: str
    title: str = ""


class SearchResult(BaseModel):
    """Search summary plus its grounding links."""

    summary: str
    links: list[SearchLink] = Field(default_factory=list)


# --- Request Schemas ---


class DeployRequest(BaseModel):
    """Request to deploy a new agent."""

    name: str = Field(..., min_length=1, max_length=200, description="Display name of the agent")
    goal: str = Field(..., min_length=1, max_length=4000, description="Natural-language objective")

    @field_validator("name", "goal")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


# --- Response Schemas ---


class AgentSnapshot(BaseModel):
    """Consistent copy of the agent view-model."""

    name: str = ""
    goal: str = ""
    deployed: bool = False
    running: bool = False
    current_task_id: int | None = None
    tasks: list[Task] = Field(default_factory=list)
    logs: list[LogEntry] = Field(default_factory=list)
    workspace_title: str = ""
    workspace_content: str = ""
    steps_taken: int = 0
    max_steps: int = 0


class ErrorResponse(BaseModel):
    """Error response for failed requests."""

    detail: str
    error_code: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    server: Literal["healthy", "unhealthy"] = "healthy"
    gemini: Literal["healthy", "unhealthy", "unconfigured"] = "healthy"
    agent_running: bool = False
