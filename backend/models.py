from pydantic import BaseModel
from typing import Literal, Optional

Classification = Literal["SIGNAL", "NECESSARY", "NOISE"]
CLASSIFICATIONS: tuple[str, ...] = ("SIGNAL", "NECESSARY", "NOISE")

ItemStatus = Literal["inbox", "today", "week", "someday", "completed"]

class TaskCandidate(BaseModel):
    """A task extracted from a model reply, not yet reconciled."""
    name: str  # display-cleaned
    classification: Classification
    what: str = ""
    why: str = ""
    next_action: str = ""

class TrackedItem(BaseModel):
    id: str
    name: str
    classification: Classification
    what: Optional[str] = None
    why: Optional[str] = None
    next_action: Optional[str] = None
    status: ItemStatus = "inbox"
    completed: bool = False
    completed_at: Optional[str] = None  # ISO format datetime string
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

class ItemUpdate(BaseModel):
    """Proposed change to an existing item whose classification moved."""
    id: str
    classification: Classification
    what: str = ""
    why: str = ""
    next_action: str = ""

class ReconciliationResult(BaseModel):
    new_items: list[TaskCandidate] = []
    updates: list[ItemUpdate] = []

class AnalysisResult(BaseModel):
    response: str
    new_items: list[TaskCandidate] = []
    updates: list[ItemUpdate] = []

class UserContext(BaseModel):
    name: Optional[str] = None
    role: Optional[str] = None
    work_priorities: list[str] = []
    personal_priorities: list[str] = []
    goals: list[str] = []
    workday_start: Optional[str] = None  # HH:MM
    focus_challenge: Optional[str] = None
    onboarding_completed: bool = False

class ItemPatch(BaseModel):
    name: Optional[str] = None
    classification: Optional[Classification] = None
    what: Optional[str] = None
    why: Optional[str] = None
    next_action: Optional[str] = None
    status: Optional[ItemStatus] = None
    completed: Optional[bool] = None

class Message(BaseModel):
    id: Optional[int] = None
    role: Literal["user", "assistant"]
    content: str
    created_at: Optional[str] = None

class ChatRequest(BaseModel):
    message: str
    reprioritize: bool = False

class ChatResponse(BaseModel):
    response: str
    new_items: list[TrackedItem] = []
    updates: list[ItemUpdate] = []
    items: list[TrackedItem] = []
    error: Optional[str] = None
