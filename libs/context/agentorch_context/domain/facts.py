"""Snapshots of host application records that agent context is built from.

The orchestration engine does not own projects, clients or organizations; the
host application hands these snapshots in.
"""

from datetime import date

from pydantic import BaseModel, Field


class WorkOrderFacts(BaseModel):
    id: str
    title: str
    status: str = "unknown"
    task_count: int = 0
    completed_tasks: int = 0


class TaskFacts(BaseModel):
    id: str
    title: str
    status: str = "unknown"
    due_date: date | None = None
    is_blocked: bool = False


class ContactFacts(BaseModel):
    name: str
    email: str | None = None
    role: str | None = None


class ProjectSummaryFacts(BaseModel):
    id: str
    name: str
    status: str = "unknown"
    progress: int = 0


class OrganizationFacts(BaseModel):
    """A team, as seen by agents."""

    id: str
    name: str
    active_projects: int = 0
    total_parties: int = 0


class ClientFacts(BaseModel):
    """A client party."""

    id: str
    name: str
    type: str = "unknown"
    contact_name: str | None = None
    contact_email: str | None = None
    status: str = "active"
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    active_projects: list[ProjectSummaryFacts] = Field(default_factory=list)
    contacts: list[ContactFacts] = Field(default_factory=list)


class ProjectFacts(BaseModel):
    """A project with its most relevant work, client and organization."""

    id: str
    name: str
    description: str | None = None
    status: str = "unknown"
    start_date: date | None = None
    target_end_date: date | None = None
    progress: int = 0
    budget_hours: float | None = None
    actual_hours: float | None = None
    tags: list[str] = Field(default_factory=list)
    recent_work_orders: list[WorkOrderFacts] = Field(default_factory=list)
    pending_tasks: list[TaskFacts] = Field(default_factory=list)
    client: ClientFacts | None = None
    organization: OrganizationFacts | None = None
