from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, Optional, List

from models import RoleName, TaskPriority, TaskStatus


# User schemas
class UserSummary(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    profile_picture: Optional[str] = None

    class Config:
        from_attributes = True


class WorkspaceBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class WorkspaceCreate(WorkspaceBase):
    pass


class WorkspaceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class Workspace(WorkspaceBase):
    id: int
    owner_id: int
    invite_code: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class User(UserSummary):
    current_workspace_id: Optional[int] = None
    current_workspace: Optional[Workspace] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


# Role and membership schemas
class Role(BaseModel):
    id: int
    name: RoleName
    permissions: List[str]

    class Config:
        from_attributes = True


class Member(BaseModel):
    id: int
    user_id: int
    workspace_id: int
    role_id: int
    joined_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
    role: Optional[Role] = None

    class Config:
        from_attributes = True


class WorkspaceWithMembers(Workspace):
    members: List[Member] = []


class WorkspaceMembers(BaseModel):
    members: List[Member]
    roles: List[Role]


class ChangeMemberRole(BaseModel):
    role_id: int


class WorkspaceDeleted(BaseModel):
    current_workspace: Optional[int] = None


class WorkspaceJoined(BaseModel):
    workspace_id: int
    role: RoleName


# Pagination
class Pagination(BaseModel):
    page_size: int
    page_number: int
    total_count: int
    total_pages: int
    skip: int


# Project schemas
class ProjectBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    emoji: Optional[str] = Field(None, max_length=16)
    description: Optional[str] = None


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    emoji: Optional[str] = Field(None, max_length=16)
    description: Optional[str] = None


class Project(ProjectBase):
    id: int
    emoji: str
    workspace_id: int
    created_by: Optional[int] = None
    creator: Optional[UserSummary] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectList(BaseModel):
    projects: List[Project]
    pagination: Pagination


# Task schemas
class TaskBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    assigned_to: Optional[int] = None
    due_date: Optional[datetime] = None


class TaskCreate(TaskBase):
    pass


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    assigned_to: Optional[int] = None
    due_date: Optional[datetime] = None

    def changes(self) -> Dict[str, Any]:
        """Fields the client sent; an explicit null only clears nullable fields."""
        sent = self.model_dump(exclude_unset=True)
        for required in ("title", "priority", "status"):
            if sent.get(required, "") is None:
                del sent[required]
        return sent


class ProjectRef(BaseModel):
    id: int
    name: str
    emoji: str

    class Config:
        from_attributes = True


class Task(BaseModel):
    id: int
    task_code: str
    title: str
    description: Optional[str] = None
    priority: TaskPriority
    status: TaskStatus
    workspace_id: int
    project_id: int
    assigned_to: Optional[int] = None
    assignee: Optional[UserSummary] = None
    project: Optional[ProjectRef] = None
    created_by: Optional[int] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TaskList(BaseModel):
    tasks: List[Task]
    pagination: Pagination


# Comment schemas
class CommentCreate(BaseModel):
    message: str = Field(..., min_length=1)
    attachments: List[str] = []


class Comment(BaseModel):
    id: int
    task_id: int
    user_id: Optional[int] = None
    author: Optional[UserSummary] = None
    message: str
    attachments: List[str] = []
    created_at: datetime

    class Config:
        from_attributes = True


# Analytics schemas
class PriorityCount(BaseModel):
    priority: TaskPriority
    count: int


class StatusCount(BaseModel):
    status: TaskStatus
    count: int


class AssigneeCount(BaseModel):
    user_id: Optional[int] = None
    count: int


class DailyCount(BaseModel):
    date: str
    count: int


class TaskAnalytics(BaseModel):
    total_tasks: int
    overdue_tasks: int
    completed_tasks: int
    pending_tasks: int
    tasks_by_priority: List[PriorityCount]
    tasks_by_status: List[StatusCount]
    tasks_by_user: List[AssigneeCount]
    tasks_due_today: int
    completed_over_time: List[DailyCount]
    average_completion_seconds: float
