# -*- coding: utf-8 -*-
"""
API Schemas
===========

Request bodies for the REST routes. Unknown keys are ignored, so the
offline client can PUT a full cached entity (id, timestamps, flags) back.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from workdesk.database.models import (
    TaskPriority, TaskCategory, TaskStatus, TaskRecurrence,
    KnowledgeCategory, KnowledgeStatus, SprintStatus, UserRole,
)


class _Schema(BaseModel):
    """Enum fields (defaults included) dump as plain values; aware datetimes become naive UTC"""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    @model_validator(mode="after")
    def _naive_utc(self):
        for name in type(self).model_fields:
            value = getattr(self, name)
            if isinstance(value, datetime) and value.tzinfo is not None:
                setattr(self, name, value.astimezone(timezone.utc).replace(tzinfo=None))
        return self


# =============================================================================
# TASKS
# =============================================================================

class TaskCreate(_Schema):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    category: TaskCategory = TaskCategory.WORK
    status: TaskStatus = TaskStatus.NEW
    recurring: TaskRecurrence = TaskRecurrence.NONE
    due_date: Optional[datetime] = None
    reminder: Optional[datetime] = None
    estimated_time: Optional[int] = Field(30, ge=0)
    actual_time: Optional[int] = Field(None, ge=0)
    tags: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    notes: Optional[str] = None
    planned_for_today: bool = False
    completed: bool = False
    completed_at: Optional[datetime] = None
    story_points: Optional[int] = Field(None, ge=0)


class TaskUpdate(_Schema):
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    category: Optional[TaskCategory] = None
    status: Optional[TaskStatus] = None
    recurring: Optional[TaskRecurrence] = None
    due_date: Optional[datetime] = None
    reminder: Optional[datetime] = None
    estimated_time: Optional[int] = Field(None, ge=0)
    actual_time: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    planned_for_today: Optional[bool] = None
    completed: Optional[bool] = None
    completed_at: Optional[datetime] = None
    story_points: Optional[int] = Field(None, ge=0)


# =============================================================================
# KNOWLEDGE
# =============================================================================

class KnowledgeCreate(_Schema):
    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1)
    category: KnowledgeCategory
    status: KnowledgeStatus = KnowledgeStatus.PUBLISHED
    tags: List[str] = Field(default_factory=list)
    related_entries: List[str] = Field(default_factory=list)
    related_tasks: List[str] = Field(default_factory=list)
    created_by: Optional[str] = None


class KnowledgeUpdate(_Schema):
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[KnowledgeCategory] = None
    status: Optional[KnowledgeStatus] = None
    tags: Optional[List[str]] = None
    related_entries: Optional[List[str]] = None
    related_tasks: Optional[List[str]] = None


class DateRange(_Schema):
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class KnowledgeSearchRequest(_Schema):
    query: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    date_range: Optional[DateRange] = None
    status: Optional[KnowledgeStatus] = None


class LinkTasksRequest(_Schema):
    task_ids: List[str] = Field(..., min_length=1)


# =============================================================================
# SPRINTS
# =============================================================================

class SprintCreate(_Schema):
    name: str = Field(..., min_length=1, max_length=200)
    goal: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: SprintStatus = SprintStatus.PLANNED

    @model_validator(mode="after")
    def _check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class SprintUpdate(_Schema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    goal: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[SprintStatus] = None


class SprintTaskRequest(_Schema):
    story_points: Optional[int] = Field(None, ge=0)


# =============================================================================
# ADMIN
# =============================================================================

class AdminUserUpdate(_Schema):
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    role: UserRole = UserRole.USER


class AdminUserCreate(_Schema):
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: UserRole = UserRole.USER
