# -*- coding: utf-8 -*-
"""
SQLAlchemy models for WorkDesk

Documents are stored as rows whose list fields (tags, related ids) live in
JSON columns. Every document belongs to a user and is addressed by a
32-char hex server identifier.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import Column, String, Text, DateTime, JSON, ForeignKey, Boolean, Integer, Index

from .connection import Base


def new_id() -> str:
    """Server identifier for a new document"""
    return uuid.uuid4().hex


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskCategory(str, Enum):
    WORK = "work"
    PERSONAL = "personal"
    HEALTH = "health"
    FINANCE = "finance"
    OTHER = "other"


class TaskStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskRecurrence(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class KnowledgeCategory(str, Enum):
    INCIDENT = "incident"
    SOLUTION = "solution"
    PROCESS = "process"
    REFERENCE = "reference"
    OTHER = "other"


class KnowledgeStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class SprintStatus(str, Enum):
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"


# =============================================================================
# USER
# =============================================================================

class User(Base):
    """Application user"""
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "created_at": _iso(self.created_at),
            "last_login": _iso(self.last_login),
        }

    def __repr__(self):
        return f"<User {self.username} [{self.role}]>"


# =============================================================================
# TASK
# =============================================================================

class Task(Base):
    """
    Personal task.

    completed/completed_at feed the sprint burndown; sprint_id and
    story_points are set when the task is planned into a sprint.
    """
    __tablename__ = "tasks"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(20), default=TaskPriority.MEDIUM.value)
    category = Column(String(20), default=TaskCategory.WORK.value)
    status = Column(String(20), default=TaskStatus.NEW.value)
    recurring = Column(String(20), default=TaskRecurrence.NONE.value)

    due_date = Column(DateTime, nullable=True)
    reminder = Column(DateTime, nullable=True)

    # Minutes
    estimated_time = Column(Integer, default=30)
    actual_time = Column(Integer, nullable=True)

    tags = Column(JSON, default=list)
    location = Column(String(300), nullable=True)
    notes = Column(Text, nullable=True)
    planned_for_today = Column(Boolean, default=False)

    completed = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)

    sprint_id = Column(String(32), ForeignKey("sprints.id", ondelete="SET NULL"), nullable=True, index=True)
    story_points = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_tasks_user_due", "user_id", "due_date"),
        Index("ix_tasks_user_completed", "user_id", "completed"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "category": self.category,
            "status": self.status,
            "recurring": self.recurring,
            "due_date": _iso(self.due_date),
            "reminder": _iso(self.reminder),
            "estimated_time": self.estimated_time,
            "actual_time": self.actual_time,
            "tags": self.tags or [],
            "location": self.location,
            "notes": self.notes,
            "planned_for_today": bool(self.planned_for_today),
            "completed": bool(self.completed),
            "completed_at": _iso(self.completed_at),
            "sprint_id": self.sprint_id,
            "story_points": self.story_points,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Task {self.id}: {self.title} [{self.status}]>"


# =============================================================================
# KNOWLEDGE ENTRY
# =============================================================================

class KnowledgeEntry(Base):
    """Knowledge base article; version increments whenever content changes"""
    __tablename__ = "knowledge_entries"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(300), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(20), nullable=False)
    status = Column(String(20), default=KnowledgeStatus.PUBLISHED.value, index=True)
    tags = Column(JSON, default=list)

    related_entries = Column(JSON, default=list)
    related_tasks = Column(JSON, default=list)

    created_by = Column(String(100), default="System")
    version = Column(Integer, default=1)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_knowledge_user_category", "user_id", "category"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "status": self.status,
            "tags": self.tags or [],
            "related_entries": self.related_entries or [],
            "related_tasks": self.related_tasks or [],
            "created_by": self.created_by,
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<KnowledgeEntry {self.id}: {self.title} v{self.version}>"


# =============================================================================
# SPRINT
# =============================================================================

class Sprint(Base):
    """Time box grouping tasks for burndown tracking"""
    __tablename__ = "sprints"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    goal = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String(20), default=SprintStatus.PLANNED.value)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "goal": self.goal,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Sprint {self.id}: {self.name} [{self.status}]>"
