# -*- coding: utf-8 -*-
"""
Repositories - WorkDesk data access

Every query is scoped to the owning user; admin-wide helpers are explicit.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, or_
from sqlalchemy.orm import Session

from .models import (
    User, UserRole, Task, TaskStatus, KnowledgeEntry, Sprint
)


def _assign(instance, data: Dict[str, Any], protected=("id", "user_id", "created_at", "updated_at")) -> None:
    for key, value in data.items():
        if key in protected:
            continue
        if hasattr(instance, key):
            setattr(instance, key, value)


# =============================================================================
# USER REPOSITORY
# =============================================================================

class UserRepository:
    """Users and their roles"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_data: dict) -> User:
        user = User(**user_data)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def find_conflict(self, email: str, username: str, exclude_id: str = None) -> Optional[User]:
        """Another user already holding this email or username"""
        query = self.db.query(User).filter(or_(User.email == email, User.username == username))
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        return query.first()

    def get_all(self) -> List[User]:
        return self.db.query(User).order_by(User.created_at).all()

    def update(self, user_id: str, data: dict) -> Optional[User]:
        user = self.get_by_id(user_id)
        if user:
            _assign(user, data, protected=("id", "created_at", "password_hash"))
            self.db.commit()
            self.db.refresh(user)
        return user

    def set_role(self, user_id: str, role: UserRole) -> Optional[User]:
        return self.update(user_id, {"role": role.value})

    def update_last_login(self, user: User) -> User:
        user.last_login = datetime.utcnow()
        self.db.commit()
        return user

    def delete(self, user_id: str) -> bool:
        """Deletes the user together with everything they own"""
        user = self.get_by_id(user_id)
        if not user:
            return False
        self.db.query(Task).filter(Task.user_id == user_id).delete()
        self.db.query(KnowledgeEntry).filter(KnowledgeEntry.user_id == user_id).delete()
        self.db.query(Sprint).filter(Sprint.user_id == user_id).delete()
        self.db.delete(user)
        self.db.commit()
        return True

    def count(self) -> int:
        return self.db.query(User).count()


# =============================================================================
# TASK REPOSITORY
# =============================================================================

class TaskRepository:
    """Tasks owned by a user"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _apply_completion(task: Task, data: dict, before: tuple = (None, False)) -> None:
        """
        Keeps completed, status and completed_at consistent.

        Full-entity payloads may carry a stale copy of one of the two fields,
        so the one that actually changed against `before` (status, completed) wins.
        """
        prior_status, prior_completed = before
        status_changed = "status" in data and data["status"] != prior_status
        completed_changed = "completed" in data and bool(data["completed"]) != bool(prior_completed)

        if status_changed and task.status == TaskStatus.COMPLETED.value:
            task.completed = True
        elif status_changed and prior_status == TaskStatus.COMPLETED.value:
            task.completed = False
        elif completed_changed:
            if task.completed:
                task.status = TaskStatus.COMPLETED.value
            elif task.status == TaskStatus.COMPLETED.value:
                task.status = TaskStatus.NEW.value

        if not task.completed:
            task.completed_at = None
        elif task.completed_at is None:
            task.completed_at = datetime.utcnow()

    def create(self, user_id: str, task_data: dict) -> Task:
        task = Task(user_id=user_id)
        _assign(task, task_data)
        self._apply_completion(task, task_data)
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        return task

    def get_by_id(self, user_id: str, task_id: str) -> Optional[Task]:
        return self.db.query(Task).filter(Task.id == task_id, Task.user_id == user_id).first()

    def get_all(self, user_id: str) -> List[Task]:
        return self.db.query(Task).filter(Task.user_id == user_id).order_by(Task.created_at).all()

    def get_by_sprint(self, user_id: str, sprint_id: str) -> List[Task]:
        return self.db.query(Task).filter(
            Task.user_id == user_id, Task.sprint_id == sprint_id
        ).order_by(Task.created_at).all()

    def update(self, user_id: str, task_id: str, data: dict) -> Optional[Task]:
        task = self.get_by_id(user_id, task_id)
        if task:
            before = (task.status, task.completed)
            _assign(task, data)
            self._apply_completion(task, data, before)
            task.updated_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(task)
        return task

    def delete(self, user_id: str, task_id: str) -> bool:
        task = self.get_by_id(user_id, task_id)
        if task:
            self.db.delete(task)
            self.db.commit()
            return True
        return False

    def delete_all_for_user(self, user_id: str) -> int:
        deleted = self.db.query(Task).filter(Task.user_id == user_id).delete()
        self.db.commit()
        return deleted

    def count(self, user_id: str = None) -> int:
        query = self.db.query(Task)
        if user_id:
            query = query.filter(Task.user_id == user_id)
        return query.count()


# =============================================================================
# KNOWLEDGE REPOSITORY
# =============================================================================

class KnowledgeRepository:
    """Knowledge entries owned by a user"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: str, entry_data: dict) -> KnowledgeEntry:
        entry = KnowledgeEntry(user_id=user_id, version=1)
        _assign(entry, entry_data, protected=("id", "user_id", "created_at", "updated_at", "version"))
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def get_by_id(self, user_id: str, entry_id: str) -> Optional[KnowledgeEntry]:
        return self.db.query(KnowledgeEntry).filter(
            KnowledgeEntry.id == entry_id, KnowledgeEntry.user_id == user_id
        ).first()

    def get_all(self, user_id: str) -> List[KnowledgeEntry]:
        """Most recently updated first"""
        return self.db.query(KnowledgeEntry).filter(
            KnowledgeEntry.user_id == user_id
        ).order_by(desc(KnowledgeEntry.updated_at)).all()

    def update(self, user_id: str, entry_id: str, data: dict) -> Optional[KnowledgeEntry]:
        entry = self.get_by_id(user_id, entry_id)
        if entry:
            content_changed = "content" in data and data["content"] != entry.content
            _assign(entry, data, protected=("id", "user_id", "created_at", "updated_at", "version"))
            if content_changed:
                entry.version = (entry.version or 1) + 1
            entry.updated_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(entry)
        return entry

    def link_tasks(self, user_id: str, entry_id: str, task_ids: List[str]) -> Optional[KnowledgeEntry]:
        entry = self.get_by_id(user_id, entry_id)
        if entry:
            linked = list(entry.related_tasks or [])
            for task_id in task_ids:
                if task_id not in linked:
                    linked.append(task_id)
            entry.related_tasks = linked
            self.db.commit()
            self.db.refresh(entry)
        return entry

    def delete(self, user_id: str, entry_id: str) -> bool:
        entry = self.get_by_id(user_id, entry_id)
        if entry:
            self.db.delete(entry)
            self.db.commit()
            return True
        return False

    def delete_all_for_user(self, user_id: str) -> int:
        deleted = self.db.query(KnowledgeEntry).filter(KnowledgeEntry.user_id == user_id).delete()
        self.db.commit()
        return deleted

    def count(self, user_id: str = None) -> int:
        query = self.db.query(KnowledgeEntry)
        if user_id:
            query = query.filter(KnowledgeEntry.user_id == user_id)
        return query.count()


# =============================================================================
# SPRINT REPOSITORY
# =============================================================================

class SprintRepository:
    """Sprints owned by a user"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: str, sprint_data: dict) -> Sprint:
        sprint = Sprint(user_id=user_id)
        _assign(sprint, sprint_data)
        self.db.add(sprint)
        self.db.commit()
        self.db.refresh(sprint)
        return sprint

    def get_by_id(self, user_id: str, sprint_id: str) -> Optional[Sprint]:
        return self.db.query(Sprint).filter(Sprint.id == sprint_id, Sprint.user_id == user_id).first()

    def get_all(self, user_id: str) -> List[Sprint]:
        """Newest start date first"""
        return self.db.query(Sprint).filter(Sprint.user_id == user_id).order_by(desc(Sprint.start_date)).all()

    def update(self, user_id: str, sprint_id: str, data: dict) -> Optional[Sprint]:
        sprint = self.get_by_id(user_id, sprint_id)
        if sprint:
            _assign(sprint, data)
            sprint.updated_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(sprint)
        return sprint

    def delete(self, user_id: str, sprint_id: str) -> bool:
        """Deletes the sprint after unassigning its tasks"""
        sprint = self.get_by_id(user_id, sprint_id)
        if not sprint:
            return False
        self.db.query(Task).filter(Task.sprint_id == sprint_id).update(
            {Task.sprint_id: None}, synchronize_session=False
        )
        self.db.delete(sprint)
        self.db.commit()
        return True

    def add_task(self, task: Task, sprint: Sprint, story_points: int = None) -> Task:
        task.sprint_id = sprint.id
        if story_points:
            task.story_points = story_points
        self.db.commit()
        self.db.refresh(task)
        return task

    def remove_task(self, task: Task) -> Task:
        task.sprint_id = None
        self.db.commit()
        self.db.refresh(task)
        return task
