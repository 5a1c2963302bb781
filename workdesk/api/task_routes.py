# -*- coding: utf-8 -*-
"""
Task Routes
===========

CRUD for the authenticated user's tasks.

Endpoints:
- GET    /tasks
- GET    /tasks/{task_id}
- POST   /tasks
- PUT    /tasks/{task_id}
- DELETE /tasks/{task_id}
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from workdesk.api.auth import get_current_user
from workdesk.api.schemas import TaskCreate, TaskUpdate
from workdesk.database.connection import get_db
from workdesk.database.models import User
from workdesk.database.repositories import TaskRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def _not_found(task_id: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Task {task_id} not found")


@router.get("", response_model=List[dict])
def list_tasks(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [task.to_dict() for task in TaskRepository(db).get_all(user.id)]


@router.get("/{task_id}")
def get_task(task_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    task = TaskRepository(db).get_by_id(user.id, task_id)
    if not task:
        raise _not_found(task_id)
    return task.to_dict()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(data: TaskCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    task = TaskRepository(db).create(user.id, data.model_dump())
    logger.info(f"[Tasks] {user.username} created task {task.id}")
    return task.to_dict()


@router.put("/{task_id}")
def update_task(
    task_id: str,
    data: TaskUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    task = TaskRepository(db).update(user.id, task_id, data.model_dump(exclude_unset=True))
    if not task:
        raise _not_found(task_id)
    return task.to_dict()


@router.delete("/{task_id}")
def delete_task(task_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not TaskRepository(db).delete(user.id, task_id):
        raise _not_found(task_id)
    logger.info(f"[Tasks] {user.username} deleted task {task_id}")
    return {"message": "Task deleted"}
