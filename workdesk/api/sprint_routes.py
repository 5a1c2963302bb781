# -*- coding: utf-8 -*-
"""
Sprint Routes
=============

Sprints, sprint membership and burndown.

Endpoints:
- GET    /sprints
- POST   /sprints
- GET    /sprints/{sprint_id}             -> {sprint, tasks}
- PUT    /sprints/{sprint_id}
- DELETE /sprints/{sprint_id}
- POST   /sprints/{sprint_id}/tasks/{task_id}
- DELETE /sprints/{sprint_id}/tasks/{task_id}
- GET    /sprints/{sprint_id}/burndown
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from workdesk.api.auth import get_current_user
from workdesk.api.schemas import SprintCreate, SprintUpdate, SprintTaskRequest
from workdesk.database.connection import get_db
from workdesk.database.models import User
from workdesk.database.repositories import SprintRepository, TaskRepository
from workdesk.velocity import calculate_burndown

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sprints", tags=["Sprints"])


def _get_sprint_or_404(db: Session, user: User, sprint_id: str):
    sprint = SprintRepository(db).get_by_id(user.id, sprint_id)
    if not sprint:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sprint not found")
    return sprint


def _get_task_or_404(db: Session, user: User, task_id: str):
    task = TaskRepository(db).get_by_id(user.id, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


@router.get("")
def list_sprints(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [sprint.to_dict() for sprint in SprintRepository(db).get_all(user.id)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_sprint(data: SprintCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    sprint = SprintRepository(db).create(user.id, data.model_dump())
    logger.info(f"[Sprints] {user.username} created sprint {sprint.name}")
    return sprint.to_dict()


@router.get("/{sprint_id}")
def get_sprint(sprint_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    sprint = _get_sprint_or_404(db, user, sprint_id)
    tasks = TaskRepository(db).get_by_sprint(user.id, sprint.id)
    return {"sprint": sprint.to_dict(), "tasks": [task.to_dict() for task in tasks]}


@router.put("/{sprint_id}")
def update_sprint(
    sprint_id: str,
    data: SprintUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    sprint = _get_sprint_or_404(db, user, sprint_id)
    changes = data.model_dump(exclude_unset=True)
    start = changes.get("start_date") or sprint.start_date
    end = changes.get("end_date") or sprint.end_date
    if end < start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date must not be before start_date")
    return SprintRepository(db).update(user.id, sprint.id, changes).to_dict()


@router.delete("/{sprint_id}")
def delete_sprint(sprint_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not SprintRepository(db).delete(user.id, sprint_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sprint not found")
    return {"message": "Sprint deleted"}


@router.post("/{sprint_id}/tasks/{task_id}")
def add_task_to_sprint(
    sprint_id: str,
    task_id: str,
    request: Optional[SprintTaskRequest] = Body(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    sprint = _get_sprint_or_404(db, user, sprint_id)
    task = _get_task_or_404(db, user, task_id)
    story_points = request.story_points if request else None
    return SprintRepository(db).add_task(task, sprint, story_points).to_dict()


@router.delete("/{sprint_id}/tasks/{task_id}")
def remove_task_from_sprint(
    sprint_id: str,
    task_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    task = _get_task_or_404(db, user, task_id)
    if task.sprint_id and task.sprint_id != sprint_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Task is not in this sprint")
    return SprintRepository(db).remove_task(task).to_dict()


@router.get("/{sprint_id}/burndown")
def get_burndown(sprint_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    sprint = _get_sprint_or_404(db, user, sprint_id)
    tasks = [task.to_dict() for task in TaskRepository(db).get_by_sprint(user.id, sprint.id)]
    report = calculate_burndown(tasks, sprint.start_date, sprint.end_date)
    return {"sprint": sprint.to_dict(), **report.to_dict()}
