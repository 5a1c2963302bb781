# -*- coding: utf-8 -*-
"""
Admin Routes
============

User administration. Every endpoint requires the admin role.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from workdesk.api.auth import require_admin, get_password_hash
from workdesk.api.schemas import AdminUserCreate, AdminUserUpdate
from workdesk.database.connection import get_db
from workdesk.database.models import User, UserRole
from workdesk.database.repositories import UserRepository, TaskRepository, KnowledgeRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


def _get_user_or_404(db: Session, user_id: str) -> User:
    user = UserRepository(db).get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/users")
def list_users(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return [user.to_dict() for user in UserRepository(db).get_all()]


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(data: AdminUserCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    repo = UserRepository(db)
    if repo.find_conflict(data.email, data.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with that email or username already exists"
        )

    user = repo.create({
        "username": data.username,
        "email": data.email,
        "password_hash": get_password_hash(data.password),
        "role": data.role,
    })
    logger.info(f"[Admin] {admin.username} created user {user.username} ({user.role})")
    return {"message": "User created successfully", "user": user.to_dict()}


@router.get("/users/{user_id}")
def get_user(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return _get_user_or_404(db, user_id).to_dict()


@router.get("/users/{user_id}/stats")
def get_user_stats(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    _get_user_or_404(db, user_id)
    return {
        "tasks": TaskRepository(db).count(user_id),
        "knowledge": KnowledgeRepository(db).count(user_id),
    }


@router.put("/users/{user_id}")
def update_user(
    user_id: str,
    data: AdminUserUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    repo = UserRepository(db)
    _get_user_or_404(db, user_id)
    if repo.find_conflict(data.email, data.username, exclude_id=user_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Another user with that email or username already exists"
        )
    if user_id == admin.id and data.role != UserRole.ADMIN.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot remove your own admin privileges")

    user = repo.update(user_id, data.model_dump())
    logger.info(f"[Admin] {admin.username} updated user {user.username}")
    return user.to_dict()


@router.delete("/users/{user_id}")
def delete_user(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    if user_id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete your own account")
    if not UserRepository(db).delete(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    logger.warning(f"[Admin] {admin.username} deleted user {user_id} and their data")
    return {"message": "User and all associated data deleted"}


@router.delete("/users/{user_id}/tasks")
def delete_user_tasks(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    deleted = TaskRepository(db).delete_all_for_user(user_id)
    logger.warning(f"[Admin] {admin.username} deleted {deleted} tasks of user {user_id}")
    return {"message": f"Deleted {deleted} tasks for user {user_id}", "deleted": deleted}


@router.delete("/users/{user_id}/knowledge")
def delete_user_knowledge(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    deleted = KnowledgeRepository(db).delete_all_for_user(user_id)
    logger.warning(f"[Admin] {admin.username} deleted {deleted} knowledge entries of user {user_id}")
    return {"message": f"Deleted {deleted} knowledge entries for user {user_id}", "deleted": deleted}


@router.get("/stats")
def get_stats(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {
        "users": UserRepository(db).count(),
        "tasks": TaskRepository(db).count(),
        "knowledge_entries": KnowledgeRepository(db).count(),
    }


@router.put("/users/{user_id}/make-admin")
def make_admin(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    _get_user_or_404(db, user_id)
    user = UserRepository(db).set_role(user_id, UserRole.ADMIN)
    logger.info(f"[Admin] {user.username} promoted by {admin.username}")
    return user.to_dict()


@router.put("/users/{user_id}/remove-admin")
def remove_admin(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    if user_id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot remove your own admin privileges")
    _get_user_or_404(db, user_id)
    user = UserRepository(db).set_role(user_id, UserRole.USER)
    logger.info(f"[Admin] {user.username} demoted by {admin.username}")
    return user.to_dict()
