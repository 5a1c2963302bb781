# -*- coding: utf-8 -*-
"""
Knowledge Routes
================

Knowledge base for the authenticated user. Listing goes through the same
KnowledgeFilter the offline client applies to its cache.

Endpoints:
- GET    /knowledge?category=&status=&tag=&search=
- GET    /knowledge/tags
- POST   /knowledge/search
- GET    /knowledge/{entry_id}
- POST   /knowledge
- PUT    /knowledge/{entry_id}
- DELETE /knowledge/{entry_id}
- POST   /knowledge/{entry_id}/link-tasks
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from workdesk.api.auth import get_current_user
from workdesk.api.schemas import KnowledgeCreate, KnowledgeUpdate, KnowledgeSearchRequest, LinkTasksRequest
from workdesk.database.connection import get_db
from workdesk.database.models import User
from workdesk.database.repositories import KnowledgeRepository
from workdesk.knowledge import KnowledgeFilter, KnowledgeSearch, collect_tags

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/knowledge", tags=["Knowledge"])


def _not_found(entry_id: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Knowledge entry {entry_id} not found")


def _entries(db: Session, user: User):
    return [entry.to_dict() for entry in KnowledgeRepository(db).get_all(user.id)]


@router.get("")
def list_entries(
    category: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    tag: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    entry_filter = KnowledgeFilter(category=category, status=status_filter, tag=tag, search=search)
    return entry_filter.apply(_entries(db, user))


@router.get("/tags")
def list_tags(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return collect_tags(_entries(db, user))


@router.post("/search")
def search_entries(
    request: KnowledgeSearchRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    date_range = request.date_range
    search = KnowledgeSearch(
        query=request.query,
        categories=request.categories,
        tags=request.tags,
        date_from=date_range.start if date_range else None,
        date_to=date_range.end if date_range else None,
        status=request.status,
    )
    return search.apply(_entries(db, user))


@router.get("/{entry_id}")
def get_entry(entry_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    entry = KnowledgeRepository(db).get_by_id(user.id, entry_id)
    if not entry:
        raise _not_found(entry_id)
    return entry.to_dict()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_entry(data: KnowledgeCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    entry_data = data.model_dump()
    entry_data["created_by"] = entry_data.get("created_by") or user.username
    entry = KnowledgeRepository(db).create(user.id, entry_data)
    logger.info(f"[Knowledge] {user.username} created entry {entry.id}")
    return entry.to_dict()


@router.put("/{entry_id}")
def update_entry(
    entry_id: str,
    data: KnowledgeUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    entry = KnowledgeRepository(db).update(user.id, entry_id, data.model_dump(exclude_unset=True))
    if not entry:
        raise _not_found(entry_id)
    return entry.to_dict()


@router.delete("/{entry_id}")
def delete_entry(entry_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not KnowledgeRepository(db).delete(user.id, entry_id):
        raise _not_found(entry_id)
    logger.info(f"[Knowledge] {user.username} deleted entry {entry_id}")
    return {"message": "Knowledge entry deleted"}


@router.post("/{entry_id}/link-tasks")
def link_tasks(
    entry_id: str,
    request: LinkTasksRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    entry = KnowledgeRepository(db).link_tasks(user.id, entry_id, request.task_ids)
    if not entry:
        raise _not_found(entry_id)
    return entry.to_dict()
