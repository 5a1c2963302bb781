# -*- coding: utf-8 -*-
"""
Report Routes
=============

GET /reports/status?type=daily|weekly|custom&start=&end=&format=json|text|html|csv
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from workdesk.api.auth import get_current_user
from workdesk.database.connection import get_db
from workdesk.database.models import User
from workdesk.database.repositories import TaskRepository
from workdesk.reports import ReportType, ReportFormat, StatusReportGenerator, ExporterFactory

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/status")
def status_report(
    report_type: ReportType = Query(ReportType.DAILY, alias="type"),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    format: ReportFormat = Query(ReportFormat.JSON),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    tasks = [task.to_dict() for task in TaskRepository(db).get_all(user.id)]
    try:
        report = StatusReportGenerator().generate(tasks, report_type, start, end)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if format == ReportFormat.JSON:
        return report.to_dict()

    exporter = ExporterFactory.get_exporter(format)
    return Response(content=exporter.export(report), media_type=exporter.media_type)
