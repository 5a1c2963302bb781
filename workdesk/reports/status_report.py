# -*- coding: utf-8 -*-
"""
Status Reports - WorkDesk
=========================

Daily standup, weekly summary and custom range reports built from a task
collection. Tasks are plain mappings as returned by ``Task.to_dict()``.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from workdesk.velocity.burndown import is_completed

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
UPCOMING_DAYS = 7


class ReportType(str, Enum):
    """Types of status reports."""
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class ReportFormat(str, Enum):
    """Output formats for reports."""
    TEXT = "text"
    HTML = "html"
    CSV = "csv"
    JSON = "json"


@dataclass
class ReportConfig:
    """Configuration for report generation."""
    report_type: ReportType
    title: str
    date_from: datetime
    date_to: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_type": self.report_type.value,
            "title": self.title,
            "date_from": self.date_from.isoformat(),
            "date_to": self.date_to.isoformat(),
        }


@dataclass
class ReportSection:
    """A section within a report."""
    title: str
    content: Any
    section_type: str = "table"  # table, summary, text
    order: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "section_type": self.section_type,
            "order": self.order,
        }


@dataclass
class ReportData:
    """Container for report data."""
    config: ReportConfig
    sections: List[ReportSection] = field(default_factory=list)
    generated_at: datetime = field(default_factory=datetime.utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def add_section(self, title: str, content: Any, section_type: str = "table") -> ReportSection:
        section = ReportSection(title=title, content=content, section_type=section_type, order=len(self.sections))
        self.sections.append(section)
        return section

    def section(self, title: str) -> Optional[ReportSection]:
        return next((s for s in self.sections if s.title == title), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "sections": [s.to_dict() for s in self.sections],
            "generated_at": self.generated_at.isoformat(),
            "metadata": self.metadata,
        }


# =============================================================================
# HELPERS
# =============================================================================

def _parse(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return datetime.combine(value, time.min)


def format_minutes(minutes: int) -> str:
    """90 -> '1h 30m'"""
    hours, rest = divmod(int(minutes or 0), 60)
    return f"{hours}h {rest}m" if hours else f"{rest}m"


def _row(task: Mapping[str, Any], today: date) -> Dict[str, Any]:
    due = _parse(task.get("due_date"))
    row = {
        "title": task.get("title"),
        "status": task.get("status") or "new",
        "priority": task.get("priority") or "medium",
        "due_date": due.date().isoformat() if due else "",
        "estimated_time": task.get("estimated_time") or "",
        "notes": (task.get("notes") or "").strip(),
    }
    if due and due.date() < today:
        row["days_overdue"] = (today - due.date()).days
    return row


# =============================================================================
# GENERATOR
# =============================================================================

class StatusReportGenerator:
    """
    Builds ReportData for a task collection.

    Args:
        clock: Returns "now"; injectable for tests
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow):
        self._clock = clock

    def period(self, report_type: ReportType, start: Optional[datetime] = None,
               end: Optional[datetime] = None) -> tuple:
        """Inclusive datetime bounds of the reporting window"""
        now = self._clock()
        today = datetime.combine(now.date(), time.min)

        if report_type == ReportType.DAILY:
            return today, datetime.combine(now.date(), time.max)
        if report_type == ReportType.WEEKLY:
            # Weeks start on Sunday
            week_start = today - timedelta(days=(today.weekday() + 1) % 7)
            return week_start, datetime.combine(now.date(), time.max)

        if start is None or end is None:
            raise ValueError("Custom reports need both start and end")
        start_day = datetime.combine(_parse(start).date(), time.min)
        end_day = datetime.combine(_parse(end).date(), time.max)
        if end_day < start_day:
            raise ValueError("Report end is before start")
        return start_day, end_day

    # -------------------------------------------------------------------------
    # Task selections
    # -------------------------------------------------------------------------

    @staticmethod
    def completed_between(tasks: List[Mapping], start: datetime, end: datetime) -> List[Mapping]:
        """Completed tasks stamped inside the window (updated_at when completed_at is missing)"""
        selected = []
        for task in tasks:
            if not is_completed(task):
                continue
            stamp = _parse(task.get("completed_at")) or _parse(task.get("updated_at"))
            if stamp and start <= stamp <= end:
                selected.append(task)
        return selected

    @staticmethod
    def in_progress(tasks: List[Mapping]) -> List[Mapping]:
        return [t for t in tasks if t.get("status") == "in-progress" and not is_completed(t)]

    @staticmethod
    def blockers(tasks: List[Mapping], today: date) -> List[Mapping]:
        """High priority open tasks past their due date"""
        result = []
        for task in tasks:
            due = _parse(task.get("due_date"))
            if not is_completed(task) and due and due.date() < today and task.get("priority") == "high":
                result.append(task)
        return result

    @staticmethod
    def upcoming(tasks: List[Mapping], today: date) -> List[Mapping]:
        """
        Open tasks not yet started: due within the next week or without a
        due date. Dated tasks first by due date, then by priority.
        """
        horizon = today + timedelta(days=UPCOMING_DAYS)
        result = []
        for task in tasks:
            if is_completed(task) or task.get("status") == "in-progress":
                continue
            due = _parse(task.get("due_date"))
            if due is None or today <= due.date() <= horizon:
                result.append(task)

        def sort_key(task):
            due = _parse(task.get("due_date"))
            return (due is None, due or datetime.max, PRIORITY_ORDER.get(task.get("priority") or "medium", 1))

        return sorted(result, key=sort_key)

    # -------------------------------------------------------------------------
    # Report
    # -------------------------------------------------------------------------

    def generate(self, tasks: Iterable[Mapping[str, Any]], report_type: ReportType = ReportType.DAILY,
                 start: Optional[datetime] = None, end: Optional[datetime] = None) -> ReportData:
        report_type = ReportType(report_type)
        tasks = list(tasks)
        date_from, date_to = self.period(report_type, start, end)
        today = self._clock().date()

        completed = self.completed_between(tasks, date_from, date_to)
        in_progress = self.in_progress(tasks)
        blockers = self.blockers(tasks, today)
        upcoming = self.upcoming(tasks, today)
        time_spent = sum(task.get("actual_time") or 0 for task in completed)
        days = (date_to.date() - date_from.date()).days + 1

        titles = {
            ReportType.DAILY: f"Daily Status Update: {today.isoformat()}",
            ReportType.WEEKLY: f"Weekly Summary: {date_from.date().isoformat()} to {date_to.date().isoformat()}",
            ReportType.CUSTOM: f"Status Report: {date_from.date().isoformat()} to {date_to.date().isoformat()}",
        }
        report = ReportData(config=ReportConfig(report_type, titles[report_type], date_from, date_to))

        report.add_section("Summary", {
            "completed": len(completed),
            "in_progress": len(in_progress),
            "blockers": len(blockers),
            "upcoming": len(upcoming),
            "time_spent": format_minutes(time_spent),
            "average_per_day": round(len(completed) / days, 1),
        }, section_type="summary")
        report.add_section("Completed", [_row(t, today) for t in completed])
        report.add_section("In Progress", [_row(t, today) for t in in_progress])
        report.add_section("Blockers", [_row(t, today) for t in blockers])
        report.add_section("Upcoming", [_row(t, today) for t in upcoming])

        if report_type != ReportType.DAILY and completed:
            counts: Dict[str, int] = {}
            for task in completed:
                category = task.get("category") or "uncategorized"
                counts[category] = counts.get(category, 0) + 1
            breakdown = [
                {"category": name, "tasks": count, "percentage": round(count * 100 / len(completed), 1)}
                for name, count in sorted(counts.items(), key=lambda item: -item[1])
            ]
            report.add_section("Category Breakdown", breakdown)

        report.metadata = {"tasks_total": len(tasks), "time_spent_minutes": time_spent, "days": days}
        return report
