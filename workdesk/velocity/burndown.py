# -*- coding: utf-8 -*-
"""
Burndown Calculator - WorkDesk
==============================

Stateless sprint burndown: ideal line versus actual remaining points.

Tasks are plain mappings (as returned by ``Task.to_dict()`` or the REST API);
dates may be ``datetime``/``date`` objects or ISO strings.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

DateLike = Union[date, datetime, str]


def _to_date(value: DateLike) -> date:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        return value.date()
    return value


def _to_datetime(value: Optional[DateLike]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return datetime.combine(value, datetime.min.time())


def task_points(task: Mapping[str, Any]) -> float:
    """Story points of a task; unset or zero weighs 1"""
    return task.get("story_points") or 1


def is_completed(task: Mapping[str, Any]) -> bool:
    return bool(task.get("completed")) or task.get("status") == "completed"


@dataclass
class BurndownPoint:
    """A point on the burndown chart."""
    day: int
    date: str
    ideal: float
    remaining: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "date": self.date,
            "ideal": self.ideal,
            "remaining": self.remaining,
        }


@dataclass
class BurndownReport:
    """Burndown series for a date range."""
    dates: List[str] = field(default_factory=list)
    ideal: List[float] = field(default_factory=list)
    actual: List[float] = field(default_factory=list)
    total_points: float = 0
    completed_points: float = 0
    tasks_count: int = 0
    completed_tasks_count: int = 0

    @property
    def days(self) -> int:
        return len(self.dates)

    def points(self) -> List[BurndownPoint]:
        return [
            BurndownPoint(day=index + 1, date=day, ideal=self.ideal[index], remaining=self.actual[index])
            for index, day in enumerate(self.dates)
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dates": list(self.dates),
            "ideal": list(self.ideal),
            "actual": list(self.actual),
            "total_points": self.total_points,
            "completed_points": self.completed_points,
            "tasks_count": self.tasks_count,
            "completed_tasks_count": self.completed_tasks_count,
            "points": [point.to_dict() for point in self.points()],
        }


def calculate_burndown(tasks: Iterable[Mapping[str, Any]], start: DateLike, end: DateLike) -> BurndownReport:
    """
    Calculate ideal and actual burndown between start and end (inclusive).

    Args:
        tasks: Task mappings with story_points, completed/status, completed_at
        start: First sprint day
        end: Last sprint day

    Returns:
        BurndownReport with one value per day in each series

    Raises:
        ValueError: end is before start
    """
    tasks = list(tasks)
    start_day = _to_date(start)
    end_day = _to_date(end)
    if end_day < start_day:
        raise ValueError(f"Burndown end {end_day.isoformat()} is before start {start_day.isoformat()}")

    days = (end_day - start_day).days + 1
    total = sum(task_points(task) for task in tasks)
    completed = [task for task in tasks if is_completed(task)]

    dates = [(start_day + timedelta(days=offset)).isoformat() for offset in range(days)]

    # Single-day sprint drops straight to zero
    if days == 1:
        ideal = [0.0]
    else:
        slope = total / (days - 1)
        ideal = [round(max(0.0, total - slope * index), 1) for index in range(days)]

    timed = [(_to_datetime(task.get("completed_at")), task) for task in completed]
    timed = sorted([pair for pair in timed if pair[0] is not None], key=lambda pair: pair[0])

    drops: Dict[int, float] = {}
    for completed_at, task in timed:
        index = (completed_at.date() - start_day).days
        if 0 <= index < days:
            drops[index] = drops.get(index, 0) + task_points(task)

    actual: List[float] = []
    remaining = total
    for index in range(days):
        remaining -= drops.get(index, 0)
        actual.append(remaining)

    return BurndownReport(
        dates=dates,
        ideal=ideal,
        actual=actual,
        total_points=total,
        completed_points=sum(task_points(task) for task in completed),
        tasks_count=len(tasks),
        completed_tasks_count=len(completed),
    )
