# -*- coding: utf-8 -*-
"""
CLI Output - WorkDesk
=====================

Terminal rendering for the CLI: message lines, connectivity and sync
summaries, and entity tables where rows still waiting for the server are
starred.
"""

import sys
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from workdesk.offline import OFFLINE_FLAG, is_local_id


class Color(str, Enum):
    """ANSI color codes."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"


STATUS_COLORS = {
    "completed": Color.GREEN,
    "in-progress": Color.YELLOW,
    "new": Color.CYAN,
    "published": Color.GREEN,
    "draft": Color.YELLOW,
    "archived": Color.GRAY,
}

PENDING_MARK = "*"


def is_pending(entity: Mapping[str, Any]) -> bool:
    """True for entities created offline and not replayed yet"""
    return bool(entity.get(OFFLINE_FLAG)) or is_local_id(entity.get("id"))


class Output:
    """
    Writes to a stream (stdout by default).

    Colors are ANSI codes; ``disable_color()`` switches to plain text, which
    is what the tests and ``--no-color`` use.
    """

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self.color = True

    def disable_color(self):
        self.color = False

    def _paint(self, text: str, color: Optional[Color] = None, bold: bool = False) -> str:
        if not self.color:
            return text
        prefix = (Color.BOLD.value if bold else "") + (color.value if color else "")
        return f"{prefix}{text}{Color.RESET.value}" if prefix else text

    def print(self, text: str = "", color: Optional[Color] = None, bold: bool = False, end: str = "\n"):
        self.stream.write(self._paint(str(text), color, bold) + end)

    # -------------------------------------------------------------------------
    # Message lines
    # -------------------------------------------------------------------------

    def header(self, text: str):
        rule = "=" * max(50, len(text) + 2)
        self.print(rule, color=Color.BLUE)
        self.print(f" {text}", color=Color.CYAN, bold=True)
        self.print(rule, color=Color.BLUE)

    def success(self, text: str):
        self.print(f"[OK] {text}", color=Color.GREEN)

    def error(self, text: str):
        self.print(f"[ERROR] {text}", color=Color.RED)

    def warning(self, text: str):
        self.print(f"[WARN] {text}", color=Color.YELLOW)

    def info(self, text: str):
        self.print(f"[INFO] {text}", color=Color.BLUE)

    def key_value(self, key: str, value: Any, key_width: int = 18):
        self.print(self._paint(f"  {key.ljust(key_width)}: ", Color.GRAY) + str(value))

    # -------------------------------------------------------------------------
    # Offline client summaries
    # -------------------------------------------------------------------------

    def connectivity(self, online: bool, url: str):
        if online:
            self.success(f"Server: online ({url})")
        else:
            self.warning(f"Server: offline ({url})")

    def sync_report(self, name: str, report: Dict[str, int]):
        """One line per engine; warns when anything failed or was rejected"""
        line = (f"{name}: {report['replayed']} replayed, {report['failed']} failed, "
                f"{report['rejected']} rejected, {report['pending']} pending")
        if report["failed"] or report["rejected"]:
            self.warning(line)
        else:
            self.success(line)

    def entities(self, entities: Sequence[Mapping[str, Any]], columns: Sequence[str], empty: str = "Nothing to show"):
        """
        Column-aligned table of entities.

        The first column marks rows still waiting for the server with ``*``;
        a ``status`` column is colored by value.
        """
        if not entities:
            self.info(empty)
            return

        rows: List[List[str]] = [
            [PENDING_MARK if is_pending(entity) else " "] + ["" if entity.get(c) is None else str(entity.get(c))
                                                             for c in columns]
            for entity in entities
        ]
        widths = [max(len(row[i]) for row in rows) for i in range(len(columns) + 1)]
        widths = [widths[0]] + [max(width, len(column)) for width, column in zip(widths[1:], columns)]

        self.print("  ".join(h.upper().ljust(w) for h, w in zip([" "] + list(columns), widths)).rstrip(), bold=True)
        for row in rows:
            cells = []
            for index, (cell, width) in enumerate(zip(row, widths)):
                padded = cell.ljust(width)
                if index and columns[index - 1] == "status":
                    padded = self._paint(padded, STATUS_COLORS.get(cell))
                cells.append(padded)
            self.print("  ".join(cells).rstrip())

        pending = sum(1 for entity in entities if is_pending(entity))
        if pending:
            self.print(f"{PENDING_MARK} {pending} not yet on the server", color=Color.GRAY)
