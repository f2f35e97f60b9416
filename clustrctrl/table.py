"""The task table: one row per launched task, with a wrapping cursor."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from clustrctrl.tasks import Task, TaskStatus

HEADER = (
    "ID",
    "Name",
    "Status",
    "Halt?",
    "Progress",
    "Start Time",
    "End Time",
    "Description",
)
# Widths of every column but the last; the description takes what is left.
_COLUMN_WIDTHS = (4, 16, 10, 7, 12, 14, 14)
_TITLE = " Task Table "
_HIGHLIGHT = "> "


def _clock(moment: datetime) -> str:
    return moment.strftime("%I:%M:%S ") + moment.strftime("%p").lower()


def abort_label(status: TaskStatus, pending_cancel: bool) -> str:
    """What the "Halt?" column shows for a task."""
    if not pending_cancel:
        return " "
    return "Done" if status is TaskStatus.CANCELED else "Req"


def format_row(task: Task) -> tuple[str, ...]:
    """The table cells for one task, in header order."""
    return (
        str(task.task_id),
        task.name,
        str(task.status),
        abort_label(task.status, task.pending_cancel),
        f"{task.progress}%",
        _clock(task.start),
        _clock(task.end) if task.end is not None else "-",
        task.description,
    )


def _join_cells(cells: Sequence[str]) -> str:
    fixed = [cell[:width].ljust(width) for cell, width in zip(cells, _COLUMN_WIDTHS)]
    return " ".join([*fixed, cells[-1]])


class TaskTable:
    """Cursor state for the task table; the tasks themselves live in the app."""

    def __init__(self) -> None:
        self.selected: int | None = 0

    def next(self, num_rows: int) -> None:
        """Select the next row, wrapping to the first."""
        if num_rows == 0:
            self.selected = None
        elif self.selected is None or self.selected >= num_rows - 1:
            self.selected = 0
        else:
            self.selected += 1

    def previous(self, num_rows: int) -> None:
        """Select the previous row, wrapping to the last."""
        if num_rows == 0:
            self.selected = None
        elif self.selected is None:
            self.selected = 0
        elif self.selected == 0:
            self.selected = num_rows - 1
        else:
            self.selected -= 1

    def render_lines(self, tasks: Sequence[Task], width: int) -> list[str]:
        """Draw the bordered table as text lines exactly ``width`` characters wide."""
        if width < 4:
            raise ValueError("table needs a width of at least 4")
        inner = width - 2
        body = inner - 2
        marker_width = len(_HIGHLIGHT) if self.selected is not None else 0

        def line(text: str) -> str:
            return "│ " + text[:body].ljust(body) + " │"

        lines = ["┌" + (_TITLE + "─" * inner)[:inner] + "┐"]
        lines.append(line(" " * marker_width + _join_cells(HEADER)))
        for index, task in enumerate(tasks):
            marker = _HIGHLIGHT if index == self.selected else " " * marker_width
            lines.append(line(marker + _join_cells(format_row(task))))
        lines.append("│" + " " * inner + "│")
        lines.append("└" + "─" * inner + "┘")
        return lines