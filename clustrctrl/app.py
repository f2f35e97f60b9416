"""The terminal application: monitor, add and cancel tasks."""

from __future__ import annotations

import argparse
import enum
import logging
import queue
import random
from collections import deque
from datetime import datetime
from typing import Any

from clustrctrl.picker import FETCH_AMOUNT, CandidateTask, TaskPicker
from clustrctrl.table import TaskTable
from clustrctrl.tasks import (
    Broadcast,
    CancelReport,
    EveryoneStop,
    LaborDispute,
    PleaseStop,
    Reconciliation,
    RunReport,
    SendError,
    SleepReport,
    Task,
    TaskStatus,
)

try:
    import curses
except ImportError:  # not every platform ships curses
    curses = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

INBOX_CAPACITY = 100
_POLL_MS = 500
_CURSES_ERRORS: tuple[type[BaseException], ...] = (curses.error,) if curses else ()

_THICK = ("┏", "━", "┓", "┃", "┗", "┛")
_PLAIN = ("┌", "─", "┐", "│", "└", "┘")


class ViewState(enum.Enum):
    TASK_ADD = "task add"
    """The picker modal is open and tasks can be added."""
    MONITOR = "monitor"
    """Main screen: watch, or switch to another mode."""
    INSPECT = "inspect"
    """Main screen with a table cursor for cancelling tasks."""


class MessageStream(logging.Handler):
    """Logging handler that keeps the most recent records as display lines."""

    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        super().__init__()
        self._lines: deque[str] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
            line = f"{stamp}.{int(record.msecs):03d} {record.levelname}|{record.getMessage()}"
        except Exception:
            self.handleError(record)
            return
        self._lines.append(line)

    def lines(self) -> list[str]:
        """The kept lines, oldest first."""
        self.acquire()
        try:
            return list(self._lines)
        finally:
            self.release()


def _box(
    content: list[str],
    width: int,
    height: int,
    title: str,
    chars: tuple[str, ...],
    footer: str = "",
) -> list[str]:
    top_left, horizontal, top_right, vertical, bottom_left, bottom_right = chars
    inner = width - 2
    top = top_left + (title + horizontal * inner)[:inner] + top_right
    footer = footer[:inner]
    pad = inner - len(footer)
    left = pad // 2
    bottom = bottom_left + horizontal * left + footer + horizontal * (pad - left) + bottom_right
    body = [vertical + line[:inner].ljust(inner) + vertical for line in content[: height - 2]]
    body += [vertical + " " * inner + vertical] * (height - 2 - len(body))
    return [top, *body, bottom]


def _fit_block(block: list[str], height: int) -> list[str]:
    """Stretch or shrink a bordered block to ``height`` lines, keeping its bottom edge."""
    if len(block) > height:
        return block[: height - 1] + block[-1:]
    filler = "│" + " " * (len(block[-1]) - 2) + "│"
    return block[:-1] + [filler] * (height - len(block)) + block[-1:]


class App:
    """Application state and the handling of keys and task messages."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self.picker = TaskPicker(rng)
        self.table = TaskTable()
        self.view_state = ViewState.MONITOR
        self.should_exit = False
        self.tasks: list[Task] = []
        self.tasks_created = 0  # thread identities get reused; this counter does not
        self.inbox: queue.Queue = queue.Queue(maxsize=INBOX_CAPACITY)
        self.broadcast = Broadcast()
        self.messages = MessageStream()

    def handle_key(self, key: str) -> None:
        """React to a key: "k", "j", "r", "up", "down", "enter", "f1", "f2", "f3" or "esc"."""
        logger.debug("key down: %s", key)
        state = self.view_state
        if key in ("k", "up"):
            if state is ViewState.TASK_ADD:
                self.picker.previous()
            elif state is ViewState.INSPECT:
                self.table.previous(len(self.tasks))
        elif key in ("j", "down"):
            if state is ViewState.TASK_ADD:
                self.picker.next()
            elif state is ViewState.INSPECT:
                self.table.next(len(self.tasks))
        elif key == "r":
            if state is ViewState.TASK_ADD:
                self.add_task(self.picker.select_random())
        elif key == "enter":
            if state is ViewState.TASK_ADD:
                self.add_task(self.picker.select())
            elif state is ViewState.INSPECT:
                self.cancel_selected_task()
        elif key == "f1":
            if state is ViewState.MONITOR:
                self.view_state = ViewState.TASK_ADD
                self.picker.regen()
        elif key == "f2":
            if state is ViewState.MONITOR:
                self.view_state = ViewState.INSPECT
                if self.tasks and self.table.selected is None:
                    self.table.selected = 0
        elif key == "f3":
            self.exit()
        elif key == "esc":
            if state is not ViewState.MONITOR:
                self.view_state = ViewState.MONITOR
                self.table.selected = None

    def process_messages(self) -> None:
        """Apply every report the tasks have sent since the last call."""
        while True:
            try:
                message = self.inbox.get_nowait()
            except queue.Empty:
                return
            match message:
                case RunReport(task_id=task_id, progress=progress):
                    logger.debug("got a run report from %s with progress %s%%", task_id, progress)
                    self.tasks[task_id].progress = progress
                    self.tasks[task_id].status = TaskStatus.RUNNING
                case SleepReport(task_id=task_id):
                    logger.debug("got a sleep report from %s", task_id)
                    self.tasks[task_id].status = TaskStatus.SLEEPING
                case LaborDispute(task_id=task_id):
                    logger.info("task %s refuses to work at this time", task_id)
                    self.tasks[task_id].status = TaskStatus.ON_STRIKE
                case Reconciliation(task_id=task_id):
                    logger.info("task %s has reached an agreement, and will resume", task_id)
                    self.tasks[task_id].status = TaskStatus.RUNNING
                case CancelReport(task_id=task_id):
                    logger.info("task %s has sent word of termination", task_id)
                    self.tasks[task_id].status = TaskStatus.CANCELED

    def reap_finished(self) -> None:
        """Collect the results of tasks whose workers have ended."""
        for task in self.tasks:
            handle = task.check_done()
            if handle is None:
                continue
            try:
                result = handle.result()
            except Exception as exc:
                logger.error("problem finishing allegedly completed task %s: %r", task.task_id, exc)
                continue
            if result is None:
                logger.warning(
                    "task %s finished after termination and reported no sum", task.task_id
                )
            else:
                logger.info("task %s finished and reported: %s", task.task_id, result)

    def add_task(self, candidate: CandidateTask | None) -> None:
        """Launch a task for the candidate and return to the monitor view."""
        if candidate is None:
            logger.error("attempted to select task from picker but got none")
            return
        logger.info("selected candidate task %s", candidate)
        self.view_state = ViewState.MONITOR
        self.tasks.append(
            Task.spawn(candidate, self.inbox, self.broadcast.subscribe(), self.tasks_created)
        )
        self.tasks_created += 1

    def cancel_selected_task(self) -> None:
        """Ask the task under the table cursor to stop."""
        selected = self.table.selected
        if selected is not None and 0 <= selected < len(self.tasks):
            task = self.tasks[selected]
            try:
                self.broadcast.send(PleaseStop(task.task_id))
            except SendError as exc:
                logger.error("problem sending cancel message to task %s: %s", task.task_id, exc)
            else:
                logger.info("sent a cancel message to task %s", task.task_id)
                task.pending_cancel = True
            return
        logger.warning("tried to send a cancel message to a task that doesn't exist")

    def exit(self) -> None:
        """Tell every task to stop and leave the main loop."""
        try:
            self.broadcast.send(EveryoneStop())
        except SendError as exc:
            logger.error("problem sending cancel message to all tasks: %s", exc)
        else:
            logger.info("sent cancel message to all tasks")
        self.should_exit = True

    def title(self) -> str:
        """Title shown in the top border for the current view."""
        if self.view_state is ViewState.INSPECT:
            return "  clustrctrl ━ [inspect] "
        if self.view_state is ViewState.TASK_ADD:
            return "  clustrctrl ━ [task add] "
        return "  clustrctrl  "

    def controls(self) -> str:
        """Key help shown in the bottom border for the current view."""
        if self.view_state is ViewState.TASK_ADD:
            return " Back <ESC> Quit <F3> "
        if self.view_state is ViewState.INSPECT:
            return " Back <ESC> Terminate Task <ENTER> Quit <F3> "
        return " New Task <F1> Manage Tasks <F2> Quit <F3> "

    def _compose(self, width: int, height: int) -> list[str]:
        if width < 2 or height < 2:
            return [" " * max(width, 0) for _ in range(max(height, 0))]
        inner_w = max(width - 6, 0)
        inner_h = max(height - 7, 0)

        content: list[str] = []
        table_h = min(len(self.tasks) + 6, inner_h)
        if table_h >= 2 and inner_w >= 4:
            content += _fit_block(self.table.render_lines(self.tasks, inner_w), table_h)
        else:
            content += [""] * table_h

        log_h = inner_h - table_h
        if log_h >= 2 and inner_w >= 2:
            visible = max(log_h - 4, 0)
            history = self.messages.lines()
            tail = history[len(history) - visible :] if visible else []
            padded = [""] + [" " + line[: max(inner_w - 4, 0)] for line in tail]
            content += _box(padded, inner_w, log_h, " Message Stream ", _PLAIN)

        body = [""] + ["  " + line for line in content]
        lines = _box(body, width, height, self.title(), _THICK, self.controls())

        if self.view_state is ViewState.TASK_ADD:
            modal_w = int(width * 0.85)
            modal_h = FETCH_AMOUNT + 2
            if modal_w >= 2:
                x = (width - modal_w) // 2
                y = max((height - modal_h) // 2, 0)
                logger.debug("rendering modal at x=%s y=%s", x, y)
                for offset, row in enumerate(self.picker.render_lines(modal_w)):
                    if y + offset >= height:
                        break
                    old = lines[y + offset]
                    lines[y + offset] = old[:x] + row + old[x + modal_w :]
        return lines

    def render(self, window: Any) -> list[str]:
        """Draw the whole screen into a curses window; returns the lines drawn."""
        height, width = window.getmaxyx()
        lines = self._compose(width, height)
        window.erase()
        for row, line in enumerate(lines):
            try:
                window.addstr(row, 0, line)
            except _CURSES_ERRORS:
                pass  # writing the bottom-right cell moves the cursor off screen
        window.refresh()
        return lines

    def run(self, window: Any) -> None:
        """Main loop: draw, wait briefly for a key, then apply task reports."""
        if curses is None:
            raise RuntimeError("curses is not available on this platform")
        window.keypad(True)
        window.timeout(_POLL_MS)
        try:
            curses.curs_set(0)
            curses.set_escdelay(25)
        except curses.error:
            pass
        while not self.should_exit:
            self.render(window)
            key = _key_name(window.getch())
            if key is not None:
                self.handle_key(key)
            self.process_messages()
            self.reap_finished()


def _key_name(code: int) -> str | None:
    if code == -1 or curses is None:
        return None
    named = {
        curses.KEY_UP: "up",
        curses.KEY_DOWN: "down",
        curses.KEY_ENTER: "enter",
        curses.KEY_F1: "f1",
        curses.KEY_F2: "f2",
        curses.KEY_F3: "f3",
        10: "enter",
        13: "enter",
        27: "esc",
    }
    if code in named:
        return named[code]
    if 32 <= code < 127:
        return chr(code)
    return None


def main(argv: list[str] | None = None) -> int:
    """Start the terminal interface."""
    parser = argparse.ArgumentParser(
        prog="clustrctrl", description="Launch and watch pretend cluster jobs."
    )
    parser.add_argument("--log-file", default="log", help="file that receives the full log")
    args = parser.parse_args(argv)
    if curses is None:
        parser.error("curses is not available on this platform")

    app = App()
    package_logger = logging.getLogger("clustrctrl")
    package_logger.setLevel(logging.DEBUG)
    file_handler = logging.FileHandler(args.log_file)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s")
    )
    app.messages.setLevel(logging.INFO)
    package_logger.addHandler(file_handler)
    package_logger.addHandler(app.messages)
    try:
        logger.info("starting application")
        try:
            curses.wrapper(app.run)
        except Exception as exc:
            logger.error("error during app termination %s", exc)
        logger.info("application terminated. restoring")
    finally:
        package_logger.removeHandler(app.messages)
        package_logger.removeHandler(file_handler)
        file_handler.close()
    print("Goodbye! Any active tasks sent exit signals. This will take time to be heeded.")
    return 0