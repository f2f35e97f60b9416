import logging
import random
import time

import pytest

from clustrctrl.app import App, MessageStream, ViewState
from clustrctrl.picker import COOL_TASKS
from clustrctrl.tasks import (
    CancelReport,
    EveryoneStop,
    LaborDispute,
    PleaseStop,
    Reconciliation,
    RunReport,
    SleepReport,
    Task,
    TaskStatus,
)


class FakeWindow:
    def __init__(self, height, width):
        self.size = (height, width)
        self.rows = {}

    def getmaxyx(self):
        return self.size

    def erase(self):
        self.rows.clear()

    def addstr(self, y, x, text):
        self.rows[y] = text

    def refresh(self):
        pass


def make_app():
    return App(random.Random(7))


def with_tasks(app, count):
    for i in range(count):
        app.tasks.append(Task(i, COOL_TASKS[i].name, COOL_TASKS[i].description))
        app.tasks_created += 1
    return app


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_initial_state():
    app = make_app()
    assert app.view_state is ViewState.MONITOR
    assert app.title() == "  clustrctrl  "
    assert "<F1>" in app.controls()
    assert app.should_exit is False


def test_f1_opens_picker_and_esc_returns():
    app = make_app()
    app.handle_key("f1")
    assert app.view_state is ViewState.TASK_ADD
    assert app.title() == "  clustrctrl ━ [task add] "
    app.handle_key("esc")
    assert app.view_state is ViewState.MONITOR
    assert app.table.selected is None


def test_f1_ignored_in_inspect():
    app = make_app()
    app.handle_key("f2")
    app.handle_key("f1")
    assert app.view_state is ViewState.INSPECT
    assert app.title() == "  clustrctrl ━ [inspect] "


def test_f2_selects_first_row_when_none_selected():
    app = with_tasks(make_app(), 2)
    app.table.selected = None
    app.handle_key("f2")
    assert app.table.selected == 0


def test_picker_cursor_moves_in_task_add():
    app = make_app()
    app.handle_key("f1")
    start = app.picker.selected
    app.handle_key("j")
    assert app.picker.selected == start + 1
    app.handle_key("up")
    assert app.picker.selected == start


def test_table_cursor_wraps_in_inspect():
    app = with_tasks(make_app(), 3)
    app.handle_key("f2")
    app.handle_key("k")
    assert app.table.selected == 2
    app.handle_key("down")
    assert app.table.selected == 0


def test_movement_ignored_in_monitor():
    app = with_tasks(make_app(), 3)
    before = (app.picker.selected, app.table.selected)
    app.handle_key("j")
    app.handle_key("k")
    assert (app.picker.selected, app.table.selected) == before


def test_process_messages_updates_status():
    app = with_tasks(make_app(), 1)
    task = app.tasks[0]
    app.inbox.put(RunReport(0, 40))
    app.process_messages()
    assert (task.status, task.progress) == (TaskStatus.RUNNING, 40)
    app.inbox.put(SleepReport(0))
    app.process_messages()
    assert task.status is TaskStatus.SLEEPING
    app.inbox.put(LaborDispute(0))
    app.process_messages()
    assert task.status is TaskStatus.ON_STRIKE
    app.inbox.put(Reconciliation(0))
    app.process_messages()
    assert task.status is TaskStatus.RUNNING
    app.inbox.put(CancelReport(0))
    app.process_messages()
    assert task.status is TaskStatus.CANCELED
    assert app.inbox.empty()


def test_process_messages_drains_in_order():
    app = with_tasks(make_app(), 2)
    for message in (RunReport(0, 10), RunReport(1, 20), SleepReport(0)):
        app.inbox.put(message)
    app.process_messages()
    assert app.tasks[0].status is TaskStatus.SLEEPING
    assert app.tasks[1].progress == 20


def test_cancel_selected_task_broadcasts():
    app = with_tasks(make_app(), 2)
    listener = app.broadcast.subscribe()
    app.handle_key("f2")
    app.handle_key("j")
    app.handle_key("enter")
    assert app.tasks[1].pending_cancel is True
    assert app.tasks[0].pending_cancel is False
    assert listener.try_recv() == PleaseStop(1)


def test_cancel_without_listeners_leaves_task_alone():
    app = with_tasks(make_app(), 1)
    app.table.selected = 0
    app.cancel_selected_task()
    assert app.tasks[0].pending_cancel is False


def test_cancel_with_no_task_warns(caplog):
    app = make_app()
    with caplog.at_level(logging.WARNING, logger="clustrctrl.app"):
        app.cancel_selected_task()
    assert "doesn't exist" in caplog.text


def test_exit_broadcasts_everyone_stop():
    app = make_app()
    listener = app.broadcast.subscribe()
    app.handle_key("f3")
    assert app.should_exit is True
    assert listener.try_recv() == EveryoneStop()


def test_exit_without_listeners_still_exits():
    app = make_app()
    app.exit()
    assert app.should_exit is True


def test_add_task_none_changes_nothing():
    app = make_app()
    app.handle_key("f1")
    app.add_task(None)
    assert app.tasks == []
    assert app.tasks_created == 0
    assert app.view_state is ViewState.TASK_ADD


def test_enter_adds_selected_candidate_and_reaps():
    app = make_app()
    app.broadcast.close()  # workers stop at their first check
    app.handle_key("f1")
    chosen = app.picker.select()
    app.handle_key("enter")
    assert app.view_state is ViewState.MONITOR
    assert [t.name for t in app.tasks] == [chosen.name]
    assert app.tasks[0].task_id == 0

    def finished():
        app.reap_finished()
        return app.tasks[0].status is TaskStatus.FINISHED

    assert wait_until(finished)
    assert app.tasks[0].progress == 100
    assert app.tasks[0].end is not None


def test_random_pick_gives_increasing_ids():
    app = make_app()
    app.broadcast.close()
    for _ in range(2):
        app.handle_key("f1")
        app.handle_key("r")
    assert [t.task_id for t in app.tasks] == [0, 1]
    assert app.tasks_created == 2
    names = {c.name for c in COOL_TASKS}
    assert all(t.name in names for t in app.tasks)


def test_message_stream_keeps_latest():
    stream = MessageStream(2)
    for text in ("first", "second", "third"):
        stream.emit(logging.makeLogRecord({"msg": text, "levelname": "INFO"}))
    lines = stream.lines()
    assert len(lines) == 2
    assert lines[0].endswith("|second")
    assert lines[-1].endswith("INFO|third")


def test_message_stream_rejects_zero_capacity():
    with pytest.raises(ValueError):
        MessageStream(0)


def test_render_monitor_screen():
    app = with_tasks(make_app(), 2)
    window = FakeWindow(40, 150)
    lines = app.render(window)
    assert len(lines) == 40
    assert all(len(line) == 150 for line in lines)
    assert lines[0].startswith("┏  clustrctrl  ")
    assert "<F2>" in lines[-1]
    assert window.rows[0] == lines[0]
    assert any("Task Table" in line for line in lines)
    assert any(COOL_TASKS[1].name in line for line in lines)


def test_render_shows_log_messages():
    app = make_app()
    app.messages.emit(logging.makeLogRecord({"msg": "hello stream", "levelname": "INFO"}))
    lines = app.render(FakeWindow(40, 120))
    assert any("Message Stream" in line for line in lines)
    assert any("hello stream" in line for line in lines)


def test_render_task_add_overlays_picker():
    app = make_app()
    app.handle_key("f1")
    lines = app.render(FakeWindow(40, 120))
    assert all(len(line) == 120 for line in lines)
    assert any(" New Task " in line for line in lines)
    assert any(str(app.picker.items[0]) in line for line in lines)


def test_render_tiny_window():
    lines = make_app().render(FakeWindow(1, 1))
    assert lines == [" "]