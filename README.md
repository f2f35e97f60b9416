# clustrctrl

A small terminal dashboard that pretends to run a cluster. You pick tasks from a
menu and each one starts on its own background thread. A task does some busy
work, sleeps for a random number of seconds, and reports its progress as it
goes. The dashboard lists every task in a table with its status and progress.
Below the table, a message stream shows the log.

The interface is drawn with the standard library's `curses` module, so it needs
a platform that has `curses`.

## Installing

```
pip install .
```

To install the test dependencies as well:

```
pip install ".[test]"
```

## Running

```
clustrctrl
```

Options:

- `--log-file PATH` sets the file that receives the full log, with debug
  messages and thread names. The default is a file named `log` in the current
  directory.

The message stream on screen shows messages at info level and above.

The screen is redrawn about every half second. When you quit, every task is
sent a stop order and the program prints a goodbye line. Tasks check for stop
orders only between their work and sleep blocks, so a task may take some
seconds to stop.

### Monitor view (the main screen)

| Key    | Action                          |
|--------|---------------------------------|
| `F1`   | Open the new-task menu          |
| `F2`   | Manage tasks (inspect view)     |
| `F3`   | Quit                            |

### Task add view

Each time the menu opens, it draws six fresh candidates from a fixed pool of
sixteen. The cursor stops at the first and last entries and does not wrap.

| Key            | Action                            |
|----------------|-----------------------------------|
| `j` / `Down`   | Move the cursor down              |
| `k` / `Up`     | Move the cursor up                |
| `Enter`        | Start the highlighted task        |
| `r`            | Start a random task from the menu |
| `Esc`          | Back to the monitor view          |
| `F3`           | Quit                              |

Starting a task returns you to the monitor view.

### Inspect view

| Key            | Action                                   |
|----------------|------------------------------------------|
| `j` / `Down`   | Select the next task (wraps around)      |
| `k` / `Up`     | Select the previous task (wraps around)  |
| `Enter`        | Ask the selected task to stop            |
| `Esc`          | Back to the monitor view                 |
| `F3`           | Quit                                     |

When you ask a task to stop, its **Halt?** column shows `Req`. When the task
confirms, the column shows `Done` and the status changes to `Cancelled`.

## Task statuses

| Status      | Meaning                                  |
|-------------|------------------------------------------|
| `???`       | Just started, nothing reported yet       |
| `Running`   | Doing work                               |
| `Sleeping`  | Resting between work blocks              |
| `Strike!`   | Refusing to work for now                 |
| `Done`      | Worker has ended                         |
| `Cancelled` | Stopped on request                       |

The dashboard handles `LaborDispute` and `Reconciliation` messages, which
produce the `Strike!` and `Running` statuses. No built-in task sends them,
though, so `Strike!` never appears in normal use.

## Using the pieces from Python

- `clustrctrl.picker`: `CandidateTask`, the `COOL_TASKS` pool and `TaskPicker`,
  the candidate menu. `TaskPicker` has `next`, `previous`, `select`,
  `select_random`, `regen` and `render_lines`.
- `clustrctrl.table`: `TaskTable`, which has `next` and `previous` with
  wrapping and `render_lines`. The module also has `format_row` and
  `abort_label`.
- `clustrctrl.tasks`: `Task` (with `Task.spawn` and `check_done`),
  `TaskStatus`, the message classes, `Broadcast` and its `Subscription`,
  `run_dummy_task` and `check_for_term_message`.
- `clustrctrl.app`: `App`, which holds the application state and key handling;
  `MessageStream`, a logging handler that keeps recent lines; and `main`.

### Broadcast

`Broadcast` holds up to 16 messages. A subscriber that falls behind gets
`Lagged` from `try_recv`. After `close()`, a subscriber reads what is left and
then gets `ChannelClosed`. `send` raises `SendError` if the broadcast is closed
or has no subscribers.

```python
from clustrctrl.tasks import Broadcast, PleaseStop

channel = Broadcast()
sub = channel.subscribe()
channel.send(PleaseStop(3))
print(sub.try_recv())   # PleaseStop(task_id=3)
print(sub.try_recv())   # None
```

### Driving the app without a terminal

`App.handle_key` takes key names: `"k"`, `"j"`, `"r"`, `"up"`, `"down"`,
`"enter"`, `"f1"`, `"f2"`, `"f3"` and `"esc"`.

```python
import random

from clustrctrl.app import App

app = App(random.Random(42))
app.handle_key("f1")      # open the task menu
print(app.title())        # "  clustrctrl ━ [task add] "
print(app.picker.select())
app.handle_key("esc")     # back to the monitor view
```

Pressing `"enter"` in the task menu starts a real background task.
`App.process_messages` applies the task's reports, and `App.reap_finished`
collects tasks whose workers have ended.

### Running a task body directly

`run_dummy_task` takes its random generator, its sleep function and its work
size as arguments. Any object with a `put` method can receive its reports.

```python
import queue
import random

from clustrctrl.tasks import Broadcast, run_dummy_task

reports = queue.Queue()
channel = Broadcast()
result = run_dummy_task(0, reports, channel.subscribe(), random.Random(1), lambda s: None, work_size=10)
print(result)
```

## Running the tests

```
pytest
```