"""Worker tasks, their status, and the channels used to talk to them."""

from __future__ import annotations

import enum
import logging
import random
import threading
import time
import weakref
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Protocol, Union

from clustrctrl.picker import CandidateTask

logger = logging.getLogger(__name__)

MAX_SLEEPYTIME = 30
WORK_SIZE = 11_333_777
BROADCAST_CAPACITY = 16


class TaskStatus(enum.Enum):
    RUNNING = "Running"
    SLEEPING = "Sleeping"
    ON_STRIKE = "Strike!"
    KNOWN_UNKNOWN = "???"
    FINISHED = "Done"
    CANCELED = "Cancelled"

    def __str__(self) -> str:
        return self.value


# Messages sent from tasks to the application.


@dataclass(frozen=True)
class LaborDispute:
    """Conditions were untenable and the task refuses to work."""

    task_id: int


@dataclass(frozen=True)
class Reconciliation:
    """Work resumes after a bargain was struck."""

    task_id: int


@dataclass(frozen=True)
class RunReport:
    """Progress update, in percent from 0 to 100."""

    task_id: int
    progress: int


@dataclass(frozen=True)
class SleepReport:
    task_id: int


@dataclass(frozen=True)
class CancelReport:
    task_id: int


TaskTxMsg = Union[LaborDispute, Reconciliation, RunReport, SleepReport, CancelReport]


# Messages broadcast from the application to every task.


@dataclass(frozen=True)
class PleaseStop:
    """Asks the task with this id to stop."""

    task_id: int


@dataclass(frozen=True)
class EveryoneStop:
    """Asks every task to stop."""


TaskRxMsg = Union[PleaseStop, EveryoneStop]


class Lagged(Exception):
    """The subscriber fell behind and missed ``skipped`` messages."""

    def __init__(self, skipped: int) -> None:
        super().__init__(f"lagged behind by {skipped} messages")
        self.skipped = skipped


class ChannelClosed(Exception):
    """The broadcast was closed and nothing is left to read."""


class SendError(Exception):
    """A broadcast could not be delivered."""


class Sender(Protocol):
    def put(self, item: TaskTxMsg) -> None: ...


class Broadcast:
    """Bounded multi-subscriber channel; slow subscribers skip the oldest messages."""

    def __init__(self, capacity: int = BROADCAST_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._lock = threading.Lock()
        self._buffer: deque[TaskRxMsg] = deque(maxlen=capacity)
        self._next_seq = 0
        self._closed = False
        self._subscribers: weakref.WeakSet[Subscription] = weakref.WeakSet()

    @property
    def _head_seq(self) -> int:
        return self._next_seq - len(self._buffer)

    def subscribe(self) -> Subscription:
        """A new subscriber that sees messages sent from now on."""
        with self._lock:
            sub = Subscription(self, self._next_seq)
            self._subscribers.add(sub)
            return sub

    def send(self, message: TaskRxMsg) -> int:
        """Send to every subscriber; returns how many there are."""
        with self._lock:
            if self._closed:
                raise SendError("broadcast is closed")
            receivers = len(self._subscribers)
            if receivers == 0:
                raise SendError("no subscribers")
            self._buffer.append(message)
            self._next_seq += 1
            return receivers

    def close(self) -> None:
        """Stop sending; subscribers drain what is left then see ChannelClosed."""
        with self._lock:
            self._closed = True


class Subscription:
    """One reader of a Broadcast."""

    def __init__(self, channel: Broadcast, position: int) -> None:
        self._channel = channel
        self._position = position

    def try_recv(self) -> TaskRxMsg | None:
        """Next message, or None if nothing is waiting.

        Raises Lagged if messages were missed and ChannelClosed once the
        broadcast is closed and drained.
        """
        channel = self._channel
        with channel._lock:
            head = channel._head_seq
            if self._position < head:
                skipped = head - self._position
                self._position = head
                raise Lagged(skipped)
            if self._position < channel._next_seq:
                message = channel._buffer[self._position - head]
                self._position += 1
                return message
            if channel._closed:
                raise ChannelClosed()
            return None

    def _detach(self) -> None:
        with self._channel._lock:
            self._channel._subscribers.discard(self)


def check_for_term_message(task_id: int, rx: Subscription, tx: Sender) -> bool:
    """Drain pending orders; True if this task has been told to stop."""
    while True:
        try:
            message = rx.try_recv()
        except Lagged as lag:
            logger.warning("task %s reports lag of %s messages", task_id, lag.skipped)
            continue
        except ChannelClosed:
            logger.warning("id %s: received no message, but App is gone(?). terminating", task_id)
            return True
        if message is None:
            return False
        if isinstance(message, EveryoneStop):
            logger.info("id %s: received terminate-all message, joining the club", task_id)
            return True
        if isinstance(message, PleaseStop) and message.task_id == task_id:
            logger.debug("received strong suggestion to terminate, doing so")
            tx.put(CancelReport(task_id))
            return True


def _busy_work(rng: random.Random, total: int, work_size: int) -> int:
    for _ in range(work_size):
        total += abs(rng.randint(-(2**31), 2**31 - 1)) % 500
    return total


def run_dummy_task(
    task_id: int,
    tx: Sender,
    rx: Subscription,
    rng: random.Random,
    sleep: Callable[[float], None],
    work_size: int = WORK_SIZE,
) -> int | None:
    """Pretend to work for a random time; the sum on completion, None if stopped."""
    time_to_sleep = rng.randrange(2, MAX_SLEEPYTIME)
    remaining = time_to_sleep
    logger.info("task %s: total sleep scheduled: %s sec", task_id, time_to_sleep)
    total = 0
    while remaining > 0:
        if check_for_term_message(task_id, rx, tx):
            return None
        progress = int((time_to_sleep - remaining) / time_to_sleep * 100)
        tx.put(RunReport(task_id, progress))
        total = _busy_work(rng, total, work_size)
        microsleep = rng.randrange(1, remaining + 1)
        remaining -= microsleep
        if check_for_term_message(task_id, rx, tx):
            return None
        logger.info(
            "id %s: sleep block for %s sec with %s sec remaining after",
            task_id,
            microsleep,
            remaining,
        )
        tx.put(SleepReport(task_id))
        sleep(microsleep)
    logger.debug("task %s done with sum %s", task_id, total)
    return total


@dataclass
class Task:
    """A launched task as the application sees it."""

    task_id: int
    name: str
    description: str
    status: TaskStatus = TaskStatus.KNOWN_UNKNOWN
    start: datetime = field(default_factory=datetime.now)
    end: datetime | None = None
    progress: int = 0
    pending_cancel: bool = False
    _handle: Future | None = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def spawn(cls, candidate: CandidateTask, tx: Sender, rx: Subscription, task_id: int) -> Task:
        """Create the task and start its worker thread."""
        task = cls(task_id, candidate.name, candidate.description)
        future: Future = Future()
        task._handle = future

        def worker() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                try:
                    result = run_dummy_task(task_id, tx, rx, random.Random(), time.sleep)
                finally:
                    rx._detach()
            except BaseException as exc:  # handed to whoever collects the result
                future.set_exception(exc)
            else:
                future.set_result(result)

        threading.Thread(target=worker, name=f"task-{task_id}", daemon=True).start()
        return task

    def check_done(self) -> Future | None:
        """If the worker has finished, mark the task done and hand over its future once."""
        if self._handle is None or not self._handle.done():
            return None
        if self.status is not TaskStatus.CANCELED:
            # A cancel report usually arrives first; keep it.
            self.status = TaskStatus.FINISHED
        self.end = datetime.now()
        self.progress = 100
        handle, self._handle = self._handle, None
        return handle