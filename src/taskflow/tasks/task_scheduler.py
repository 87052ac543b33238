# src/taskflow/tasks/task_scheduler.py

"""
Reminder scheduler.

A small polling loop that, on every tick:
- loads notification settings (disabled -> no-op),
- derives each task's reminder state from (task, now, settings),
- delivers one "upcoming" reminder per task and due date (guarded by reminder_sent),
- delivers one batched "overdue" notification, subject to the overdue policy.

Delivery mechanics belong to the gateway, not the scheduler.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..core.clock import SystemClock
from ..core.errors import DeliveryFailedError, NotFoundError, StorageUnavailableError
from ..core.ports import Clock, NotificationGateway, NotificationSettingsRepo, Permission, TaskRepo
from .overdue_policy import OverduePolicy, RepeatEveryTick
from .task_models import NotificationSettings, ReminderState, Task

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5 * 60

UPCOMING_TITLE = "TaskFlow - Lembrete de Tarefa"
OVERDUE_TITLE = "TaskFlow - Tarefas Vencidas"
OVERDUE_TAG = "overdue-tasks"


@dataclass(slots=True, frozen=True)
class ReminderNotification:
    """What the scheduler wants shown; the gateway decides how."""

    title: str
    body: str
    tag: str
    task_id: str | None = None


@dataclass(slots=True, frozen=True)
class TickFailure:
    stage: str  # "deliver" | "mark_reminder_sent" | "overdue" | "evaluate"
    error: str
    task_id: str | None = None


@dataclass(slots=True)
class TickReport:
    at: datetime | None = None
    skipped: bool = False
    enabled: bool = False
    permission: Permission | None = None
    reminders: list[ReminderNotification] = field(default_factory=list)
    delivered: list[ReminderNotification] = field(default_factory=list)
    overdue_count: int = 0
    overdue_notified: bool = False
    failures: list[TickFailure] = field(default_factory=list)


def classify(task: Task, now: datetime, settings: NotificationSettings) -> ReminderState:
    """Pure derivation of a task's reminder state."""
    if task.completed or task.due_date is None:
        return ReminderState.DORMANT

    due = task.due_date
    if due < now:
        return ReminderState.OVERDUE

    window_end = now + timedelta(minutes=max(0, settings.reminder_minutes))
    if now < due <= window_end and not task.reminder_sent:
        return ReminderState.DUE_SOON

    return ReminderState.PENDING


def build_upcoming(task: Task, now: datetime) -> ReminderNotification:
    minutes_left = 0
    if task.due_date is not None:
        minutes_left = math.ceil((task.due_date - now).total_seconds() / 60)

    if minutes_left > 0:
        body = f'"{task.title}" vence em {minutes_left} minutos'
    else:
        body = f'"{task.title}" está vencida!'
    return ReminderNotification(title=UPCOMING_TITLE, body=body, tag=f"task-{task.id}", task_id=task.id)


def build_overdue(count: int) -> ReminderNotification:
    plural = "s" if count > 1 else ""
    body = f"Você tem {count} tarefa{plural} vencida{plural}!"
    return ReminderNotification(title=OVERDUE_TITLE, body=body, tag=OVERDUE_TAG)


class ReminderScheduler:
    """
    Periodic reminder evaluation with injected collaborators.

    tick() can be driven manually (tests, /check command); run()/start() loop it.
    Ticks never overlap: a tick that finds another one running is skipped, not queued.
    """

    def __init__(
        self,
        repository: TaskRepo,
        settings_store: NotificationSettingsRepo,
        gateway: NotificationGateway,
        *,
        clock: Clock | None = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        overdue_policy: OverduePolicy | None = None,
    ) -> None:
        self._repo = repository
        self._settings_store = settings_store
        self._gateway = gateway
        self._clock = clock or SystemClock()
        self._interval = float(interval_seconds)
        self._overdue_policy = overdue_policy or RepeatEveryTick()

        self._permission: Permission | None = None
        self._tick_lock = threading.Lock()
        self._handle: asyncio.Task[None] | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._handle is not None and not self._handle.done()

    # ---- permission ----

    def permission(self) -> Permission:
        """Ask the gateway once; the answer is cached for the scheduler's lifetime."""
        if self._permission is None:
            try:
                self._permission = Permission(self._gateway.request_permission())
            except Exception:
                logger.exception("request_permission failed; treating notifications as unsupported")
                self._permission = Permission.UNSUPPORTED
            logger.info("Notification permission: %s", self._permission.value)
        return self._permission

    def reset_permission(self) -> None:
        self._permission = None

    # ---- evaluation ----

    def tick(self) -> TickReport:
        if not self._tick_lock.acquire(blocking=False):
            logger.debug("Reminder tick already running; skipping")
            return TickReport(skipped=True)
        try:
            return self._evaluate()
        finally:
            self._tick_lock.release()

    def _evaluate(self) -> TickReport:
        now = self._clock.now()
        settings = self._settings_store.load()
        report = TickReport(at=now, enabled=settings.enabled)
        if not settings.enabled:
            return report

        report.permission = self.permission()
        can_deliver = report.permission == Permission.GRANTED

        overdue_ids: list[str] = []
        for task in self._repo.tasks():
            try:
                state = classify(task, now, settings)
                if state == ReminderState.DUE_SOON:
                    self._remind(task, now, can_deliver, report)
                elif state == ReminderState.OVERDUE:
                    overdue_ids.append(task.id)
            except Exception as e:
                logger.exception("Reminder evaluation failed task_id=%s", task.id)
                report.failures.append(TickFailure(stage="evaluate", error=str(e), task_id=task.id))

        report.overdue_count = len(overdue_ids)
        if self._overdue_policy.should_notify(overdue_ids, now):
            self._notify_overdue(overdue_ids, now, can_deliver, report)

        logger.debug(
            "Reminder tick reminders=%d delivered=%d overdue=%d failures=%d",
            len(report.reminders),
            len(report.delivered),
            report.overdue_count,
            len(report.failures),
        )
        return report

    def _deliver(self, note: ReminderNotification) -> None:
        self._gateway.deliver(note.title, note.body, note.tag)

    def _remind(self, task: Task, now: datetime, can_deliver: bool, report: TickReport) -> None:
        note = build_upcoming(task, now)
        report.reminders.append(note)

        if can_deliver:
            try:
                self._deliver(note)
            except DeliveryFailedError as e:
                # Not marked: the next tick tries again.
                logger.warning("Reminder delivery failed task_id=%s: %s", task.id, e)
                report.failures.append(TickFailure(stage="deliver", error=str(e), task_id=task.id))
                return
            report.delivered.append(note)
            logger.info("Reminder sent task_id=%s: %s", task.id, note.body)
        else:
            logger.info("Reminder not shown (permission=%s) task_id=%s: %s", report.permission, task.id, note.body)

        try:
            marked = self._repo.mark_reminder_sent(task.id, task.due_date)
        except (StorageUnavailableError, NotFoundError) as e:
            logger.warning("mark_reminder_sent failed task_id=%s: %s", task.id, e)
            report.failures.append(TickFailure(stage="mark_reminder_sent", error=str(e), task_id=task.id))
            return
        if not marked:
            logger.info("Task %s was rescheduled during delivery; its new due date stays armed", task.id)

    def _notify_overdue(self, overdue_ids: list[str], now: datetime, can_deliver: bool, report: TickReport) -> None:
        note = build_overdue(len(overdue_ids))
        report.reminders.append(note)
        if not can_deliver:
            logger.info("Overdue notification not shown (permission=%s): %s", report.permission, note.body)
            self._overdue_policy.record(overdue_ids, now)
            return
        try:
            self._deliver(note)
        except DeliveryFailedError as e:
            logger.warning("Overdue notification delivery failed: %s", e)
            report.failures.append(TickFailure(stage="overdue", error=str(e)))
            return
        self._overdue_policy.record(overdue_ids, now)
        report.delivered.append(note)
        report.overdue_notified = True
        logger.info("Overdue notification sent: %s", note.body)

    # ---- lifecycle ----

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """
        One immediate tick, then one tick every interval_seconds.

        Ends when stop_event is set; otherwise cancel the coroutine/task to stop it.
        """
        sleep_s = max(0.01, self._interval)
        logger.info("Reminder scheduler started (interval=%ss)", sleep_s)

        try:
            while True:
                try:
                    self.tick()
                except Exception:
                    logger.exception("Reminder tick crashed")

                if stop_event is None:
                    await asyncio.sleep(sleep_s)
                    continue
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=sleep_s)
                    break
                except TimeoutError:
                    continue
        finally:
            logger.info("Reminder scheduler stopped")

    def start(self) -> asyncio.Task[None]:
        """Start run() on the current event loop and keep the handle for stop()."""
        if self._handle is not None and not self._handle.done():
            return self._handle
        loop = asyncio.get_running_loop()
        self._handle = loop.create_task(self.run(), name="reminder-scheduler")
        return self._handle

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


@dataclass(slots=True)
class SchedulerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Scheduler loop already closed.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_scheduler_in_background(scheduler: ReminderScheduler) -> SchedulerBackgroundRunner | None:
    """
    Run the scheduler in a daemon thread with its own event loop
    (the console REPL blocks the main thread on input()).
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(scheduler.run(stop_event))
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="reminder-scheduler", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Scheduler thread did not initialize properly.")
        return None

    logger.info("Scheduler background thread started.")
    return SchedulerBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
