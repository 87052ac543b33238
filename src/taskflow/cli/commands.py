# src/taskflow/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import cast

from ..core.errors import NotFoundError, StorageUnavailableError, ValidationError
from ..core.ports import Permission
from ..core.state import AppState
from ..tasks.task_api import filter_tasks, parse_due_date, parse_priority, priority_label, task_stats
from ..tasks.task_models import Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        User-facing errors (validation, unknown id, storage failure) become reply text.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except ValidationError as e:
            return f"Invalid input: {e}"
        except NotFoundError as e:
            return f"No task with id {e.task_id}. Use /list to see ids."
        except StorageUnavailableError:
            logger.exception("Storage failure while handling /%s", name)
            return "Could not save the change (storage unavailable). Nothing was modified."

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def format_task(task: Task) -> str:
    mark = "x" if task.completed else " "
    line = f"[{mark}] {task.id}  ({priority_label(task.priority)}) {task.title}"
    if task.description:
        line += f" - {task.description}"
    if task.due_date is not None:
        line += f"  (vence {task.due_date.astimezone().strftime('%d/%m/%Y %H:%M')})"
    return line


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list            -> all tasks (most recent first)
    /list pending    -> not completed
    /list completed  -> completed
    """
    which = args[0] if args else "all"
    tasks = filter_tasks(state.tasks.tasks(), which)
    if not tasks:
        return "No tasks." if which == "all" else f"No {which} tasks."
    return "\n".join(format_task(t) for t in tasks)


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title> [| description] [| low|medium|high] [| due]

    due: +30m, +2h, +1d, DD/MM/YYYY HH:MM, or ISO-8601.
    """
    fields = [f.strip() for f in " ".join(args).split("|")]
    if len(fields) > 4:
        raise ValidationError("too many fields; use /add title | description | priority | due")
    fields += [""] * (4 - len(fields))
    title, description, raw_priority, raw_due = fields

    due_date = parse_due_date(raw_due, state.clock.now()) if raw_due else None
    task = state.tasks.create(
        title,
        description=description,
        priority=parse_priority(raw_priority),
        due_date=due_date,
    )
    return f"Added: {format_task(task)}"


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <id>"
    task = state.tasks.toggle_completed(args[0])
    status = "completed" if task.completed else "pending again"
    return f"Task {task.id} marked {status}."


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <id>"
    state.tasks.delete(args[0])
    return f"Task {args[0]} deleted."


def cmd_due(state: AppState, args: list[str]) -> str:
    """
    /due <id> <when>   -> set a new due date (re-arms the reminder)
    /due <id> none     -> clear the due date
    """
    if len(args) < 2:
        return "Usage: /due <id> <when|none>"
    task_id, raw = args[0], " ".join(args[1:])
    due_date = None if raw.lower() == "none" else parse_due_date(raw, state.clock.now())
    task = state.tasks.reschedule(task_id, due_date)
    return f"Updated: {format_task(task)}"


def cmd_stats(state: AppState, args: list[str]) -> str:
    s = task_stats(state.tasks.tasks())
    return (
        "Stats:\n"
        f"  Total: {s.total}\n"
        f"  Completed: {s.completed}\n"
        f"  Pending: {s.pending}\n"
        f"  Progress: {s.progress:.0f}%"
    )


def cmd_notify(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /notify            -> show status
    /notify on|off     -> enable/disable reminders
    /notify minutes N  -> reminder lead time
    """
    current = state.notification_settings.load()
    if not args:
        return (
            f"Notifications are {'ON' if current.enabled else 'OFF'}, "
            f"reminding {current.reminder_minutes} minutes before the due date."
        )

    arg = args[0].lower()

    if arg in ("on", "1", "true", "yes"):
        permission = state.scheduler.permission()
        state.notification_settings.save(replace(current, enabled=True))
        if emit and permission != Permission.GRANTED:
            with contextlib.suppress(Exception):
                emit(f"[NOTIFY] Notifications are {permission.value} on this platform; reminders will only be logged.")
        return "Notifications enabled."

    if arg in ("off", "0", "false", "no"):
        state.notification_settings.save(replace(current, enabled=False))
        return "Notifications disabled."

    if arg in ("minutes", "min"):
        if len(args) < 2:
            return "Usage: /notify minutes <N>"
        try:
            minutes = int(args[1])
        except ValueError:
            raise ValidationError(f"not a number: {args[1]!r}") from None
        state.notification_settings.save(replace(current, reminder_minutes=minutes))
        return f"Reminders will fire {minutes} minutes before the due date."

    return "Usage: /notify on | /notify off | /notify minutes <N>"


def cmd_check(state: AppState, args: list[str]) -> str:
    report = state.scheduler.tick()
    if report.skipped:
        return "A reminder check is already running."
    if not report.enabled:
        return "Notifications are off (/notify on)."
    lines = [
        f"Reminders: {len(report.reminders)}, delivered: {len(report.delivered)}, "
        f"overdue tasks: {report.overdue_count}"
    ]
    for failure in report.failures:
        lines.append(f"  failed {failure.stage} {failure.task_id or ''}: {failure.error}".rstrip())
    return "\n".join(lines)


def cmd_whoami(state: AppState, args: list[str]) -> str:
    return f"Device id: {state.device_id}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="List tasks: /list [all|pending|completed].", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add title | description | priority | due.")
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.", aliases=["toggle"])
registry.register("del", cmd_delete, help_text="Delete a task: /del <id>.", aliases=["rm"])
registry.register("due", cmd_due, help_text="Change due date: /due <id> <when|none>.")
registry.register("stats", cmd_stats, help_text="Show completion progress.")
registry.register("notify", cmd_notify, help_text="Reminders: /notify on | off | minutes N.")
registry.register("check", cmd_check, help_text="Run a reminder check now.")
registry.register("whoami", cmd_whoami, help_text="Show this installation's device id.")
