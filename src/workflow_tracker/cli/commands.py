# src/workflow_tracker/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import cast

from ..core.models import EmailConfig, Task, TaskStatus, UserRole
from ..core.ports import USERS
from ..core.state import AppState
from ..errors import AuthenticationRequiredError, ValidationError, WorkflowError
from ..identity.session import Session
from ..stats.insights import UserSummary
from ..tasks.task_registry import TaskFilter

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /tasks, ...)."""

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
        Expected failures (WorkflowError) become a one-line error reply.
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
        except WorkflowError as e:
            logger.debug("Command /%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _session(state: AppState) -> Session:
    if state.session is None:
        raise AuthenticationRequiredError("Not signed in. Use /login <username> <password>.")
    return state.session


def _split_pipe(args: list[str]) -> tuple[str, str]:
    """'a b | c d' -> ('a b', 'c d')."""
    text = " ".join(args)
    head, _, tail = text.partition("|")
    return head.strip(), tail.strip()


def _user_label(state: AppState, user_id: str) -> str:
    for rec in state.store.get(USERS):
        if str(rec.get("id")) == user_id:
            return str(rec.get("name") or rec.get("username") or user_id)
    return f"{user_id} (deleted)"


def _task_line(state: AppState, task: Task) -> str:
    return (
        f"[{task.id}] {task.title} | {task.status.label} {task.progress}% | "
        f"{task.priority.value} | due {task.deadline.date().isoformat()} | "
        f"{_user_label(state, task.assigned_to_id)}"
    )


def _summary_line(s: UserSummary) -> str:
    st = s.stats
    return (
        f"{s.user.name}: {st.completion_rate}% done | total {st.total} | completed {st.completed} | "
        f"in progress {st.in_progress} | due soon {st.due_soon} | overdue {st.overdue}"
    )


# ---- identity ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_login(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /login <username> <password>"
    state.session = state.auth.login(args[0], args[1])
    user = state.session.user
    if user.first_login:
        return f"Welcome, {user.name}. You must change your password first: /passwd <old> <new>"
    return f"Welcome, {user.name} ({user.role.value})."


def cmd_logout(state: AppState, args: list[str]) -> str:
    state.auth.logout()
    state.session = None
    return "Signed out."


def cmd_passwd(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /passwd <old> <new>"
    state.session = state.auth.change_password(state.session, args[0], args[1])
    return "Password updated successfully."


def cmd_whoami(state: AppState, args: list[str]) -> str:
    user = state.auth.require_active(state.session)
    return f"{user.name} <{user.email}> @{user.username} ({user.role.value})"


# ---- tasks ----


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks                      -> every task you can see
    /tasks status=IN_PROGRESS   -> status filter
    /tasks project=<id>         -> project filter
    /tasks <words>              -> title search
    """
    status: TaskStatus | None = None
    project_id: str | None = None
    words: list[str] = []
    for arg in args:
        key, sep, value = arg.partition("=")
        if sep and key.lower() == "status":
            try:
                status = TaskStatus(value.upper())
            except ValueError as e:
                raise ValidationError(f"Unknown status: {value}") from e
        elif sep and key.lower() == "project":
            project_id = value
        else:
            words.append(arg)

    flt = TaskFilter(status=status, search=" ".join(words) or None, project_id=project_id)
    tasks = state.tasks.list_tasks(_session(state), flt)
    if not tasks:
        return "No tasks found based on your filters."
    return "\n".join(_task_line(state, t) for t in tasks)


def cmd_task(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /task <id>"
    task = state.tasks.get_task(_session(state), args[0])
    collaborators = ", ".join(_user_label(state, c) for c in task.collaborator_ids) or "none"
    lines = [
        _task_line(state, task),
        f"  {task.description}",
        f"  start {task.start_date.date().isoformat()} | project {task.project_id or 'ad-hoc'} | v{task.version}",
        f"  collaborators: {collaborators}",
    ]
    if task.notes:
        lines.append(f"  notes: {task.notes}")
    return "\n".join(lines)


def cmd_new(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/new <assignee_username> <deadline YYYY-MM-DD> <title> | <description>"""
    if len(args) < 3:
        return "Usage: /new <assignee_username> <deadline YYYY-MM-DD> <title> | <description>"
    session = _session(state)
    assignee = next((u for u in state.users.list_users(session) if u.username == args[0]), None)
    if assignee is None:
        return f"Unknown user: {args[0]}"
    title, description = _split_pipe(args[2:])
    task = state.tasks.create_task(
        session,
        title=title,
        description=description,
        assigned_to_id=assignee.id,
        deadline=args[1],
    )
    if emit is not None:
        emit(f"Notification queued for {assignee.email or assignee.username}.")
    return f"Task created: {_task_line(state, task)}"


def cmd_status(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /status <task_id> <TODO|IN_PROGRESS|COMPLETED|CANCELLED>"
    task = state.tasks.set_status(_session(state), args[0], args[1])
    return f"Status updated: {_task_line(state, task)}"


def cmd_note(state: AppState, args: list[str]) -> str:
    if len(args) < 1:
        return "Usage: /note <task_id> <text>"
    session = _session(state)
    task = state.tasks.get_task(session, args[0])
    saved = state.tasks.update_task(session, replace(task, notes=" ".join(args[1:]) or None))
    return f"Notes saved (v{saved.version})."


def cmd_suggest(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit is not None:
        emit("[AI] Drafting a description...")
    return state.tasks.suggest_details(_session(state), " ".join(args))


# ---- reports ----


def cmd_report(state: AppState, args: list[str]) -> str:
    """/report <task_id> <percent> <content> [| issues]"""
    if len(args) < 3:
        return "Usage: /report <task_id> <percent> <content> [| issues]"
    try:
        percentage = int(args[1].rstrip("%"))
    except ValueError:
        return "Percent must be a whole number between 0 and 100."
    content, issues = _split_pipe(args[2:])
    state.reports.submit_report(
        _session(state),
        args[0],
        content=content,
        percentage=percentage,
        issues=issues or None,
    )
    task = state.tasks.get_task(_session(state), args[0])
    return f"Report submitted successfully! {_task_line(state, task)}"


def cmd_reports(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /reports <task_id>"
    reports = state.reports.list_reports(_session(state), args[0])
    if not reports:
        return "No reports yet."
    lines = []
    for r in reports:
        line = f"{r.created_at:%Y-%m-%d %H:%M} {_user_label(state, r.user_id)} {r.percentage_completed}%: {r.content}"
        if r.issues:
            line += f" (issue: {r.issues})"
        lines.append(line)
    return "\n".join(lines)


def cmd_summary(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /summary <task_id>"
    if emit is not None:
        emit("[AI] Analyzing...")
    return state.reports.summarize_reports(_session(state), args[0])


# ---- statistics ----


def cmd_stats(state: AppState, args: list[str]) -> str:
    cards = state.insights.dashboard(_session(state))
    if not cards:
        return "No staff members found to display."
    return "\n".join(_summary_line(c) for c in cards)


def cmd_team(state: AppState, args: list[str]) -> str:
    rows = state.insights.team_report(_session(state))
    if not rows:
        return "No assigned tasks yet."
    return "\n".join(_summary_line(r) for r in rows)


# ---- projects / users / settings ----


def cmd_projects(state: AppState, args: list[str]) -> str:
    """
    /projects                           -> list
    /projects new <name> [| description] -> create
    """
    session = _session(state)
    if args and args[0].lower() == "new":
        name, description = _split_pipe(args[1:])
        project = state.projects.create_project(session, name, description or None)
        return f"Project created: [{project.id}] {project.name}"
    projects = state.projects.list_projects(session)
    if not projects:
        return "No projects."
    return "\n".join(f"[{p.id}] {p.name}" + (f" - {p.description}" if p.description else "") for p in projects)


def cmd_users(state: AppState, args: list[str]) -> str:
    """
    /users                                              -> list
    /users add <username> <password> <STAFF|ADMIN> <email> <name...>
    /users del <user_id>
    """
    session = _session(state)
    if args and args[0].lower() == "add":
        if len(args) < 6:
            return "Usage: /users add <username> <password> <STAFF|ADMIN> <email> <name...>"
        try:
            role = UserRole(args[3].upper())
        except ValueError:
            return f"Unknown role: {args[3]}"
        user = state.users.create_user(
            session,
            username=args[1],
            password=args[2],
            role=role,
            email=args[4],
            name=" ".join(args[5:]),
        )
        return f"User {user.username} created successfully."
    if args and args[0].lower() in ("del", "delete"):
        if len(args) != 2:
            return "Usage: /users del <user_id>"
        state.users.delete_user(session, args[1])
        return f"User {args[1]} deleted."
    users = state.users.list_users(session)
    return "\n".join(f"[{u.id}] @{u.username} {u.name} <{u.email}> {u.role.value}" for u in users)


def cmd_email(state: AppState, args: list[str]) -> str:
    """
    /email                    -> show settings
    /email on | /email off    -> toggle notifications
    /email sender <address>   -> set sender address
    /email test               -> simulate a test message
    """
    session = _session(state)
    cfg = state.email_settings.get_email_config(session)
    sub = args[0].lower() if args else "show"
    if sub in ("on", "off"):
        cfg = state.email_settings.save_email_config(session, replace(cfg, enable_notifications=(sub == "on")))
    elif sub == "sender" and len(args) == 2:
        cfg = state.email_settings.save_email_config(session, replace(cfg, sender_email=args[1]))
    elif sub == "test":
        return state.email_settings.send_test(session)
    elif sub != "show":
        return "Usage: /email [show|on|off|test|sender <address>]"
    return _format_email(cfg)


def _format_email(cfg: EmailConfig) -> str:
    return (
        "Email settings:\n"
        f"  SMTP: {cfg.smtp_host}:{cfg.smtp_port}\n"
        f"  Sender: {cfg.sender_email or '(not set)'}\n"
        f"  Notifications: {'ON' if cfg.enable_notifications else 'OFF'}"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("login", cmd_login, help_text="Sign in: /login <username> <password>.")
registry.register("logout", cmd_logout, help_text="Sign out.")
registry.register("passwd", cmd_passwd, help_text="Change password: /passwd <old> <new>.")
registry.register("whoami", cmd_whoami, help_text="Show the signed-in user.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [status=X] [project=ID] [search].")
registry.register("task", cmd_task, help_text="Show one task: /task <id>.")
registry.register("new", cmd_new, help_text="Create a task: /new <user> <YYYY-MM-DD> <title> | <description>.")
registry.register("status", cmd_status, help_text="Set task status: /status <id> <STATUS>.")
registry.register("note", cmd_note, help_text="Set task notes: /note <id> <text>.")
registry.register("suggest", cmd_suggest, help_text="AI description draft: /suggest <title>.")
registry.register("report", cmd_report, help_text="Submit progress: /report <id> <percent> <text> [| issues].")
registry.register("reports", cmd_reports, help_text="Report history: /reports <id>.")
registry.register("summary", cmd_summary, help_text="AI summary of reports: /summary <id>.")
registry.register("stats", cmd_stats, help_text="Dashboard statistics.", aliases=["dashboard"])
registry.register("team", cmd_team, help_text="Team report (admin).")
registry.register("projects", cmd_projects, help_text="Projects: /projects [new <name> | <description>].")
registry.register("users", cmd_users, help_text="Users: /users [add ... | del <id>].")
registry.register("email", cmd_email, help_text="Email settings: /email [on|off|test|sender <addr>].")
