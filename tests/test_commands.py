# tests/test_commands.py

from __future__ import annotations

from workflow_tracker.cli.commands import CommandRegistry, registry
from workflow_tracker.errors import ValidationError


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x y") == "h2:x,y"
    assert reg.handle(state, "/AA") == "h2:"
    assert reg.handle(state, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_workflow_errors_become_one_line_replies(state) -> None:
    reg = CommandRegistry()

    def broken(state, args):
        raise ValidationError("title is required")

    reg.register("broken", broken, "broken")
    assert reg.handle(state, "/broken") == "Error: title is required"


def test_console_session_flow(state, mailer) -> None:
    assert registry.handle(state, "/tasks").startswith("Error: Not signed in")

    reply = registry.handle(state, "/login admin admin123")
    assert "change your password" in reply
    assert "must change your password" in registry.handle(state, "/tasks")

    assert registry.handle(state, "/passwd admin123 n3w-pass") == "Password updated successfully."
    assert registry.handle(state, "/tasks") == "No tasks found based on your filters."

    created = registry.handle(state, "/new staff1 2024-06-20 Write user guide | Cover login and reports")
    assert created.startswith("Task created:")
    assert "Write user guide" in created
    assert mailer.outbox[-1].to == "a.nguyen@company.com"

    listing = registry.handle(state, "/tasks guide")
    assert "Nguyen Van A" in listing
    assert "To Do" in listing

    registry.handle(state, "/logout")
    assert state.session is None
    assert state.auth.resume() is None


def test_console_reporting_flow(state, staff1, make_task) -> None:
    task = make_task()
    state.session = staff1

    reply = registry.handle(state, f"/report {task.id} 100% Finished | none left")
    assert reply.startswith("Report submitted successfully!")
    assert "Completed 100%" in reply

    history = registry.handle(state, f"/reports {task.id}")
    assert "Finished" in history
    assert "(issue: none left)" in history

    assert registry.handle(state, f"/report {task.id} 100 Again").startswith("Error:")
    assert "Percent must be" in registry.handle(state, f"/report {task.id} lots Again")


def test_console_admin_commands(state, admin) -> None:
    state.session = admin

    assert registry.handle(state, "/projects new Website Redesign | Corporate site").startswith("Project created")
    assert "Website Redesign - Corporate site" in registry.handle(state, "/projects")

    assert "created successfully" in registry.handle(state, "/users add staff4 pw STAFF d@company.com Pham Van D")
    assert "@staff4 Pham Van D" in registry.handle(state, "/users")
    assert registry.handle(state, "/users add staff5 pw BOSS e@company.com E").startswith("Unknown role")

    assert "Notifications: OFF" in registry.handle(state, "/email off")
    assert "Sender: ops@company.com" in registry.handle(state, "/email sender ops@company.com")
    assert "Success" in registry.handle(state, "/email test")

    assert "Nguyen Van A: 0% done" in registry.handle(state, "/stats")
    assert registry.handle(state, "/team") == "No assigned tasks yet."


def test_help_lists_commands(state) -> None:
    text = registry.handle(state, "/help")
    assert "/login" in text
    assert "/report" in text
