# src/workflow_tracker/errors.py

"""
Error taxonomy shared by every service.

Services validate first and write last, so any of these leaving a service call
means no state was changed by that call.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for expected, user-facing failures."""


class ValidationError(WorkflowError):
    """A required field is missing or a value is out of range."""


class AuthorizationError(WorkflowError):
    """The acting user is not allowed to perform the operation."""


class AuthenticationRequiredError(AuthorizationError):
    """No session, or the session user no longer exists."""


class PasswordChangeRequiredError(AuthorizationError):
    """The first-login password rotation has not been done yet."""


class NotFoundError(WorkflowError):
    """A referenced user, task or project does not exist."""


class CredentialError(WorkflowError):
    """Login or password-change credential mismatch."""


class TerminalStateError(WorkflowError):
    """A report was submitted against a completed task."""


class ConflictError(WorkflowError):
    """An update was made against a stale task version."""
