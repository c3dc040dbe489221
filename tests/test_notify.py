# tests/test_notify.py

from __future__ import annotations

import pytest

from workflow_tracker.core.models import EmailConfig
from workflow_tracker.errors import AuthorizationError
from workflow_tracker.notify.mailer import EmailSettingsService

from .fakes import FailingMailer


def test_email_settings_default_and_save(state, admin) -> None:
    cfg = state.email_settings.get_email_config(admin)
    assert cfg == EmailConfig()
    assert cfg.smtp_host == "smtp.gmail.com"
    assert cfg.smtp_port == "587"

    saved = state.email_settings.save_email_config(
        admin, EmailConfig(sender_email="ops@company.com", sender_password="app-pass")
    )
    assert state.email_settings.get_email_config(admin) == saved


def test_email_settings_are_admin_only(state, staff1) -> None:
    with pytest.raises(AuthorizationError):
        state.email_settings.get_email_config(staff1)
    with pytest.raises(AuthorizationError):
        state.email_settings.save_email_config(staff1, EmailConfig())


def test_send_test_message(state, admin, mailer) -> None:
    assert state.email_settings.send_test(admin) == "Sender email is not configured."

    state.email_settings.save_email_config(admin, EmailConfig(sender_email="ops@company.com"))
    assert "Success" in state.email_settings.send_test(admin)
    assert mailer.outbox[-1].to == "ops@company.com"


def test_send_test_reports_transport_failure(state, admin) -> None:
    state.email_settings.save_email_config(admin, EmailConfig(sender_email="ops@company.com"))
    service = EmailSettingsService(state.store, state.auth, state.locks, FailingMailer())
    assert service.send_test(admin).startswith("Test email failed")
