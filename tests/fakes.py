# tests/fakes.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Any

from workflow_tracker.core.ports import KeyValueStore, Record


class FakeClock:
    """Settable clock passed as `clock=` to the services."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeSuggestionClient:
    """
    Deterministic SuggestionClient for unit tests.

    - Captures calls for assertions
    - Returns a predefined text
    """

    def __init__(self, next_text: str = "ok") -> None:
        self.next_text = next_text
        self.prompts: list[str] = []
        self.summaries: list[list[str]] = []

    def suggest(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.next_text

    def summarize(self, report_texts: list[str]) -> str:
        self.summaries.append(list(report_texts))
        return self.next_text


@dataclass(slots=True)
class FailingMailer:
    """Mailer whose transport is always down."""

    attempts: int = 0

    def send(self, *, to: str, subject: str, body: str) -> None:
        self.attempts += 1
        raise OSError("SMTP connection refused")


@dataclass(slots=True)
class FailingWritesStore:
    """
    Wraps a store and fails every `set` on the listed collections.

    Reads and other writes go to the inner store untouched.
    """

    inner: KeyValueStore
    fail_on: frozenset[str] = frozenset()
    failed: int = 0

    def has(self, collection: str) -> bool:
        return self.inner.has(collection)

    def get(self, collection: str) -> list[Record]:
        return self.inner.get(collection)

    def set(self, collection: str, records: list[Record]) -> None:
        if collection in self.fail_on:
            self.failed += 1
            raise RuntimeError(f"disk full while writing {collection}")
        self.inner.set(collection, records)


@dataclass(slots=True)
class FakeCompletions:
    """
    Stand-in for `OpenAI().chat.completions`.

    `outcomes` is consumed per call: an Exception is raised, a string is
    returned as the message content.
    """

    outcomes: list[Any] = field(default_factory=list)
    models: list[str] = field(default_factory=list)

    def create(self, *, model: str, messages: Iterable[dict[str, str]], **kwargs: Any) -> Any:
        self.models.append(model)
        outcome = self.outcomes.pop(0) if self.outcomes else "ok"
        if isinstance(outcome, Exception):
            raise outcome
        message = SimpleNamespace(content=outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(*outcomes: Any) -> tuple[Any, FakeCompletions]:
    completions = FakeCompletions(outcomes=list(outcomes))
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions
