"""Matcher protocol - a pure predicate over one event."""

from __future__ import annotations

from typing import Protocol

from ibc_poller.models.events import Event


class Matcher(Protocol):
    """Recognizes the event a poll is waiting for.

    Must be side-effect free; the poller may evaluate it any number of times.
    """

    def matches(self, event: Event) -> bool:
        """True if ``event`` is the one being waited for."""
        ...
