"""
State Machine for the Sync Engine.

This module provides THE authoritative logic for per-row and per-record
state transitions during pull and push.

    new -> classified -> {created | updated} -> synced
    any non-terminal state -> errored (row-scoped, terminal)

Architecture Note:
    - Pure domain logic - no I/O, no database calls
    - An errored row never affects sibling rows
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class RowState(str, Enum):
    """Lifecycle state of one row (pull) or record (push)."""

    NEW = "new"
    CLASSIFIED = "classified"
    CREATED = "created"
    UPDATED = "updated"
    SYNCED = "synced"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (RowState.SYNCED, RowState.ERRORED)


ALLOWED_TRANSITIONS: dict[RowState, frozenset[RowState]] = {
    RowState.NEW: frozenset({RowState.CLASSIFIED, RowState.ERRORED}),
    RowState.CLASSIFIED: frozenset(
        {RowState.CREATED, RowState.UPDATED, RowState.ERRORED}
    ),
    RowState.CREATED: frozenset({RowState.SYNCED, RowState.ERRORED}),
    RowState.UPDATED: frozenset({RowState.SYNCED, RowState.ERRORED}),
    RowState.SYNCED: frozenset(),
    RowState.ERRORED: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    """Raised on a transition the lifecycle does not allow."""


def can_transition(current: RowState, target: RowState) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


@dataclass
class RowProgress:
    """
    Tracks one row/record through the lifecycle.

    Attributes:
        key: Row number (pull) or record id (push)
        state: Current state
        error: Message once errored
        history: States visited, in order
    """

    key: int
    state: RowState = RowState.NEW
    error: str | None = None
    history: list[RowState] = field(default_factory=lambda: [RowState.NEW])

    def advance(self, target: RowState) -> None:
        if not can_transition(self.state, target):
            raise InvalidTransitionError(
                f"{self.key}: cannot move from {self.state.value} to {target.value}"
            )
        self.state = target
        self.history.append(target)

    def fail(self, message: str) -> None:
        """Move to errored. A terminal row stays where it is."""
        if self.state.is_terminal:
            return
        self.advance(RowState.ERRORED)
        self.error = message

    def complete(self) -> None:
        self.advance(RowState.SYNCED)

    @property
    def is_errored(self) -> bool:
        return self.state is RowState.ERRORED


class RowTracker:
    """Collection of RowProgress for one sync run."""

    def __init__(self) -> None:
        self._rows: dict[int, RowProgress] = {}

    def start(self, key: int) -> RowProgress:
        progress = RowProgress(key=key)
        self._rows[key] = progress
        return progress

    def get(self, key: int) -> RowProgress:
        return self._rows[key]

    def in_state(self, state: RowState) -> list[RowProgress]:
        return [p for p in self._rows.values() if p.state is state]

    def counts(self) -> dict[RowState, int]:
        result = {state: 0 for state in RowState}
        for progress in self._rows.values():
            result[progress.state] += 1
        return result

    def __len__(self) -> int:
        return len(self._rows)
