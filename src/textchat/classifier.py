"""
Message stream classification.

Each message looks only at the one before it:
- a divider sits between two messages whose time gap exceeds the threshold
- a message is grouped with the previous one when sender alias and direction
  match and no divider separates them
- everything else starts a new run (standalone)

Timestamps only feed the divider check, so clock skew between peers never
changes grouping. Because nothing looks forward, appending or replacing the
message at index i can only change classifications from i onwards.
"""

from datetime import timedelta
from typing import Optional, Sequence

from textchat.config import DEFAULT_DIVIDER_THRESHOLD
from textchat.models.message import Classification, TextMessage


class DisplayRow:
    __slots__ = ("kind", "message", "index")

    def __init__(self, kind: Classification, message: Optional[TextMessage] = None, index: Optional[int] = None):
        self.kind = kind
        self.message = message
        self.index = index

    def __repr__(self) -> str:
        return f"DisplayRow(kind={self.kind.value!r}, index={self.index!r})"


def needs_divider(
    previous: TextMessage, current: TextMessage, threshold: timedelta = DEFAULT_DIVIDER_THRESHOLD,
) -> bool:
    return current.timestamp - previous.timestamp > threshold


def classify_at(
    history: Sequence[TextMessage], index: int, threshold: timedelta = DEFAULT_DIVIDER_THRESHOLD,
) -> Classification:
    if index == 0:
        return Classification.STANDALONE
    previous, current = history[index - 1], history[index]
    if needs_divider(previous, current, threshold):
        return Classification.STANDALONE
    if previous.sender_alias == current.sender_alias and previous.direction == current.direction:
        return Classification.GROUPED_WITH_PREVIOUS
    return Classification.STANDALONE


def classify(
    history: Sequence[TextMessage],
    start: int = 0,
    stop: Optional[int] = None,
    threshold: timedelta = DEFAULT_DIVIDER_THRESHOLD,
) -> list[Classification]:
    """Classify history[start:stop]."""
    stop = len(history) if stop is None else min(stop, len(history))
    return [classify_at(history, i, threshold) for i in range(max(start, 0), stop)]


def dividers(history: Sequence[TextMessage], threshold: timedelta = DEFAULT_DIVIDER_THRESHOLD) -> list[bool]:
    """One flag per adjacent pair: dividers(h)[i] is True when a divider renders before h[i + 1]."""
    return [needs_divider(history[i - 1], history[i], threshold) for i in range(1, len(history))]


def display_rows(
    history: Sequence[TextMessage],
    threshold: timedelta = DEFAULT_DIVIDER_THRESHOLD,
    trailing_divider: bool = False,
) -> list[DisplayRow]:
    rows: list[DisplayRow] = []
    for i, message in enumerate(history):
        if i > 0 and needs_divider(history[i - 1], message, threshold):
            rows.append(DisplayRow(Classification.DIVIDER))
        rows.append(DisplayRow(classify_at(history, i, threshold), message, i))
    if trailing_divider and history:
        rows.append(DisplayRow(Classification.DIVIDER))
    return rows
