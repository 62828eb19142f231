from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence, Union
import logging

from .parser import ErrorEvent, ErrorKind
from .resolver import FrameResolver

LOG = logging.getLogger("builder")

TITLE = "vim-stacktrace"


@dataclass(frozen=True)
class HeaderEntry:
    """The message of one error event; not navigable."""
    message: str
    kind: ErrorKind = ErrorKind.RUNTIME


@dataclass(frozen=True)
class LocationEntry:
    """A resolved frame the user can jump to."""
    index: int
    label: str
    file_path: str
    line: int


ResultEntry = Union[HeaderEntry, LocationEntry]


class TraceStatus(Enum):
    NO_ERROR = "no_error"        # empty log or no matching header
    UNRESOLVED = "unresolved"    # error found, nothing navigable
    OK = "ok"


@dataclass
class TraceResult:
    """Everything a presenter needs: entries, title and terminal state."""
    status: TraceStatus
    entries: List[ResultEntry] = field(default_factory=list)
    events: List[ErrorEvent] = field(default_factory=list)
    title: str = TITLE

    @property
    def locations(self) -> List[LocationEntry]:
        return [entry for entry in self.entries if isinstance(entry, LocationEntry)]


class ResultBuilder:
    """Flattens error events into an ordered list of result entries."""

    def __init__(self, resolver: FrameResolver):
        self.resolver = resolver

    def build_event(self, event: ErrorEvent) -> List[ResultEntry]:
        entries: List[ResultEntry] = [HeaderEntry(event.message, event.kind)]
        index = 0
        for frame in event.frames:
            resolved = self.resolver.resolve(frame, index)
            if resolved is None:
                continue
            entries.append(LocationEntry(resolved.display_index, resolved.label,
                                         resolved.file_path, resolved.absolute_line))
            index += 1
        return entries

    def build(self, events: Sequence[ErrorEvent]) -> List[ResultEntry]:
        entries: List[ResultEntry] = []
        for event in events:
            entries.extend(self.build_event(event))
        return entries

    def build_result(self, events: Sequence[ErrorEvent]) -> TraceResult:
        """Build entries and classify the outcome."""
        events = list(events)
        if not events:
            return TraceResult(TraceStatus.NO_ERROR)

        entries = self.build(events)
        result = TraceResult(TraceStatus.OK, entries, events, f"{TITLE}: {events[-1].message}")
        if not result.locations:
            result.status = TraceStatus.UNRESOLVED
        LOG.info("%d event(s), %d navigable entries", len(events), len(result.locations))
        return result
