from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Pattern, Sequence, Tuple
import logging
import re

LOG = logging.getLogger("parser")

# "Error detected while processing function A[2]..B:" / "... while compiling ...:"
HEADER_RE = re.compile(r"^Error detected while (?P<verb>processing|compiling) (?P<chain>.*):\s*$")
# "line   12:" - Vim right-aligns the number
LOCATION_RE = re.compile(r"^\s*line\s+(?P<line>\d+):")
# Sources living under a process fd table cannot be opened again
PSEUDO_FILE_RE = re.compile(r"/(?:proc/(?:self|\d+)|dev)/fd/")
# Custom location marker a script may put into its own error message
DEFAULT_LINE_MARKER = re.compile(r"\(at line (?P<line>\d+)\)")
# name[line]
TOKEN_RE = re.compile(r"^(?P<name>.*?)\[(?P<line>[^\]]*)\]$")

CHAIN_DELIMITER = ".."
TOKEN_QUALIFIERS = ("function ", "script ")


class ErrorKind(Enum):
    RUNTIME = "runtime"
    COMPILE_TIME = "compile_time"


@dataclass(frozen=True)
class FrameRef:
    """One unresolved entry of a call chain, e.g. ``FuncA[12]``."""
    name: str
    local_line: int
    text: str

    @property
    def is_file_reference(self) -> bool:
        """A path or file name rather than a routine name."""
        return "/" in self.name or "\\" in self.name or "." in self.name


@dataclass(frozen=True)
class ErrorEvent:
    """One error burst: its message and the frames of its call chain."""
    message: str
    frames: Tuple[FrameRef, ...] = field(default_factory=tuple)
    kind: ErrorKind = ErrorKind.RUNTIME


def _to_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def parse_token(token: str) -> FrameRef:
    """Parse a single ``name[line]`` token, dropping ``function ``/``script `` qualifiers."""
    token = token.strip()
    for qualifier in TOKEN_QUALIFIERS:
        if token.startswith(qualifier):
            token = token[len(qualifier):].strip()
            break

    # Frames left at line 0 are skipped by the resolver
    match = TOKEN_RE.match(token)
    if not match:
        return FrameRef(name=token, local_line=0, text=token)
    return FrameRef(name=match.group("name"), local_line=_to_int(match.group("line")), text=token)


def split_chain(chain: str, local_line: int) -> List[FrameRef]:
    """Split a header chain into frames, in reverse of the order the header lists them.

    The failing routine's own line is not part of the header, so it is
    appended to the last token before splitting.
    """
    tokens = f"{chain}[{local_line}]".split(CHAIN_DELIMITER)
    frames = [parse_token(token) for token in tokens if token.strip()]
    frames.reverse()
    return frames


class TraceExtractor:
    """Finds the most recent error burst(s) in a Vim ``:messages`` log."""

    MIN_RECORD_LINES = 3

    def __init__(self, line_marker: Optional[Pattern] = None):
        self.line_marker = line_marker or DEFAULT_LINE_MARKER

    def normalize(self, lines: Sequence[str]) -> List[str]:
        """Strip line endings and drop blank lines."""
        return [line.rstrip("\r\n") for line in lines if line.strip()]

    def is_header(self, lines: List[str], pos: int) -> bool:
        """True when ``pos`` starts a header/location/message triplet."""
        if pos + 2 >= len(lines):
            return False
        header = HEADER_RE.match(lines[pos])
        if not header or PSEUDO_FILE_RE.search(header.group("chain")):
            return False
        return LOCATION_RE.match(lines[pos + 1]) is not None

    def parse_event(self, lines: List[str], pos: int) -> ErrorEvent:
        header = HEADER_RE.match(lines[pos])
        message = lines[pos + 2]

        kind = ErrorKind.COMPILE_TIME if header.group("verb") == "compiling" else ErrorKind.RUNTIME

        marker = self.line_marker.search(message)
        if marker:
            local_line = _to_int(marker.group("line"))
        else:
            local_line = _to_int(LOCATION_RE.match(lines[pos + 1]).group("line"))

        frames = split_chain(header.group("chain"), local_line)
        return ErrorEvent(message=message, frames=tuple(frames), kind=kind)

    def extract(self, lines: Sequence[str], max_distance: int) -> List[ErrorEvent]:
        """Return the error events of the newest burst(s), oldest first.

        Scans backward from the newest line. Once an error has been seen,
        scanning stops as soon as the current position is more than
        ``max_distance`` lines older than the last recorded header.
        """
        lines = self.normalize(lines)
        if len(lines) < self.MIN_RECORD_LINES:
            return []

        events: List[ErrorEvent] = []
        last_error: Optional[int] = None

        for pos in range(len(lines) - 1, -1, -1):
            if last_error is not None and last_error - pos > max_distance:
                break
            if not self.is_header(lines, pos):
                continue
            events.append(self.parse_event(lines, pos))
            last_error = pos

        events.reverse()
        LOG.debug("Extracted %d error event(s) from %d line(s)", len(events), len(lines))
        return events
