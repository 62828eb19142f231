from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Pattern, Tuple
import logging
import os
import re

from .parser import FrameRef
from .sources import FUNCTION_KEYWORD, DefinitionLookup

LOG = logging.getLogger("resolver")

# "    Last set from ~/.vim/plugin/foo.vim line 12"
LAST_SET_RE = re.compile(r"Last set from (?P<path>.+?)(?: line (?P<line>\d+))?\s*$")

# Prefixes a script-local name carries in the log, and the scopes it may be
# declared with in its script.
LOGGED_PRIVATE_PREFIXES = (re.compile(r"^<SNR>\d+_"), re.compile(r"^s:"), re.compile(r"^<SID>", re.IGNORECASE))
DECLARED_PRIVATE_SCOPES = ("s:", "<SID>", "<sid>")


class RoutineKind(Enum):
    NAMED = "named"
    NUMBERED = "numbered"


@dataclass(frozen=True)
class RoutineRef:
    """A routine name tagged with how it has to be looked up."""
    kind: RoutineKind
    name: str

    @classmethod
    def from_name(cls, name: str) -> "RoutineRef":
        bare = name.strip("{}")
        if bare.isdigit():
            return cls(RoutineKind.NUMBERED, bare)
        return cls(RoutineKind.NAMED, name)

    def describe(self, lookup: DefinitionLookup) -> List[str]:
        if self.kind is RoutineKind.NUMBERED:
            return lookup.describe_numbered(self.name)
        return lookup.describe(self.name)


@dataclass(frozen=True)
class ResolvedFrame:
    """A frame pinned to a file and an absolute line."""
    display_index: int
    label: str
    file_path: str
    absolute_line: int


def short_name(name: str) -> Tuple[str, bool]:
    """Strip a private-scope prefix; returns (short name, was script-local)."""
    for prefix in LOGGED_PRIVATE_PREFIXES:
        stripped = prefix.sub("", name, count=1)
        if stripped != name:
            return stripped, True
    return name, False


def declaration_pattern(name: str) -> Pattern:
    """Regex matching the line that declares ``name`` in a Vim script."""
    short, script_local = short_name(name)
    if script_local:
        scope = "(?:" + "|".join(re.escape(s) for s in DECLARED_PRIVATE_SCOPES) + ")"
    else:
        scope = "(?:g:)?"
    return re.compile(FUNCTION_KEYWORD + scope + re.escape(short) + r"\s*\(")


class FrameResolver:
    """Resolves frames to file locations through a DefinitionLookup."""

    def __init__(self, lookup: DefinitionLookup):
        self.lookup = lookup

    def _parse_definition(self, description: List[str]) -> Optional[Tuple[str, Optional[int]]]:
        match = LAST_SET_RE.search(description[1])
        if not match:
            return None
        path = os.path.abspath(os.path.expanduser(match.group("path").strip()))
        line = int(match.group("line")) if match.group("line") else None
        return path, line

    def _scan_declaration(self, file_path: str, name: str) -> Optional[int]:
        """1-based line of the first declaration of ``name`` in ``file_path``."""
        pattern = declaration_pattern(name)
        line_num = 0
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                for line in f:
                    line_num += 1
                    if pattern.match(line):
                        return line_num
        except OSError as e:
            LOG.debug("Cannot read %s: %s", file_path, e)
        return None

    def resolve(self, frame: FrameRef, index: int) -> Optional[ResolvedFrame]:
        """Resolve one frame, or return None when it cannot be located."""
        if frame.local_line < 1:
            LOG.debug("Frame %r has no usable line number", frame.text)
            return None

        if frame.is_file_reference:
            return ResolvedFrame(index, "", frame.name, frame.local_line)

        routine = RoutineRef.from_name(frame.name)
        description = routine.describe(self.lookup)
        if len(description) < 2:
            LOG.debug("No definition found for %s", frame.name)
            return None

        definition = self._parse_definition(description)
        if definition is None:
            LOG.debug("No source file in definition of %s: %r", frame.name, description[1])
            return None

        file_path, defined_line = definition
        if not os.path.isfile(file_path) or not os.access(file_path, os.R_OK):
            LOG.debug("Definition file of %s is not readable: %s", frame.name, file_path)
            return None

        if defined_line is None:
            if routine.kind is RoutineKind.NUMBERED:
                LOG.debug("Numbered function %s has no stated line", frame.name)
                return None
            defined_line = self._scan_declaration(file_path, frame.name)
            if defined_line is None:
                LOG.debug("Declaration of %s not found in %s", frame.name, file_path)
                return None

        return ResolvedFrame(
            display_index=index,
            label=f"#{index} {frame.text}",
            file_path=file_path,
            absolute_line=defined_line + frame.local_line,
        )
