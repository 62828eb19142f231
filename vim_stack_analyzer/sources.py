import json
import logging
import re
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

LOG = logging.getLogger("sources")

# fu[nction][!] or def, as accepted by Vim
FUNCTION_KEYWORD = r"^\s*(?:fu(?:n(?:c(?:t(?:i(?:o(?:n)?)?)?)?)?)?|def)!?\s+"

# Name( with an optional s: or <SID> scope
DECLARATION_RE = re.compile(
    FUNCTION_KEYWORD
    + r"(?P<scope>s:|<[sS][iI][dD]>|g:)?"  # Optional scope (group scope)
    r"(?P<name>[\w#.:]+)\s*\("  # Function name (group name)
)
SCRIPT_LOCAL_SCOPES = ("s:", "<sid>")


class LogLineSource(Protocol):
    """Supplies the current diagnostic log, oldest line first."""

    def read(self) -> List[str]:
        ...


class DefinitionLookup(Protocol):
    """Describes where a routine was defined, like ``:verbose function``.

    The second line of a description reads ``Last set from <path>`` with an
    optional `` line <n>``. Unknown names yield fewer than two lines.
    """

    def describe(self, name: str) -> List[str]:
        ...

    def describe_numbered(self, routine_id: str) -> List[str]:
        ...


class TextLogSource:
    """A captured ``:messages`` dump held in memory."""

    def __init__(self, text: str):
        self.text = text

    def read(self) -> List[str]:
        return self.text.splitlines()


class FileLogSource:
    """A ``:messages`` dump saved to disk; ``-`` reads stdin."""

    def __init__(self, path: str):
        self.path = path

    def read(self) -> List[str]:
        if self.path == "-":
            return sys.stdin.read().splitlines()

        path = Path(self.path).expanduser()
        if not path.is_file():
            raise FileNotFoundError(f"Messages file not found: {self.path}")
        return path.read_text(encoding="utf-8", errors="replace").splitlines()


def _numbered_key(routine_id: str) -> str:
    return routine_id.strip().strip("{}")


class MappingLookup:
    """Lookup backed by pre-captured ``:verbose function`` output."""

    def __init__(self, descriptions: Optional[Mapping[str, Sequence[str]]] = None):
        self.descriptions: Dict[str, List[str]] = {}
        for name, lines in (descriptions or {}).items():
            if isinstance(lines, str):
                lines = lines.splitlines()
            self.descriptions[name] = list(lines)

    @classmethod
    def from_json_file(cls, path: str) -> "MappingLookup":
        """Load ``{"name": ["line", ...] | "text"}`` from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Definitions file must hold a JSON object: {path}")
        return cls(data)

    def describe(self, name: str) -> List[str]:
        return list(self.descriptions.get(name, []))

    def describe_numbered(self, routine_id: str) -> List[str]:
        key = _numbered_key(routine_id)
        return list(self.descriptions.get(key) or self.descriptions.get(f"{{{key}}}", []))


class ScriptIndexLookup:
    """Answers lookups by indexing function declarations in ``*.vim`` files.

    Each directory is walked once, on the first lookup. Script-local
    functions are indexed under their short name so that ``<SNR>12_Foo``
    finds ``function s:Foo()``.
    """

    def __init__(self, dirs: Iterable[str]):
        self.dirs = [Path(d).expanduser() for d in dirs]
        self._index: Optional[Dict[str, Tuple[Path, int, str]]] = None
        self._script_local: Dict[str, Tuple[Path, int, str]] = {}

    def _scan_file(self, path: Path) -> None:
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                for line_num, line in enumerate(f, 1):
                    match = DECLARATION_RE.match(line)
                    if not match:
                        continue
                    entry = (path, line_num, line.strip())
                    name = match.group("name")
                    scope = (match.group("scope") or "").lower()
                    if scope in SCRIPT_LOCAL_SCOPES:
                        self._script_local.setdefault(name, entry)
                    else:
                        self._index.setdefault(name, entry)
        except OSError as e:
            LOG.warning("Cannot read %s: %s", path, e)

    def _build_index(self) -> Dict[str, Tuple[Path, int, str]]:
        if self._index is not None:
            return self._index

        self._index = {}
        for directory in self.dirs:
            if not directory.is_dir():
                LOG.warning("Script directory not found: %s", directory)
                continue
            for path in sorted(directory.rglob("*.vim")):
                self._scan_file(path)
        LOG.debug("Indexed %d global and %d script-local functions",
                  len(self._index), len(self._script_local))
        return self._index

    def describe(self, name: str) -> List[str]:
        index = self._build_index()

        entry = index.get(name)
        if entry is None:
            snr = re.match(r"^<SNR>\d+_(?P<short>.+)$", name)
            if snr:
                entry = self._script_local.get(snr.group("short"))
        if entry is None:
            return []

        path, line_num, declaration = entry
        return [declaration, f"    Last set from {path.resolve()} line {line_num}"]

    def describe_numbered(self, routine_id: str) -> List[str]:
        # Numbered functions only exist at runtime
        return []


class ChainedLookup:
    """Asks each lookup in turn; the first usable description wins."""

    def __init__(self, *lookups: DefinitionLookup):
        self.lookups = lookups

    def _first(self, method: str, key: str) -> List[str]:
        for lookup in self.lookups:
            lines = getattr(lookup, method)(key)
            if len(lines) >= 2:
                return lines
        return []

    def describe(self, name: str) -> List[str]:
        return self._first("describe", name)

    def describe_numbered(self, routine_id: str) -> List[str]:
        return self._first("describe_numbered", routine_id)
