import os
import tempfile
from typing import List


def burst(name: str, line: int, message: str, verb: str = "processing") -> List[str]:
    """The three lines Vim writes for one error inside a function."""
    return [
        f"Error detected while {verb} function {name}:",
        f"line {line:>4}:",
        message,
    ]


def write_script(directory: str, relative: str, lines: List[str]) -> str:
    path = os.path.join(directory, relative)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")
    return path


class RecordingLookup:
    """DefinitionLookup double remembering which method answered."""

    def __init__(self, named=None, numbered=None):
        self.named = named or {}
        self.numbered = numbered or {}
        self.calls = []

    def describe(self, name):
        self.calls.append(("describe", name))
        return list(self.named.get(name, []))

    def describe_numbered(self, routine_id):
        self.calls.append(("describe_numbered", routine_id))
        return list(self.numbered.get(routine_id, []))


def temp_dir() -> tempfile.TemporaryDirectory:
    return tempfile.TemporaryDirectory(prefix="vimtrace-")
