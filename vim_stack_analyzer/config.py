import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

LOG = logging.getLogger("config")

DEFAULT_DISTANCE = 3


def _positive_int(value: Optional[str], default: int, name: str) -> int:
    if value is None or not value.strip():
        return default
    try:
        number = int(value)
    except ValueError:
        LOG.warning("%s=%r is not an integer; using %d", name, value, default)
        return default
    if number < 1:
        LOG.warning("%s=%d must be at least 1; using %d", name, number, default)
        return default
    return number


@dataclass
class Settings:
    """Defaults read from the environment (or a .env file)."""
    distance: int = DEFAULT_DISTANCE
    script_dirs: List[str] = field(default_factory=list)
    messages_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        script_path = os.getenv("VIM_SCRIPT_PATH", "")
        return cls(
            distance=_positive_int(os.getenv("VIM_STACK_DISTANCE"), DEFAULT_DISTANCE, "VIM_STACK_DISTANCE"),
            script_dirs=[d for d in script_path.split(os.pathsep) if d],
            messages_file=os.getenv("VIM_MESSAGES_FILE") or None,
        )
