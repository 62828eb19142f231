#!/usr/bin/env python3
import logging
from typing import Dict, List, Optional, Union

from fastmcp import FastMCP

from .builder import HeaderEntry
from .config import Settings
from .main import run_trace
from .sources import ChainedLookup, MappingLookup, ScriptIndexLookup, TextLogSource

LOG = logging.getLogger("mcp_server")

mcp = FastMCP("vim-stack-analyzer")


async def analyze_vim_messages(
    messages: str,
    definitions: Optional[Dict[str, Union[List[str], str]]] = None,
    script_dirs: Optional[List[str]] = None,
    max_distance: Optional[int] = None,
) -> dict:
    """
    Rebuild the Vim script call stack of the latest error in ':messages' output.

    Args:
        messages: The output of ':messages', oldest line first. An error looks like
            Error detected while processing function Outer[4]..Inner:
            line    2:
            E121: Undefined variable: x
        definitions: Optional mapping of function name (or numbered id) to the
            output of ':verbose function {name}', as a list of lines or a string.
        script_dirs: Optional directories of Vim scripts searched for function
            declarations (falls back to the VIM_SCRIPT_PATH env var).
        max_distance: Maximum line distance between error headers that belong
            to the same burst (falls back to VIM_STACK_DISTANCE, default 3).

    Returns:
        A dictionary containing:
        - status: "ok", "no_error" or "unresolved"
        - title: Title for the result list
        - entries: Headers ({"type": "header", "message", "kind"}) and
          locations ({"type": "location", "index", "label", "file", "line"})
        - events: Each error event with its kind, message and frame tokens
    """
    settings = Settings.from_env()
    lookup = ChainedLookup(
        MappingLookup(definitions),
        ScriptIndexLookup(script_dirs or settings.script_dirs),
    )

    result = run_trace(TextLogSource(messages), lookup, max_distance, settings.distance)
    LOG.info("analyze_vim_messages: %s", result.status.value)

    entries = []
    for entry in result.entries:
        if isinstance(entry, HeaderEntry):
            entries.append({"type": "header", "message": entry.message, "kind": entry.kind.value})
        else:
            entries.append({
                "type": "location",
                "index": entry.index,
                "label": entry.label,
                "file": entry.file_path,
                "line": entry.line,
            })

    return {
        "status": result.status.value,
        "title": result.title,
        "entries": entries,
        "events": [
            {
                "kind": event.kind.value,
                "message": event.message,
                "frames": [frame.text for frame in event.frames],
            }
            for event in result.events
        ],
    }


mcp.tool()(analyze_vim_messages)

if __name__ == "__main__":
    # Initialize and run the server
    mcp.run(transport="streamable-http", host="127.0.0.1", port=8080, path="/mcp")
