"""Shared output utilities for CLI verbs."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Coroutine, Dict, Tuple

from metis_engine.executor.effects import ActionRecord
from metis_engine.persistence import ActionFileStore
from metis_engine.utils.errors import ActionFileError


def run_async(coro: Coroutine) -> Any:
    """Run an async coroutine from sync context."""
    return asyncio.run(coro)


def print_result(result: Dict, compact: bool = False) -> None:
    """Print a result dict as JSON to stdout."""
    indent = None if compact else 2
    print(json.dumps(result, indent=indent, default=str))


def die(msg: str, code: int = 1) -> None:
    """Print error to stderr and exit."""
    print(f"error: {msg}", file=sys.stderr)
    sys.exit(code)


def load_action(path: str) -> Tuple[ActionFileStore, ActionRecord]:
    """Load an action file, exiting on a missing or malformed file."""
    store = ActionFileStore(Path(path))
    try:
        action = store.load()
    except FileNotFoundError:
        die(f"action file not found: {path}")
    except ActionFileError as e:
        die(e.message)
    return store, action
