# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Watch a CSV file and re-run the import when it changes.

Spreadsheet tools often write a file several times in a row when saving.
Each modification time seen is submitted to a Debouncer; the callback only
runs once the file has stayed unchanged for the debounce delay, so a burst
of writes triggers a single import and dashboard pass.
"""

import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Optional

from .logging_setup import get_logger
from .state import Debouncer

logger = get_logger(__name__)


def _mtime(path: Path) -> Optional[int]:
    try:
        return path.stat().st_mtime_ns
    except FileNotFoundError:
        return None


def watch_file(
    path: Path,
    on_change: Callable[[Path], None],
    debouncer: Debouncer,
    poll_interval: float = 0.5,
    stop_event: Optional[threading.Event] = None,
    sleep: Callable[[float], None] = time.sleep,
    max_polls: Optional[int] = None,
) -> int:
    """
    Poll ``path`` and call ``on_change`` once per settled modification.

    The modification time present when watching starts is the baseline and
    does not trigger a call. A missing file is ignored until it reappears.

    Parameters
    ----------
    path:
        File to watch.
    on_change:
        Called with ``path`` after the file stopped changing.
    debouncer:
        Quiescence gate; its clock must advance with ``sleep``.
    poll_interval:
        Seconds between two checks.
    stop_event:
        Watching ends when the event is set.
    sleep:
        Wait function between checks.
    max_polls:
        Stop after this many checks (None = until stopped).

    Returns
    -------
    int
        Number of ``on_change`` calls.
    """
    if poll_interval <= 0:
        raise ValueError("poll_interval must be > 0")

    last_seen = _mtime(path)
    calls = 0
    polls = 0
    while stop_event is None or not stop_event.is_set():
        if max_polls is not None and polls >= max_polls:
            break
        sleep(poll_interval)
        polls += 1

        current = _mtime(path)
        if current is not None and current != last_seen:
            logger.debug("Change detected on %s", path)
            last_seen = current
            debouncer.submit(current)

        if debouncer.poll() is not None:
            logger.info("Reloading %s", path)
            on_change(path)
            calls += 1
    debouncer.cancel()
    return calls
