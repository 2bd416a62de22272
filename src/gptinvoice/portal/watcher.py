from __future__ import annotations

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Union

from ..errors import DownloadTimeout, FilesystemError


logger = logging.getLogger(__name__)


def _list_matching(directory: Path, suffix: str) -> list[str]:
    try:
        # Listing order is whatever the filesystem returns; callers must not assume it is sorted.
        return [name for name in os.listdir(directory) if name.endswith(suffix)]
    except OSError as e:
        raise FilesystemError(f"Cannot list download directory {directory}: {e}") from e


def _file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError as e:
        raise FilesystemError(f"Cannot stat downloaded file {path}: {e}") from e


async def wait_for_file_download(
    directory: Union[str, Path],
    timeout_ms: int,
    *,
    suffix: str = ".pdf",
    poll_interval_ms: int = 1000,
    settle_interval_ms: int = 500,
    settle_checks: int = 10,
) -> Path:
    """
    Wait for a new `suffix` file to show up in `directory` and for its size to settle.

    Browser download events are not reliably observable, so completion is inferred from the
    filesystem: the first file that was not present at call time is polled until two consecutive
    non-zero size readings agree. If the size never settles within `settle_checks` rounds the path
    is returned anyway.

    Raises DownloadTimeout if nothing new appears within `timeout_ms` (never earlier).
    """
    directory = Path(directory)
    started = time.monotonic()
    deadline = started + timeout_ms / 1000
    existing = set(_list_matching(directory, suffix))

    while True:
        new_files = [name for name in _list_matching(directory, suffix) if name not in existing]
        if new_files:
            candidate = directory / new_files[0]
            logger.debug("New download detected: %s", candidate)
            return await _wait_for_stable_size(
                candidate,
                interval_s=settle_interval_ms / 1000,
                checks=settle_checks,
            )
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        # Never sleep past the deadline; the last listing happens right at it.
        await asyncio.sleep(min(poll_interval_ms / 1000, remaining))

    raise DownloadTimeout(
        f"Download timed out: no new {suffix} file in {directory} after {time.monotonic() - started:.1f}s"
    )


async def _wait_for_stable_size(path: Path, *, interval_s: float, checks: int) -> Path:
    last_size = 0
    for _ in range(checks):
        await asyncio.sleep(interval_s)
        size = _file_size(path)
        if size > 0 and size == last_size:
            return path
        last_size = size

    logger.warning("Download size did not settle for %s; assuming it is complete.", path)
    return path
