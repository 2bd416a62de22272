from __future__ import annotations

import asyncio
import time
from pathlib import Path

import pytest

from gptinvoice.errors import DownloadTimeout, FilesystemError
from gptinvoice.portal.watcher import wait_for_file_download


FAST = {"poll_interval_ms": 20, "settle_interval_ms": 20}


async def _write_later(path: Path, delay_s: float, data: bytes = b"%PDF-1.4 invoice") -> None:
    await asyncio.sleep(delay_s)
    path.write_bytes(data)


def test_returns_file_that_appears_quickly(tmp_path: Path) -> None:
    async def scenario() -> tuple[Path, float]:
        t0 = time.monotonic()
        writer = asyncio.create_task(_write_later(tmp_path / "invoice.pdf", 0.05))
        found = await wait_for_file_download(tmp_path, 30_000, **FAST)
        await writer
        return found, time.monotonic() - t0

    found, elapsed = asyncio.run(scenario())
    assert found == tmp_path / "invoice.pdf"
    assert elapsed < 5


def test_default_intervals_still_finish_well_before_timeout(tmp_path: Path) -> None:
    async def scenario() -> tuple[Path, float]:
        t0 = time.monotonic()
        writer = asyncio.create_task(_write_later(tmp_path / "invoice.pdf", 0.05))
        found = await wait_for_file_download(tmp_path, 30_000)
        await writer
        return found, time.monotonic() - t0

    found, elapsed = asyncio.run(scenario())
    assert found.name == "invoice.pdf"
    # one poll (1s) + two settle readings (2 x 0.5s)
    assert elapsed < 10


def test_file_appearing_near_the_deadline_is_picked_up(tmp_path: Path) -> None:
    async def scenario() -> Path:
        writer = asyncio.create_task(_write_later(tmp_path / "late.pdf", 0.3))
        found = await wait_for_file_download(tmp_path, 500, **FAST)
        await writer
        return found

    assert asyncio.run(scenario()) == tmp_path / "late.pdf"


def test_file_landing_between_default_polls_before_deadline_is_found(tmp_path: Path) -> None:
    # Polls at 0s and 1s; the file lands at 1.2s, the deadline is 1.5s.
    async def scenario() -> Path:
        writer = asyncio.create_task(_write_later(tmp_path / "edge.pdf", 1.2))
        found = await wait_for_file_download(tmp_path, 1_500)
        await writer
        return found

    assert asyncio.run(scenario()) == tmp_path / "edge.pdf"


def test_times_out_no_earlier_than_timeout(tmp_path: Path) -> None:
    t0 = time.monotonic()
    with pytest.raises(DownloadTimeout, match="Download timed out"):
        asyncio.run(wait_for_file_download(tmp_path, 300, **FAST))
    assert time.monotonic() - t0 >= 0.3


def test_ignores_existing_and_non_matching_files(tmp_path: Path) -> None:
    (tmp_path / "old.pdf").write_bytes(b"old")
    (tmp_path / "notes.txt").write_text("x", encoding="utf-8")

    async def scenario() -> Path:
        partial = asyncio.create_task(_write_later(tmp_path / "new.pdf.crdownload", 0.02))
        writer = asyncio.create_task(_write_later(tmp_path / "new.pdf", 0.1))
        found = await wait_for_file_download(tmp_path, 5_000, **FAST)
        await asyncio.gather(partial, writer)
        return found

    assert asyncio.run(scenario()) == tmp_path / "new.pdf"


def test_returns_path_even_if_size_never_settles(tmp_path: Path) -> None:
    target = tmp_path / "growing.pdf"

    async def grow() -> None:
        with target.open("ab") as f:
            while True:
                f.write(b"x" * 64)
                f.flush()
                await asyncio.sleep(0.002)

    async def scenario() -> Path:
        grower = asyncio.create_task(grow())
        try:
            return await wait_for_file_download(
                tmp_path, 5_000, poll_interval_ms=10, settle_interval_ms=20, settle_checks=3
            )
        finally:
            grower.cancel()
            try:
                await grower
            except asyncio.CancelledError:
                pass

    assert asyncio.run(scenario()) == target


def test_missing_directory_is_a_filesystem_error(tmp_path: Path) -> None:
    with pytest.raises(FilesystemError):
        asyncio.run(wait_for_file_download(tmp_path / "nope", 100, **FAST))
