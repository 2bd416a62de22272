from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from playwright.async_api import Error as PlaywrightError


logger = logging.getLogger(__name__)


async def save_page_snapshot(page, *, debug_dir: Optional[str], name_prefix: str) -> Optional[Path]:
    """
    Best-effort: write a screenshot, the HTML and the rendered body text of `page` under `debug_dir`.

    Returns the screenshot path, or None when disabled or nothing could be written.
    """
    if not debug_dir:
        return None

    safe = re.sub(r"[^a-zA-Z0-9_-]+", "_", name_prefix).strip("_")[:60] or "page"
    out_dir = Path(debug_dir)
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        shot = out_dir / f"{safe}.png"
        await page.screenshot(path=str(shot), full_page=True)
        (out_dir / f"{safe}.html").write_text(await page.content(), encoding="utf-8")
    except (OSError, PlaywrightError):
        logger.debug("Failed to save debug artifacts (name=%s).", safe, exc_info=True)
        return None

    # Body text makes selector/date-regex problems debuggable offline.
    try:
        (out_dir / f"{safe}.txt").write_text(await page.inner_text("body"), encoding="utf-8")
    except (OSError, PlaywrightError):
        pass
    return shot
