from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import ElementNotFound, FilesystemError, GptInvoiceError, NavigationFailure
from ..models import DownloadResult
from .selectors import PortalSelectors
from .watcher import wait_for_file_download


logger = logging.getLogger(__name__)


async def allow_downloads_into(page, download_dir: Path) -> None:
    """
    Let the browser save downloads triggered from `page` straight into `download_dir`
    (no "save as" dialog). Chromium-only: goes through a DevTools protocol session.
    """
    cdp = await page.context.new_cdp_session(page)
    await cdp.send(
        "Page.setDownloadBehavior",
        {"behavior": "allow", "downloadPath": str(download_dir)},
    )


async def download_invoice(
    browser,
    invoice_url: str,
    output_dir: Union[str, Path],
    *,
    selectors: Optional[PortalSelectors] = None,
    timeout_ms: int = 30_000,
    download_timeout_ms: int = 30_000,
    log: Optional[logging.Logger] = None,
) -> DownloadResult:
    """
    Download one invoice PDF into `output_dir` using a dedicated tab of `browser`.

    Never raises: any failure is returned as `DownloadResult(success=False, error=...)` so a batch can
    carry on with the next invoice. The tab is always closed before returning.
    """
    log = log or logger
    selectors = selectors or PortalSelectors()
    log.debug("Starting download from: %s", invoice_url)
    log.debug("Output directory: %s", output_dir)

    page = None
    try:
        page = await browser.new_page()

        target_dir = Path(output_dir).expanduser().resolve()
        try:
            if not target_dir.exists():
                log.debug("Creating output directory: %s", target_dir)
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Cannot create output directory {target_dir}: {e}") from e

        await allow_downloads_into(page, target_dir)

        log.info("Opening invoice page...")
        try:
            await page.goto(invoice_url, wait_until="networkidle")
        except PlaywrightError as e:
            raise NavigationFailure(f"Failed to open invoice page: {e}") from e

        log.info("Looking for download button...")
        try:
            await page.wait_for_selector(selectors.download_button, state="visible", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ElementNotFound(
                f"Download button ({selectors.download_button}) not visible within {timeout_ms / 1000:.0f}s"
            ) from e

        log.debug("Clicking download button")
        await page.click(selectors.download_button)

        log.info("Waiting for download to complete...")
        downloaded = await wait_for_file_download(target_dir, download_timeout_ms)
        log.debug("Download complete: %s", downloaded)
        return DownloadResult.ok(str(downloaded))
    except GptInvoiceError as e:
        log.debug("Download failed: %s", e, exc_info=True)
        return DownloadResult.failed(str(e))
    except Exception as e:
        # Anything else (Playwright protocol errors, browser crashes, ...) still counts as a
        # per-invoice failure rather than aborting the batch.
        log.debug("Download failed unexpectedly.", exc_info=True)
        return DownloadResult.failed(str(e) or type(e).__name__)
    finally:
        if page is not None:
            try:
                await page.close()
            except Exception:
                log.debug("Failed to close invoice tab.", exc_info=True)
