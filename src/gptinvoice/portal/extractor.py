from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import ElementNotFound, NavigationFailure
from ..models import UNKNOWN_DATE, Invoice
from .debug import save_page_snapshot
from .selectors import PortalSelectors


logger = logging.getLogger(__name__)

# (page, selectors) -> [{"url": ..., "text": ... or None}, ...] in DOM order
RowScript = Callable[[Any, PortalSelectors], Awaitable[list[dict]]]


async def evaluate_invoice_rows(page, selectors: PortalSelectors) -> list[dict]:
    return await page.evaluate(selectors.invoice_rows_script, selectors.invoice_link)


def invoices_from_rows(rows: list[dict], selectors: Optional[PortalSelectors] = None) -> list[Invoice]:
    """
    Turn the raw rows returned by the page script into `Invoice` records.

    The first date-looking substring of the row text becomes the invoice date; rows without one
    (or links without a recognisable row) get "unknown".
    """
    selectors = selectors or PortalSelectors()
    date_re = selectors.date_re

    out: list[Invoice] = []
    for row in rows:
        text = row.get("text")
        date = UNKNOWN_DATE
        if text:
            m = date_re.search(text)
            if m:
                date = m.group(0)
        out.append(Invoice(url=str(row.get("url") or ""), date=date))
    return out


async def get_invoice_urls(
    page,
    portal_url: str,
    *,
    selectors: Optional[PortalSelectors] = None,
    script: Optional[RowScript] = None,
    timeout_ms: int = 30_000,
    debug_dir: Optional[str] = None,
    log: Optional[logging.Logger] = None,
) -> list[Invoice]:
    """
    Open the customer portal in `page` and list the invoices it shows, newest first (portal order).

    Raises NavigationFailure if the portal does not load, ElementNotFound if no invoice links render
    within `timeout_ms`. Both are fatal for the run, so nothing is caught here.
    """
    log = log or logger
    selectors = selectors or PortalSelectors()
    script = script or evaluate_invoice_rows

    log.info("Navigating to invoice portal...")
    log.debug("Portal URL: %s", portal_url)
    try:
        await page.goto(portal_url, wait_until="networkidle")
    except PlaywrightError as e:
        await save_page_snapshot(page, debug_dir=debug_dir, name_prefix="portal_navigation_failed")
        raise NavigationFailure(f"Failed to open invoice portal: {e}") from e

    log.info("Waiting for invoice list to load...")
    log.debug("Waiting for invoice link selector: %s", selectors.invoice_link)
    try:
        # Attached is enough: the first link may be hidden while later rows are fine.
        await page.wait_for_selector(selectors.invoice_link, state="attached", timeout=timeout_ms)
    except PlaywrightTimeoutError as e:
        await save_page_snapshot(page, debug_dir=debug_dir, name_prefix="invoice_list_not_found")
        raise ElementNotFound(
            f"No invoice links ({selectors.invoice_link}) appeared within {timeout_ms / 1000:.0f}s"
        ) from e

    rows = await script(page, selectors)
    invoices = invoices_from_rows(rows or [], selectors)
    log.debug("Found %d invoice(s): %s", len(invoices), [(i.date, i.url) for i in invoices])
    return invoices
