from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional

from playwright.async_api import BrowserContext, Error as PlaywrightError, async_playwright

from .chatgpt.client import ChatGptClient
from .models import Invoice, RunSummary
from .portal.downloader import download_invoice
from .portal.extractor import get_invoice_urls
from .portal.selectors import PortalSelectors
from .prompt import print_token_instructions, prompt_for_token
from .token_store import TokenStore
from .util.dates import TargetMonth, filter_invoices_by_month


logger = logging.getLogger(__name__)

_DEFAULT_BROWSER_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-gpu",
    "--disable-dev-shm-usage",
)


@dataclass(frozen=True)
class RunOptions:
    output_dir: str
    download_all: bool = False
    month: Optional[TargetMonth] = None
    headless: bool = True
    slow_mo_ms: int = 0
    browser_args: tuple[str, ...] = _DEFAULT_BROWSER_ARGS
    selector_timeout_ms: int = 30_000
    download_timeout_ms: int = 30_000
    debug_dir: str = ""


BrowserLauncher = Callable[[RunOptions], AbstractAsyncContextManager[BrowserContext]]


@asynccontextmanager
async def launch_browser(options: RunOptions) -> AsyncIterator[BrowserContext]:
    """
    Launch Chromium and yield a fresh browser context; everything is closed on exit.

    The download sink is configured per tab over CDP, so a Chromium-based browser is required.
    """
    async with async_playwright() as p:
        launch_kwargs = {
            "headless": options.headless,
            "slow_mo": int(options.slow_mo_ms or 0),
            "args": list(options.browser_args),
        }
        try:
            browser = await p.chromium.launch(**launch_kwargs)
        except PlaywrightError as e:
            if "Executable doesn't exist" not in str(e):
                raise
            logger.warning(
                "Playwright Chromium executable missing; falling back to the installed Chrome. (%s)",
                e,
            )
            browser = await p.chromium.launch(channel="chrome", **launch_kwargs)

        try:
            context = await browser.new_context()
            try:
                yield context
            finally:
                await context.close()
        finally:
            await browser.close()


async def get_valid_access_token(
    store: TokenStore,
    api: ChatGptClient,
    *,
    prompt: Callable[[], str] = prompt_for_token,
    log: Optional[logging.Logger] = None,
) -> str:
    """
    Return a token the API accepts: the saved one if still valid, otherwise keep prompting until a
    pasted token verifies, then save it.
    """
    log = log or logger
    saved = store.load()

    if saved:
        log.info("Verifying saved access token...")
        result = await api.verify_access_token(saved)
        if result.valid:
            log.info("Access token is valid.")
            return saved
        log.warning("Saved access token is no longer valid. %s", result.error or "Token expired or revoked.")
    elif not store.exists():
        log.info("No configuration found. First-time setup required.")
    else:
        log.warning("Configuration file is invalid or corrupted: %s", store.path)

    print_token_instructions()

    while True:
        token = prompt()
        if not token:
            print("No token provided. Please try again.")
            continue

        log.info("Verifying access token...")
        result = await api.verify_access_token(token)
        if result.valid:
            store.save(token)
            log.info("Access token is valid. Configuration saved to %s", store.path)
            return token

        print(f"Invalid token: {result.error}")
        print("Please try again with a valid token.\n")


def select_invoices(
    invoices: list[Invoice],
    *,
    month: Optional[TargetMonth] = None,
    download_all: bool = False,
) -> list[Invoice]:
    """
    - month given: every invoice dated in that month
    - --all: everything listed
    - otherwise: just the latest (the portal lists newest first)
    """
    if not invoices:
        return []
    if month is not None:
        return filter_invoices_by_month(invoices, month)
    if download_all:
        return list(invoices)
    return [invoices[0]]


async def run(
    options: RunOptions,
    *,
    api: ChatGptClient,
    store: TokenStore,
    launcher: BrowserLauncher = launch_browser,
    prompt: Callable[[], str] = prompt_for_token,
    selectors: Optional[PortalSelectors] = None,
    log: Optional[logging.Logger] = None,
) -> RunSummary:
    """
    Token check -> portal URL -> list invoices -> select -> download one at a time.

    Portal lookup and listing failures propagate (nothing can be downloaded without them).
    Individual download failures are tallied in the summary and the batch keeps going.
    """
    log = log or logger
    selectors = selectors or PortalSelectors()
    summary = RunSummary(output_dir=options.output_dir)

    token = await get_valid_access_token(store, api, prompt=prompt, log=log)

    log.info("Fetching invoice portal...")
    portal_url = await api.get_customer_portal_url(token)
    log.info("Invoice portal URL retrieved.")

    log.info("Launching browser...")
    async with launcher(options) as context:
        page = await context.new_page()
        try:
            log.info("Fetching invoice list...")
            invoices = await get_invoice_urls(
                page,
                portal_url,
                selectors=selectors,
                timeout_ms=options.selector_timeout_ms,
                debug_dir=options.debug_dir or None,
                log=log,
            )
        finally:
            await page.close()

        summary.listed = len(invoices)
        if not invoices:
            log.info("No invoices found.")
            return summary
        log.info("Found %d invoice(s).", len(invoices))

        selected = select_invoices(invoices, month=options.month, download_all=options.download_all)
        summary.selected = len(selected)
        if options.month is not None:
            if not selected:
                log.info("No invoices found for %s.", options.month)
                return summary
            log.info("Found %d invoice(s) for %s.", len(selected), options.month)
        elif options.download_all:
            log.info("Downloading all invoices...")
        else:
            log.info("Downloading latest invoice...")

        for idx, invoice in enumerate(selected, start=1):
            log.info("[%d/%d] Downloading invoice (%s)...", idx, len(selected), invoice.date)
            result = await download_invoice(
                context,
                invoice.url,
                options.output_dir,
                selectors=selectors,
                timeout_ms=options.selector_timeout_ms,
                download_timeout_ms=options.download_timeout_ms,
                log=log,
            )
            if result.success:
                log.info("Downloaded: %s", result.file_path)
                summary.downloaded.append(result.file_path or "")
            else:
                log.error("Failed: %s", result.error)
                summary.failed.append((invoice.url, result.error or "Unknown error"))

    return summary
