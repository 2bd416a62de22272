from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from gptinvoice.chatgpt.client import ChatGptClient
from gptinvoice.config import load_config
from gptinvoice.pipeline import RunOptions, launch_browser
from gptinvoice.portal.downloader import download_invoice
from gptinvoice.portal.extractor import get_invoice_urls
from gptinvoice.token_store import TokenStore


def _saved_token() -> str:
    # Live tests hit chatgpt.com + the billing portal and should not run as part of a normal unit run.
    if os.getenv("GPTINVOICE_LIVE_TESTS") != "1":
        pytest.skip("Set GPTINVOICE_LIVE_TESTS=1 to run live portal tests.")
    token = TokenStore(load_config(None).token_store.path).load()
    if not token:
        pytest.skip("No saved access token; run `gptinvoice` once to configure it.")
    verdict = asyncio.run(ChatGptClient().verify_access_token(token))
    if not verdict.valid:
        pytest.fail(f"Saved access token is invalid: {verdict.error}")
    return token


@pytest.mark.portal
def test_customer_portal_url() -> None:
    token = _saved_token()
    url = asyncio.run(ChatGptClient().get_customer_portal_url(token))
    assert url.startswith("https://pay.openai.com")


@pytest.mark.portal
def test_list_and_download_latest_invoice(tmp_path: Path) -> None:
    token = _saved_token()

    async def scenario():
        portal_url = await ChatGptClient().get_customer_portal_url(token)
        async with launch_browser(RunOptions(output_dir=str(tmp_path))) as context:
            page = await context.new_page()
            try:
                invoices = await get_invoice_urls(page, portal_url)
            finally:
                await page.close()
            assert invoices, "expected at least one invoice on an active subscription"
            assert invoices[0].url.startswith("https://")
            return await download_invoice(context, invoices[0].url, tmp_path)

    result = asyncio.run(scenario())
    assert result.success, result.error
    pdf = Path(result.file_path or "")
    assert pdf.suffix == ".pdf"
    assert pdf.stat().st_size > 1000
