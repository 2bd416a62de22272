#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src = repo_root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


def _read_text(path: str) -> str:
    p = Path(path)
    if not p.exists():
        raise SystemExit(f"File not found: {p}")
    return p.read_text(encoding="utf-8", errors="replace")


async def _rows_from_html(html: str, base_url: str) -> list[dict]:
    from playwright.async_api import async_playwright

    from gptinvoice.portal.selectors import PortalSelectors

    selectors = PortalSelectors()
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True)
        try:
            page = await browser.new_page()

            async def _serve(route) -> None:
                # The snapshot is served as the document; everything else stays offline.
                if route.request.resource_type == "document":
                    await route.fulfill(body=html, content_type="text/html")
                else:
                    await route.abort()

            # Served under the portal origin so relative hrefs resolve as on the live page.
            await page.route("**/*", _serve)
            await page.goto(base_url)
            return await page.evaluate(selectors.invoice_rows_script, selectors.invoice_link)
        finally:
            await browser.close()


def main(argv: list[str] | None = None) -> int:
    _ensure_src_on_path()

    from gptinvoice.portal.extractor import invoices_from_rows
    from gptinvoice.util.dates import TargetMonth, filter_invoices_by_month

    p = argparse.ArgumentParser(
        prog="parse_portal_snapshot",
        description=(
            "List the invoices found in a saved portal HTML snapshot (from --debug-dir *.html).\n"
            "Useful for checking selector/date-format regressions offline (no token needed)."
        ),
    )
    p.add_argument("--file", required=True, help="Path to a debug .html file captured from the invoice portal")
    p.add_argument("--month", default="", help="Only list invoices for this month (YYYY-MM)")
    p.add_argument(
        "--base-url",
        default="https://pay.openai.com/",
        help="URL the snapshot is served under, for resolving relative links (default: https://pay.openai.com/)",
    )
    p.add_argument("--out", default="", help="Optional output JSON path (otherwise prints to stdout)")
    args = p.parse_args(argv)

    html = _read_text(args.file)
    invoices = invoices_from_rows(asyncio.run(_rows_from_html(html, args.base_url)))
    if args.month:
        try:
            invoices = filter_invoices_by_month(invoices, TargetMonth.parse(args.month))
        except ValueError as e:
            raise SystemExit(str(e)) from e

    out_json = json.dumps({"invoices": [i.model_dump() for i in invoices]}, indent=2)
    if args.out:
        Path(args.out).write_text(out_json, encoding="utf-8")
    else:
        print(out_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
