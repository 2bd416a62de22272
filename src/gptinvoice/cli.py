from __future__ import annotations

import argparse
import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from playwright.async_api import Error as PlaywrightError

from .chatgpt.client import ChatGptClient
from .config import AppConfig, load_config
from .errors import ConfigError, GptInvoiceError
from .logging_config import configure_logging
from .models import RunSummary
from .pipeline import RunOptions, run
from .token_store import TokenStore
from .util.dates import TargetMonth
from .util.debug_bundle import create_debug_bundle


logger = logging.getLogger("gptinvoice")

EPILOG = """
examples:
  gptinvoice                       Download the latest invoice to current directory
  gptinvoice -output ./invoices    Download the latest invoice to ./invoices
  gptinvoice --all                 Download all available invoices
  gptinvoice -month 2024-01        Download the invoice for January 2024
  gptinvoice --all -output ~/docs  Download all invoices to ~/docs

configuration:
  On first run you will be prompted for your ChatGPT access token.
  The token is stored in ~/.gptinvoice/config (override with GPTINVOICE_HOME).
"""


def _target_month(value: str) -> TargetMonth:
    try:
        return TargetMonth.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gptinvoice",
        description="Download ChatGPT invoices",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    p.add_argument("-h", "-help", "--help", action="help", help="Show this help message and exit")
    p.add_argument(
        "-output",
        "--output",
        dest="output_dir",
        default="",
        metavar="DIR",
        help="Download invoices to this directory (default: current directory)",
    )
    p.add_argument("--all", dest="download_all", action="store_true", help="Download all available invoices")
    p.add_argument(
        "-month",
        "--month",
        type=_target_month,
        default=None,
        metavar="YYYY-MM",
        help="Download the invoice(s) for a specific month (e.g. 2024-01)",
    )
    p.add_argument("--clear", action="store_true", help="Clear the saved access token and exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--env-file",
        default=".env",
        help="Path to a dotenv file (default: .env). If missing, env vars must already be set.",
    )
    p.add_argument("--config", default="config.yaml", help="Path to an optional YAML config (default: config.yaml)")
    p.add_argument("--headful", action="store_true", help="Show the browser window (debug)")
    p.add_argument("--slowmo-ms", type=int, default=None, help="Playwright slow motion in milliseconds (debug).")
    p.add_argument(
        "--debug-dir",
        default="",
        help="Save page screenshots/HTML here when the portal does not look as expected.",
    )
    return p


def _run_options(args: argparse.Namespace, cfg: AppConfig) -> RunOptions:
    return RunOptions(
        output_dir=args.output_dir or cfg.download.output_dir,
        download_all=bool(args.download_all),
        month=args.month,
        headless=False if args.headful else cfg.browser.headless,
        slow_mo_ms=args.slowmo_ms if args.slowmo_ms is not None else cfg.browser.slow_mo_ms,
        browser_args=tuple(cfg.browser.args),
        selector_timeout_ms=cfg.download.selector_timeout_ms,
        download_timeout_ms=cfg.download.download_timeout_ms,
        debug_dir=args.debug_dir or cfg.download.debug_dir,
    )


def _print_summary(summary: RunSummary) -> None:
    print("\n--- Summary ---")
    print(f"Downloaded: {len(summary.downloaded)}")
    if summary.failed:
        print(f"Failed: {len(summary.failed)}")
        for url, error in summary.failed:
            print(f"  {url}: {error}")
    print(f"Output directory: {summary.output_dir}")


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    env_path = Path(args.env_file)
    if env_path.exists():
        load_dotenv(env_path)

    # Default logging: can be overridden once config is loaded.
    configure_logging(level="DEBUG" if args.debug else os.getenv("LOG_LEVEL", "INFO"))

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error("%s", e)
        return 1
    configure_logging(
        level="DEBUG" if args.debug else cfg.logging.level,
        file_path=cfg.logging.file_path or None,
    )

    store = TokenStore(cfg.token_store.path)
    if args.clear:
        store.delete()
        print("Access token cleared from config.")
        return 0

    options = _run_options(args, cfg)
    logger.debug("Run options: %s", options)

    try:
        summary = asyncio.run(run(options, api=ChatGptClient(), store=store, log=logger))
    except (EOFError, KeyboardInterrupt):
        logger.error("Aborted.")
        return 1
    except (GptInvoiceError, PlaywrightError) as e:
        logger.error("Fatal error: %s", e)
        if options.debug_dir:
            try:
                bundle = create_debug_bundle(
                    debug_dir=options.debug_dir,
                    log_file=cfg.logging.file_path or None,
                    out_dir=options.debug_dir,
                )
                logger.error("Wrote debug bundle: %s", bundle)
            except OSError:
                logger.debug("Failed to create debug bundle.", exc_info=True)
        return 1

    _print_summary(summary)
    print("\nDone.")
    return 0 if summary.ok else 1
