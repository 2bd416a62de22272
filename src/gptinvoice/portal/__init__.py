from .downloader import download_invoice
from .extractor import get_invoice_urls
from .selectors import PortalSelectors
from .watcher import wait_for_file_download

__all__ = [
    "PortalSelectors",
    "download_invoice",
    "get_invoice_urls",
    "wait_for_file_download",
]
