from .models import DownloadResult, Invoice, RunSummary

__all__ = ["DownloadResult", "Invoice", "RunSummary"]

__version__ = "0.1.0"
