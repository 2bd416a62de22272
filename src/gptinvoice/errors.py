from __future__ import annotations


class GptInvoiceError(RuntimeError):
    """Base class for failures raised by the invoice pipeline."""


class ElementNotFound(GptInvoiceError):
    """
    Raised when a portal selector does not show up within its timeout.

    This is the usual symptom of the portal markup changing (or rendering stalling).
    """


class DownloadTimeout(GptInvoiceError):
    """Raised when no new file appeared in the download directory before the deadline."""


class NavigationFailure(GptInvoiceError):
    pass


class FilesystemError(GptInvoiceError):
    pass


class PortalApiError(GptInvoiceError):
    """Raised when the customer portal URL cannot be resolved through the ChatGPT API."""


class ConfigError(GptInvoiceError):
    pass
