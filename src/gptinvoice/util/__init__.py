from .dates import TargetMonth, filter_invoices_by_month, is_valid_month_format, matches_month

__all__ = ["TargetMonth", "filter_invoices_by_month", "is_valid_month_format", "matches_month"]
