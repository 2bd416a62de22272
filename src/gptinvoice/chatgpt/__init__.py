from .client import ChatGptClient, TokenVerification

__all__ = ["ChatGptClient", "TokenVerification"]
