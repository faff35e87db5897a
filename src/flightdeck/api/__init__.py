from .client import ApiClient, TeamClient

__all__ = [
    "ApiClient",
    "TeamClient",
]
