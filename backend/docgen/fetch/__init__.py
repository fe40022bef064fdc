from .credentials import AccessToken, ClientCredentialsProvider, TokenCache
from .dataverse import DataverseFetcher, build_fetcher

__all__ = [
    "AccessToken",
    "ClientCredentialsProvider",
    "DataverseFetcher",
    "TokenCache",
    "build_fetcher",
]
