from .client import DEFAULT_QUOTE_API_BASE_URL, QuoteApiClient
from .gate import RateLimitGate
from .service import QuoteService
from .types import (
    EXCLUDED_PROTOCOL_ID,
    NATIVE_TOKEN_ADDRESS,
    NETWORKS,
    PRIMARY_NETWORK,
    Network,
    Quote,
    QuotePayloadError,
    QuoteServiceError,
    QuoteStatusError,
    QuoteTransportError,
)

__all__ = [
    "DEFAULT_QUOTE_API_BASE_URL",
    "EXCLUDED_PROTOCOL_ID",
    "NATIVE_TOKEN_ADDRESS",
    "NETWORKS",
    "PRIMARY_NETWORK",
    "Network",
    "Quote",
    "QuoteApiClient",
    "QuotePayloadError",
    "QuoteService",
    "QuoteServiceError",
    "QuoteStatusError",
    "QuoteTransportError",
    "RateLimitGate",
]
