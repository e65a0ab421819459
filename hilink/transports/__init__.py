"""Package containing all supported transports."""

from .basetransport import BaseTransport, TransportResponse
from .httptransport import HttpTransport

__all__ = [
    "BaseTransport",
    "HttpTransport",
    "TransportResponse",
]
