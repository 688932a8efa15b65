from .settings import ClientSettings
from .tx_client import TransactionClient, codec_for, transport_for

__all__ = [
    "ClientSettings",
    "TransactionClient",
    "codec_for",
    "transport_for",
]
