"""External integrations: Midtrans payment gateway and upload storage."""
from .file_storage import LocalFileStorage
from .midtrans_client import GatewayError, GatewayErrorType, GatewayStatus, MidtransClient

__all__ = [
    "GatewayError",
    "GatewayErrorType",
    "GatewayStatus",
    "LocalFileStorage",
    "MidtransClient",
]
