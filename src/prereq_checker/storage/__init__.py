"""
Storage provider detection and validation
"""

from src.prereq_checker.storage.context import StorageContext
from src.prereq_checker.storage.detector import detect, detect_backends
from src.prereq_checker.storage.validators import (
    IbmCloudValidator,
    OdfValidator,
    PortworxValidator,
    StorageFusionValidator,
    StorageValidator,
)

__all__ = [
    "IbmCloudValidator",
    "OdfValidator",
    "PortworxValidator",
    "StorageContext",
    "StorageFusionValidator",
    "StorageValidator",
    "detect",
    "detect_backends",
]
