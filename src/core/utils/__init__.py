# Local Modules
from core.utils.enums import RequestType

__all__ = [
    "RequestType",
]
