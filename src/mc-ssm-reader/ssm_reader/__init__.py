"""
Minecraft Cross-Region SSM Reader

This package backs the CrossRegionSsmReader custom resource. It reads an SSM
parameter published by a stack in another region and returns it to
CloudFormation as the ``Value`` attribute, with a physical resource ID that
depends only on the parameter name and region.
"""

# Local Modules
from .exceptions import (
    CrossRegionReadError,
    MalformedEventError,
    ParameterAccessDeniedError,
    ParameterNotFoundError,
    ParameterStoreUnreachableError,
)
from .lifecycle import LifecycleHandler, on_event
from .models import (
    CrossRegionReadRequest,
    CrossRegionReadResult,
    LifecycleEvent,
    ReaderProperties,
    physical_resource_id,
)
from .reader import CrossRegionReader

__all__ = [
    "CrossRegionReadError",
    "MalformedEventError",
    "ParameterAccessDeniedError",
    "ParameterNotFoundError",
    "ParameterStoreUnreachableError",
    "LifecycleHandler",
    "on_event",
    "CrossRegionReadRequest",
    "CrossRegionReadResult",
    "LifecycleEvent",
    "ReaderProperties",
    "physical_resource_id",
    "CrossRegionReader",
]
