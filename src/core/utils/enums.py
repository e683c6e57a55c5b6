# Standard Library
from enum import Enum


class RequestType(str, Enum):
    """Enumeration of CloudFormation custom resource request types.

    Attributes:
        create: The resource is being created.
        update: The resource's properties changed, or the stack was updated.
        delete: The resource is being deleted or replaced.
    """

    create = "Create"
    update = "Update"
    delete = "Delete"
