"""Pydantic models for the cross-region reader custom resource."""

# Standard Library
from typing import Any, Dict, Optional

# Third Party
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

# Local Modules
from core.utils import RequestType
from ssm_reader.exceptions import MalformedEventError

REGION_PATTERN = r"^[a-z]{2}(-[a-z]+)+-\d+$"


def physical_resource_id(parameter_name: str, region: str) -> str:
    """Identity of a reader resource, derived only from what it reads."""
    return f"SsmReader-{region}-{parameter_name}"


class ReaderProperties(BaseModel):
    """The ``ResourceProperties`` of a reader custom resource.

    Attributes:
        service_token: ARN of the provider, added by CloudFormation.
        parameter_name: Name of the SSM parameter to read.
        region: Region whose Parameter Store holds the parameter.
        with_decryption: Whether to decrypt SecureString values.
    """

    model_config = ConfigDict(
        extra="forbid", populate_by_name=True, frozen=True
    )

    service_token: Optional[str] = Field(None, alias="ServiceToken")
    parameter_name: str = Field(..., alias="ParameterName", min_length=1)
    region: str = Field(..., alias="Region", pattern=REGION_PATTERN)
    with_decryption: bool = Field(False, alias="WithDecryption")

    @property
    def physical_resource_id(self) -> str:
        return physical_resource_id(self.parameter_name, self.region)


class LifecycleEvent(BaseModel):
    """A CloudFormation custom resource event, as forwarded by the provider.

    Resource properties are kept raw here and validated separately, so that a
    Delete can still succeed when the properties no longer validate.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    request_type: RequestType = Field(..., alias="RequestType")
    request_id: str = Field(..., alias="RequestId", min_length=1)
    stack_id: Optional[str] = Field(None, alias="StackId")
    logical_resource_id: Optional[str] = Field(
        None, alias="LogicalResourceId"
    )
    physical_resource_id: Optional[str] = Field(
        None, alias="PhysicalResourceId"
    )
    resource_properties: Dict[str, Any] = Field(
        default_factory=dict, alias="ResourceProperties"
    )
    old_resource_properties: Optional[Dict[str, Any]] = Field(
        None, alias="OldResourceProperties"
    )

    @model_validator(mode="after")
    def check_physical_id(self) -> "LifecycleEvent":
        if (
            self.request_type != RequestType.create
            and not self.physical_resource_id
        ):
            raise ValueError(
                f"{self.request_type.value} event is missing PhysicalResourceId"
            )
        return self

    @classmethod
    def parse(cls, event: Dict[str, Any]) -> "LifecycleEvent":
        """Validate a raw event, raising MalformedEventError on failure."""
        if not isinstance(event, dict):
            raise MalformedEventError(
                f"Expected a JSON object event, got {type(event).__name__}"
            )
        try:
            return cls.model_validate(event)
        except ValidationError as e:
            raise MalformedEventError(f"Malformed lifecycle event: {e}") from e

    def properties(self) -> ReaderProperties:
        """Validate and return the resource properties."""
        try:
            return ReaderProperties.model_validate(self.resource_properties)
        except ValidationError as e:
            raise MalformedEventError(
                f"Invalid reader properties on {self.request_type.value} "
                f"event {self.request_id}: {e}"
            ) from e


class CrossRegionReadRequest(BaseModel):
    """One read, built fresh for every lifecycle event.

    Attributes:
        parameter_name: Name of the SSM parameter.
        region: Source region.
        request_id: Correlation token of the lifecycle event.
        with_decryption: Whether to decrypt SecureString values.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    parameter_name: str = Field(..., min_length=1)
    region: str = Field(..., pattern=REGION_PATTERN)
    request_id: str = Field(..., min_length=1)
    with_decryption: bool = False

    @classmethod
    def from_event(
        cls, event: LifecycleEvent, properties: ReaderProperties
    ) -> "CrossRegionReadRequest":
        return cls(
            parameter_name=properties.parameter_name,
            region=properties.region,
            request_id=event.request_id,
            with_decryption=properties.with_decryption,
        )


class CrossRegionReadResult(BaseModel):
    """The outcome of a successful read.

    Attributes:
        value: The fetched parameter value, never empty by construction.
        physical_resource_id: Stable identity of the reader resource.
        no_echo: Whether CloudFormation should mask the value.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    value: str = Field(..., min_length=1)
    physical_resource_id: str = Field(..., min_length=1)
    no_echo: bool = False

    def to_response(self) -> Dict[str, Any]:
        """Render the result in the shape the CDK provider framework expects."""
        return {
            "PhysicalResourceId": self.physical_resource_id,
            "Data": {"Value": self.value},
            "NoEcho": self.no_echo,
        }
