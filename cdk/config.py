# Standard Library
import json
import os
from typing import TYPE_CHECKING, Dict, Literal, Mapping, Optional

# Third Party
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from aws_cdk import App


class EditionSettings(BaseModel):
    """How a Minecraft edition is served.

    Attributes:
        image: Public container image for the server.
        port: Game port inside and outside the container.
        protocol: Transport of the game port.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    image: str
    port: int
    protocol: Literal["tcp", "udp"]


EDITIONS: Dict[str, EditionSettings] = {
    "java": EditionSettings(
        image="itzg/minecraft-server", port=25565, protocol="tcp"
    ),
    "bedrock": EditionSettings(
        image="itzg/minecraft-bedrock-server", port=19132, protocol="udp"
    ),
}


class StackConfig(BaseModel):
    """Deployment options shared by the domain and server stacks.

    Unknown keys are rejected, so a misspelled option fails synthesis instead
    of being ignored.

    Attributes:
        domain_name: Existing root domain with a Route 53 hosted zone.
        subdomain_part: Label prepended to the root domain for the server.
        server_region: Region of the server stack.
        minecraft_edition: ``java`` or ``bedrock``.
        shutdown_minutes: Idle minutes before the watchdog stops the server.
        startup_minutes: Minutes the watchdog waits for a first connection.
        use_fargate_spot: Run on FARGATE_SPOT instead of FARGATE.
        task_cpu: Fargate task CPU units.
        task_memory: Fargate task memory in MiB.
        vpc_id: Existing VPC to use; a new VPC is created when empty.
        sns_email_address: Where server start/stop notifications go; no
            topic is created when empty.
        debug: Ship the server container's logs to CloudWatch.
        account: AWS account of both stacks.
        root_hosted_zone_id: ID of the root domain's hosted zone; looked up
            by name when empty.
        minecraft_image_env: Extra environment for the server container.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    domain_name: str = Field(..., min_length=1)
    subdomain_part: str = Field("minecraft", min_length=1)
    server_region: str = "ap-southeast-2"
    minecraft_edition: Literal["java", "bedrock"] = "java"
    shutdown_minutes: int = Field(20, ge=1)
    startup_minutes: int = Field(10, ge=1)
    use_fargate_spot: bool = True
    task_cpu: int = 4096
    task_memory: int = 16384
    vpc_id: str = ""
    sns_email_address: str = ""
    debug: bool = False
    account: Optional[str] = None
    root_hosted_zone_id: str = ""
    minecraft_image_env: Dict[str, str] = Field(default_factory=dict)

    @property
    def subdomain(self) -> str:
        return f"{self.subdomain_part}.{self.domain_name}"

    @property
    def edition(self) -> EditionSettings:
        return EDITIONS[self.minecraft_edition]


def _context_values(context: object) -> Dict[str, object]:
    """Normalise the ``minecraft`` context into a plain dict.

    ``cdk.json`` yields a mapping, while ``-c minecraft=...`` on the command
    line yields the raw JSON string.
    """
    if context is None:
        return {}
    if isinstance(context, str):
        try:
            context = json.loads(context)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"The 'minecraft' context is not valid JSON: {e}"
            ) from e
    if not isinstance(context, Mapping):
        raise ValueError(
            "The 'minecraft' context must be a JSON object, got "
            f"{type(context).__name__}"
        )
    return dict(context)


def resolve_config(
    app: "App", environ: Optional[Mapping[str, str]] = None
) -> StackConfig:
    """Resolve the configuration once, at app start-up.

    Options come from the ``minecraft`` context key (``cdk.json`` or
    ``-c minecraft=...``). ``DOMAIN_NAME`` and ``CDK_DEFAULT_ACCOUNT`` fill in
    ``domain_name`` and ``account`` when the context does not set them.

    Parameters
    ----------
    app : App
        The CDK application.
    environ : Optional[Mapping[str, str]], optional
        Environment to fall back on, by default os.environ

    Returns
    -------
    StackConfig
        The validated configuration.

    Raises
    ------
    ValueError
        If the context value is not a JSON object or a mapping.
    """
    environ = os.environ if environ is None else environ
    values = _context_values(app.node.try_get_context("minecraft"))

    if not values.get("domain_name") and environ.get("DOMAIN_NAME"):
        values["domain_name"] = environ["DOMAIN_NAME"]
    if not values.get("account") and environ.get("CDK_DEFAULT_ACCOUNT"):
        values["account"] = environ["CDK_DEFAULT_ACCOUNT"]

    return StackConfig.model_validate(values)
