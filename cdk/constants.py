"""Names shared by the domain stack and the server stack.

The SSM parameter names are the contract between the two stacks. The domain
stack writes them in ``DOMAIN_STACK_REGION`` and the server stack reads them
from there.
"""

CLUSTER_NAME = "minecraft"
SERVICE_NAME = "minecraft-server"
MC_SERVER_CONTAINER_NAME = "minecraft-server"
WATCHDOG_SERVER_CONTAINER_NAME = "minecraft-ecsfargate-watchdog"

# Route 53 query logging only delivers to CloudWatch Logs in us-east-1
DOMAIN_STACK_REGION = "us-east-1"

ECS_VOLUME_NAME = "data"
ECS_VOLUME_PATH = "/data"

HOSTED_ZONE_SSM_PARAMETER = "MinecraftHostedZoneID"
LAUNCHER_LAMBDA_ARN_SSM_PARAMETER = "LauncherLambdaRoleArn"

WATCHDOG_IMAGE = "doctorray/minecraft-ecsfargate-watchdog"

# Source folders under src/ for the Lambda functions
LAUNCHER_LAMBDA_SRC = "mc-launcher"
SSM_READER_LAMBDA_SRC = "mc-ssm-reader"


def hosted_zone_arn(hosted_zone_id: str, partition: str = "aws") -> str:
    """ARN of a Route 53 hosted zone, as used in IAM policy resources."""
    return f"arn:{partition}:route53:::hostedzone/{hosted_zone_id}"


def ssm_parameter_arn(
    partition: str, region: str, account: str, parameter_name: str
) -> str:
    """Build the ARN of an SSM parameter, with or without a leading slash."""
    name = (
        parameter_name
        if parameter_name.startswith("/")
        else f"/{parameter_name}"
    )
    return f"arn:{partition}:ssm:{region}:{account}:parameter{name}"
