# Standard Library
from typing import Optional

# Third Party
from aws_cdk import (
    CustomResource,
    Duration,
    Stack,
    aws_iam as iam,
    custom_resources as cr,
)
from constructs import Construct

# Local Modules
from cdk.constants import SSM_READER_LAMBDA_SRC, ssm_parameter_arn
from cdk.custom_constructs.lambda_function import CustomLambdaFunction

PROVIDER_ID = "CrossRegionSsmReaderProvider"
RESOURCE_TYPE = "Custom::CrossRegionSsmReader"


class CrossRegionSsmReaderProvider(Construct):
    """The reader Lambda and provider framework, shared by a stack's readers."""

    def __init__(self, scope: Construct, id: str) -> None:
        super().__init__(scope, id)

        self.handler = CustomLambdaFunction(
            self,
            "ReaderFunction",
            src_folder_path=SSM_READER_LAMBDA_SRC,
            timeout=Duration.minutes(2),
            environment={
                "SSM_READER_MAX_ATTEMPTS": "5",
                "SSM_READER_MAX_ELAPSED_SECONDS": "60",
            },
            description="Reads SSM parameters published in another region",
        ).function

        self.provider = cr.Provider(
            self,
            "Provider",
            on_event_handler=self.handler,
        )

    @classmethod
    def of(cls, scope: Construct) -> "CrossRegionSsmReaderProvider":
        """Return the stack's provider, creating it on first use."""
        stack = Stack.of(scope)
        existing = stack.node.try_find_child(PROVIDER_ID)
        if existing is not None:
            return existing
        return cls(stack, PROVIDER_ID)


class CrossRegionSsmReader(Construct):
    """
    A custom resource that reads an SSM parameter from another region.

    The value is fetched again on every stack update. The physical resource
    ID only depends on the parameter name and region, so a changed value is
    an in-place update and never replaces the resources that consume it.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        parameter_name: str,
        region: str,
        with_decryption: Optional[bool] = False,
    ):
        super().__init__(scope, id)

        stack = Stack.of(self)
        provider = CrossRegionSsmReaderProvider.of(self)

        # 1. Allow the shared reader to get exactly this parameter
        self.parameter_arn = ssm_parameter_arn(
            stack.partition, region, stack.account, parameter_name
        )
        provider.handler.add_to_role_policy(
            iam.PolicyStatement(
                actions=["ssm:GetParameter"],
                resources=[self.parameter_arn],
            )
        )

        # 2. One custom resource per parameter
        self.resource = CustomResource(
            self,
            "SsmReaderCustomResource",
            service_token=provider.provider.service_token,
            resource_type=RESOURCE_TYPE,
            properties={
                "ParameterName": parameter_name,
                "Region": region,
                "WithDecryption": "true" if with_decryption else "false",
            },
        )
        # The role policy must exist before the first read
        self.resource.node.add_dependency(provider.handler.role)

        # 3. Expose the result as the 'value' attribute
        self.value = self.resource.get_att_string("Value")
