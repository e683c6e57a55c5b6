# Standard Library
import os
from typing import Optional, List, Dict

# Third Party
from aws_cdk import (
    Duration,
    RemovalPolicy,
    BundlingOptions,
    aws_iam as iam,
    aws_lambda as lambda_,
    aws_logs as logs,
)
from constructs import Construct


class CustomLambdaFunction(Construct):
    def __init__(
        self,
        scope: Construct,
        id: str,
        src_folder_path: str,
        runtime: lambda_.Runtime = lambda_.Runtime.PYTHON_3_12,
        memory_size: Optional[int] = 256,
        timeout: Optional[Duration] = Duration.seconds(30),
        environment: Optional[Dict[str, str]] = None,
        initial_policy: Optional[List[iam.PolicyStatement]] = None,
        log_retention: Optional[logs.RetentionDays] = logs.RetentionDays.THREE_DAYS,
        description: Optional[str] = None,
        **kwargs,
    ) -> None:
        """Custom Lambda Construct for AWS CDK from a source folder.

        The function is packaged from ``src/<src_folder_path>`` together with
        the shared ``src/core`` package. Dependencies listed in the folder's
        ``requirements.txt`` are installed into the bundle.

        Parameters
        ----------
        scope : Construct
            The scope in which this construct is defined.
        id : str
            The ID of the construct.
        src_folder_path : str
            Folder under ``src`` containing ``handler.py``.
        runtime : lambda_.Runtime, optional
            Runtime for the Lambda function, by default lambda_.Runtime.PYTHON_3_12
        memory_size : Optional[int], optional
            Memory size for the Lambda function in MB, by default 256
        timeout : Optional[Duration], optional
            Timeout for the Lambda function, by default Duration.seconds(30)
        environment : Optional[Dict[str, str]], optional
            Environment variables for the Lambda function, by default None
        initial_policy : Optional[List[iam.PolicyStatement]], optional
            Initial IAM policy statements to attach to the Lambda function,
            by default None
        log_retention : Optional[logs.RetentionDays], optional
            Retention of the function's log group, by default THREE_DAYS
        description : Optional[str], optional
            Description for the Lambda function, by default None
        """
        super().__init__(scope, id, **kwargs)

        # Set variables for Lambda function
        name = os.path.basename(src_folder_path)
        src_root = os.path.join(os.getcwd(), "src")
        requirements_path = os.path.join(
            src_root, src_folder_path, "requirements.txt"
        )

        # Copy the function folder and the shared core package side by side
        commands = []
        if os.path.exists(requirements_path):
            commands.append(
                f"pip install -r {src_folder_path}/requirements.txt "
                "-t /asset-output/"
            )
        commands.append("cp -r core /asset-output/")
        commands.append(f"cp -r {src_folder_path}/. /asset-output/")

        code_asset = lambda_.Code.from_asset(
            src_root,
            exclude=["**/__pycache__", "**/*.pyc"],
            bundling=BundlingOptions(
                image=runtime.bundling_image,
                command=["bash", "-c", " && ".join(commands)],
            ),
        )

        # Default environment variables for Powertools for AWS Lambda
        powertools_env_vars = {
            "POWERTOOLS_SERVICE_NAME": name,
            "LOG_LEVEL": "INFO",
        }

        # Merge provided environment variables with Powertools defaults
        if environment:
            powertools_env_vars.update(environment)

        self.log_group = logs.LogGroup(
            self,
            f"{name}-log-group",
            retention=log_retention,
            removal_policy=RemovalPolicy.DESTROY,
        )

        # Create Lambda function from source folder
        self.function = lambda_.Function(
            self,
            f"{name}-function",
            runtime=runtime,
            handler="handler.lambda_handler",
            code=code_asset,
            memory_size=memory_size,
            timeout=timeout,
            environment=powertools_env_vars,
            initial_policy=initial_policy,
            log_group=self.log_group,
            description=description or f"Lambda function for {name}",
        )
