"""ECS client wrapper for the Fargate service that runs the game server."""

# Standard Library
from typing import Dict, Any, Optional

# Third Party
import boto3
from botocore.exceptions import ClientError
from aws_lambda_powertools import Logger

# Initialize logger
logger = Logger(service="ecs-client-wrapper")


class EcsClient:
    """A wrapper for the Boto3 ECS client."""

    def __init__(self, region_name: Optional[str] = None) -> None:
        try:
            self.client = boto3.client("ecs", region_name=region_name)
        except Exception as e:
            logger.error("Failed to create ECS client: %s", e)
            raise e

    def describe_service(self, cluster: str, service: str) -> Dict[str, Any]:
        """Describe a single ECS service.

        Parameters
        ----------
        cluster : str
            The name or ARN of the cluster.
        service : str
            The name or ARN of the service.

        Returns
        -------
        Dict[str, Any]
            The service description.

        Raises
        ------
        LookupError
            If ECS reports no such service in the cluster.
        ClientError
            If the request to ECS fails.
        """
        try:
            response = self.client.describe_services(
                cluster=cluster, services=[service]
            )
        except ClientError as e:
            logger.error(
                f"Error describing service '{service}' in cluster "
                f"'{cluster}': {e}"
            )
            raise e

        services = response.get("services", [])
        if not services:
            failures = response.get("failures", [])
            raise LookupError(
                f"Service '{service}' not found in cluster '{cluster}': "
                f"{failures}"
            )
        return services[0]

    def set_desired_count(
        self, cluster: str, service: str, desired_count: int
    ) -> Dict[str, Any]:
        """Update the desired task count of an ECS service.

        Parameters
        ----------
        cluster : str
            The name or ARN of the cluster.
        service : str
            The name or ARN of the service.
        desired_count : int
            The number of tasks the service should run.

        Returns
        -------
        Dict[str, Any]
            The updated service description.
        """
        try:
            logger.info(
                f"Setting desired count of '{service}' to {desired_count}"
            )
            response = self.client.update_service(
                cluster=cluster, service=service, desiredCount=desired_count
            )
            return response.get("service", {})
        except ClientError as e:
            logger.error(f"Error updating service '{service}': {e}")
            raise e
