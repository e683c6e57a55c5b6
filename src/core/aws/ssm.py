"""SSM client wrapper for AWS Systems Manager Parameter Store operations."""

# Standard Library
from typing import Optional

# Third Party
import boto3
from botocore.config import Config
from botocore.exceptions import ClientError
from aws_lambda_powertools import Logger

# Initialize logger
logger = Logger(service="ssm-client-wrapper")


class SsmClient:
    """A wrapper for the Boto3 SSM client, bound to a single region."""

    def __init__(
        self,
        region_name: Optional[str] = None,
        config: Optional[Config] = None,
    ) -> None:
        """Initialize the SSM client.

        Parameters
        ----------
        region_name : Optional[str], optional
            The region whose Parameter Store is read, by default None
            (the Lambda's own region)
        config : Optional[Config], optional
            Botocore client configuration, by default None
        """
        self.region_name = region_name
        try:
            self.client = boto3.client(
                "ssm", region_name=region_name, config=config
            )
        except Exception as e:
            logger.error("Failed to create SSM client: %s", e)
            raise e

    def get_parameter(
        self, name: str, with_decryption: Optional[bool] = False
    ) -> Optional[str]:
        """Get the value of a single parameter.

        Parameters
        ----------
        name : str
            The name of the parameter.
        with_decryption : Optional[bool], optional
            Whether to decrypt SecureString values, by default False

        Returns
        -------
        Optional[str]
            The parameter value, or None when the response carries no value.

        Raises
        ------
        ClientError
            If SSM rejects the request (not found, access denied, throttled).
        """
        try:
            response = self.client.get_parameter(
                Name=name, WithDecryption=with_decryption
            )
        except ClientError as e:
            logger.error(
                f"Failed to get parameter {name} in {self.region_name}: {e}"
            )
            raise e
        return response.get("Parameter", {}).get("Value")
