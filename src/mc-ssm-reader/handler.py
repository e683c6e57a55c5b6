# Standard Library
import os
from typing import Dict, Any

# Third Party
from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.typing import LambdaContext

# Local Modules
from core.utils.config import load_retry_policy
from ssm_reader import CrossRegionReader, LifecycleHandler, on_event

# Initialize logger
logger = Logger()

# Resolved once per container; reused across warm invocations
retry_policy = load_retry_policy(os.environ)
lifecycle_handler = LifecycleHandler(CrossRegionReader(retry_policy))


@logger.inject_lambda_context(log_event=True, correlation_id_path="RequestId")
def lambda_handler(
    event: Dict[str, Any], context: LambdaContext
) -> Dict[str, Any]:
    """Custom resource provider entry point for the cross-region reader.

    Parameters
    ----------
    event : Dict[str, Any]
        The CloudFormation custom resource event, forwarded by the CDK
        provider framework.
    context : LambdaContext
        The Lambda context, used to bound the read by the remaining time.

    Returns
    -------
    Dict[str, Any]
        The provider response with ``PhysicalResourceId`` and, on Create and
        Update, the parameter value under ``Data.Value``.
    """
    return on_event(event, context, lifecycle_handler)
