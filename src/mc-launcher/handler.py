# Standard Library
import os
from typing import Dict, Any

# Third Party
from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.data_classes import (
    CloudWatchLogsEvent,
    event_source,
)
from aws_lambda_powertools.utilities.typing import LambdaContext

# Local Modules
from core.aws import EcsClient
from core.utils.config import load_launcher_config
from launcher import handle_query_logs

# Initialize logger
logger = Logger()

# Resolved once per container; reused across warm invocations
config = load_launcher_config(os.environ)
ecs_client = EcsClient(region_name=config.region)


@logger.inject_lambda_context(log_event=False)
@event_source(data_class=CloudWatchLogsEvent)
def lambda_handler(
    event: CloudWatchLogsEvent, context: LambdaContext
) -> Dict[str, Any]:
    """Lambda function that starts the game server on a DNS query.

    Parameters
    ----------
    event : CloudWatchLogsEvent
        The Route 53 query log subscription event.
    context : LambdaContext
        The context object containing runtime information.

    Returns
    -------
    Dict[str, Any]
        Whether a new task was requested.
    """
    launched = handle_query_logs(event, ecs_client, config)
    return {"launched": launched}
