# Standard Library
from typing import List

# Third Party
from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.data_classes import CloudWatchLogsEvent

# Local Modules
from core.aws import EcsClient
from core.utils.config import LauncherConfig

# Initialize logger
logger = Logger(service="minecraft-launcher")


def extract_queries(event: CloudWatchLogsEvent) -> List[str]:
    """Return the Route 53 query log lines carried by a subscription event.

    Parameters
    ----------
    event : CloudWatchLogsEvent
        The CloudWatch Logs subscription event.

    Returns
    -------
    List[str]
        One entry per DNS query. Control messages carry none.
    """
    decoded = event.parse_logs_data()
    if decoded.message_type == "CONTROL_MESSAGE":
        logger.info("Ignoring CloudWatch Logs control message")
        return []
    return [log_event.message for log_event in decoded.log_events]


def launch_server(ecs_client: EcsClient, config: LauncherConfig) -> bool:
    """Start the game server unless it is already running.

    Parameters
    ----------
    ecs_client : EcsClient
        Client for the server stack's region.
    config : LauncherConfig
        Cluster and service to start.

    Returns
    -------
    bool
        True if the desired count was raised, False if a task was already
        requested.
    """
    service = ecs_client.describe_service(config.cluster, config.service)
    desired_count = service.get("desiredCount", 0)

    if desired_count > 0:
        logger.info(
            f"Service {config.service} already has desired count "
            f"{desired_count}; nothing to do"
        )
        return False

    ecs_client.set_desired_count(config.cluster, config.service, 1)
    logger.info(f"Requested a task for {config.service} in {config.region}")
    return True


def handle_query_logs(
    event: CloudWatchLogsEvent, ecs_client: EcsClient, config: LauncherConfig
) -> bool:
    """Start the server when the subscription delivered at least one query."""
    queries = extract_queries(event)
    if not queries:
        return False
    logger.info(f"Received {len(queries)} DNS queries", extra={"queries": queries})
    return launch_server(ecs_client, config)
