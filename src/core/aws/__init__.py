"""Core AWS modules for the Minecraft on-demand Lambdas.

This module provides thin wrappers around the Boto3 clients the Lambdas use,
currently SSM Parameter Store (read by the cross-region reader) and ECS
(driven by the launcher).
"""

# Local Modules
from core.aws.ssm import SsmClient
from core.aws.ecs import EcsClient

__all__ = [
    "SsmClient",
    "EcsClient",
]
