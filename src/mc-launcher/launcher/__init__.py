"""
Minecraft Launcher

Starts the Fargate game server when someone resolves its DNS name. Route 53
query logs for the server's sub-domain are delivered to this function through
a CloudWatch Logs subscription filter.
"""

# Local Modules
from .server import extract_queries, handle_query_logs, launch_server

__all__ = [
    "extract_queries",
    "handle_query_logs",
    "launch_server",
]
