"""This module provides custom constructs for the Minecraft CDK application.

The constructs included in this module are:
- CustomLambdaFunction: Lambda function packaged from ``src`` with the shared
  ``core`` package and Powertools defaults.
- CrossRegionSsmReader: Custom resource that reads an SSM parameter published
  in another region.
- CrossRegionSsmReaderProvider: The Lambda and provider framework shared by
  all readers in a stack.
"""

from .lambda_function import CustomLambdaFunction
from .cross_region_ssm_reader import (
    CrossRegionSsmReader,
    CrossRegionSsmReaderProvider,
    ssm_parameter_arn,
)

__all__ = [
    "CustomLambdaFunction",
    "CrossRegionSsmReader",
    "CrossRegionSsmReaderProvider",
    "ssm_parameter_arn",
]
