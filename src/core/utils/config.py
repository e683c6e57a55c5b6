"""Runtime configuration for the Lambda functions.

Each handler module resolves its configuration once, at import time, from the
environment the CDK stacks set on the function. Components receive the
resulting objects and never read the environment themselves.
"""

# Standard Library
from typing import Mapping, Optional

# Third Party
from pydantic import BaseModel, ConfigDict, Field, model_validator


class RetryPolicy(BaseModel):
    """Bounded exponential backoff for cross-region parameter reads.

    Attributes:
        max_attempts: Total number of attempts, including the first.
        base_delay_seconds: Delay before the second attempt.
        max_delay_seconds: Upper bound on any single delay.
        max_elapsed_seconds: Upper bound on the whole retry loop.
        deadline_margin_seconds: Time kept in reserve before the Lambda
            deadline so the handler can still report a failure.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_attempts: int = Field(5, ge=1, le=20)
    base_delay_seconds: float = Field(0.5, gt=0)
    max_delay_seconds: float = Field(8.0, gt=0)
    max_elapsed_seconds: float = Field(60.0, gt=0)
    deadline_margin_seconds: float = Field(5.0, ge=0)

    @model_validator(mode="after")
    def check_delays(self) -> "RetryPolicy":
        if self.base_delay_seconds > self.max_delay_seconds:
            raise ValueError(
                "base_delay_seconds must not exceed max_delay_seconds"
            )
        return self

    def backoff_delay(self, attempt: int) -> float:
        """Return the delay to wait after the given (1-based) failed attempt."""
        return min(
            self.max_delay_seconds,
            self.base_delay_seconds * (2 ** (attempt - 1)),
        )


class LauncherConfig(BaseModel):
    """Where the launcher finds the game server's ECS service.

    Attributes:
        region: Region of the server stack.
        cluster: ECS cluster name.
        service: ECS service name.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    region: str = Field(..., min_length=1)
    cluster: str = Field(..., min_length=1)
    service: str = Field(..., min_length=1)


def _optional(environ: Mapping[str, str], key: str) -> Optional[str]:
    value = environ.get(key)
    return value if value else None


def load_retry_policy(environ: Mapping[str, str]) -> RetryPolicy:
    """Build the reader's retry policy from ``SSM_READER_*`` variables.

    Unset variables fall back to the model defaults.
    """
    overrides = {
        "max_attempts": _optional(environ, "SSM_READER_MAX_ATTEMPTS"),
        "base_delay_seconds": _optional(
            environ, "SSM_READER_BASE_DELAY_SECONDS"
        ),
        "max_delay_seconds": _optional(environ, "SSM_READER_MAX_DELAY_SECONDS"),
        "max_elapsed_seconds": _optional(
            environ, "SSM_READER_MAX_ELAPSED_SECONDS"
        ),
    }
    return RetryPolicy(
        **{key: value for key, value in overrides.items() if value is not None}
    )


def load_launcher_config(environ: Mapping[str, str]) -> LauncherConfig:
    """Build the launcher configuration from ``REGION``, ``CLUSTER`` and ``SERVICE``."""
    return LauncherConfig(
        region=environ.get("REGION", ""),
        cluster=environ.get("CLUSTER", ""),
        service=environ.get("SERVICE", ""),
    )
