"""Reads SSM parameters from another region with an explicit retry policy."""

# Standard Library
import time
import threading
from typing import Callable, Dict, Optional

# Third Party
from botocore.config import Config
from botocore.exceptions import (
    ClientError,
    ConnectionError as BotoConnectionError,
    HTTPClientError,
)
from aws_lambda_powertools import Logger

# Local Modules
from core.aws import SsmClient
from core.utils.config import RetryPolicy
from ssm_reader.exceptions import (
    CrossRegionReadError,
    ParameterAccessDeniedError,
    ParameterNotFoundError,
    ParameterStoreUnreachableError,
)

# Initialize logger
logger = Logger(service="cross-region-ssm-reader")

NOT_FOUND_CODES = frozenset({"ParameterNotFound", "ParameterVersionNotFound"})
ACCESS_DENIED_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "UnrecognizedClientException",
        "InvalidClientTokenId",
    }
)
RETRYABLE_CODES = frozenset(
    {
        "ThrottlingException",
        "Throttling",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "InternalServerError",
        "InternalFailure",
        "ServiceUnavailable",
    }
)

# One SDK attempt per call; CrossRegionReader.read does the retrying
NO_SDK_RETRIES = Config(
    retries={"total_max_attempts": 1, "mode": "standard"},
    connect_timeout=5,
    read_timeout=10,
)


class CrossRegionReader:
    """Read-only access to Parameter Store in any region.

    Parameters
    ----------
    retry_policy : RetryPolicy
        Bounds on attempts, backoff and elapsed time for transient failures.
    client_factory : Callable[..., SsmClient], optional
        Builds a client for a region, by default SsmClient
    cancel_event : Optional[threading.Event], optional
        Event that aborts an in-flight retry loop when set, by default a
        private event controlled through cancel()
    clock : Callable[[], float], optional
        Monotonic clock used for the elapsed-time budget and deadlines
    """

    def __init__(
        self,
        retry_policy: RetryPolicy,
        client_factory: Callable[..., SsmClient] = SsmClient,
        cancel_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.retry_policy = retry_policy
        self._client_factory = client_factory
        self._cancel_event = cancel_event or threading.Event()
        self._clock = clock
        self._clients: Dict[str, SsmClient] = {}

    def cancel(self) -> None:
        """Abort any retry loop currently waiting on backoff."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def now(self) -> float:
        """Current time on the clock that deadlines are measured against."""
        return self._clock()

    def _client_for(self, region: str) -> SsmClient:
        if region not in self._clients:
            self._clients[region] = self._client_factory(
                region_name=region, config=NO_SDK_RETRIES
            )
        return self._clients[region]

    def read(
        self,
        parameter_name: str,
        region: str,
        with_decryption: bool = False,
        deadline: Optional[float] = None,
    ) -> str:
        """Read one parameter value from ``region``.

        Parameters
        ----------
        parameter_name : str
            The SSM parameter name.
        region : str
            The region that holds the parameter.
        with_decryption : bool, optional
            Whether to decrypt SecureString values, by default False
        deadline : Optional[float], optional
            Absolute time on this reader's clock after which no further
            attempt is started, by default None

        Returns
        -------
        str
            The parameter value.

        Raises
        ------
        ParameterNotFoundError
            The parameter does not exist. Never retried.
        ParameterAccessDeniedError
            The caller may not read the parameter. Never retried.
        ParameterStoreUnreachableError
            Throttling or network failures outlasted the retry budget, or the
            read was cancelled.
        CrossRegionReadError
            Any other rejection, or a response without a value.
        """
        client = self._client_for(region)
        policy = self.retry_policy
        started = self._clock()
        attempt = 0

        while True:
            if self.cancelled:
                raise ParameterStoreUnreachableError(
                    parameter_name, region, attempt, "read was cancelled"
                )
            attempt += 1

            try:
                value = client.get_parameter(
                    parameter_name, with_decryption=with_decryption
                )
            except ClientError as e:
                code = e.response.get("Error", {}).get("Code", "")
                if code in NOT_FOUND_CODES:
                    raise ParameterNotFoundError(parameter_name, region) from e
                if code in ACCESS_DENIED_CODES:
                    raise ParameterAccessDeniedError(
                        parameter_name, region, code
                    ) from e
                if code not in RETRYABLE_CODES:
                    raise CrossRegionReadError(
                        parameter_name,
                        region,
                        f"SSM rejected the read of '{parameter_name}' in "
                        f"{region} with {code or 'an unknown error'}: {e}",
                    ) from e
                reason = f"{code} from SSM"
            except (BotoConnectionError, HTTPClientError) as e:
                reason = f"network error: {e}"
            else:
                if not value:
                    raise CrossRegionReadError(
                        parameter_name,
                        region,
                        f"SSM returned no value for '{parameter_name}' in "
                        f"{region}",
                    )
                if attempt > 1:
                    logger.info(
                        f"Read '{parameter_name}' from {region} after "
                        f"{attempt} attempts"
                    )
                return value

            if attempt >= policy.max_attempts:
                raise ParameterStoreUnreachableError(
                    parameter_name,
                    region,
                    attempt,
                    f"retry limit reached, last failure was {reason}",
                )

            delay = policy.backoff_delay(attempt)
            now = self._clock()
            budget = policy.max_elapsed_seconds - (now - started)
            if deadline is not None:
                budget = min(budget, deadline - now)
            if delay > budget:
                raise ParameterStoreUnreachableError(
                    parameter_name,
                    region,
                    attempt,
                    f"time budget exhausted, last failure was {reason}",
                )

            logger.warning(
                f"Attempt {attempt} to read '{parameter_name}' from {region} "
                f"failed ({reason}); retrying in {delay:.2f}s"
            )
            if self._cancel_event.wait(delay):
                raise ParameterStoreUnreachableError(
                    parameter_name, region, attempt, "read was cancelled"
                )
