"""Create/Update/Delete dispatch for the cross-region reader custom resource."""

# Standard Library
from typing import Any, Dict, Optional

# Third Party
from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.typing import LambdaContext

# Local Modules
from core.utils import RequestType
from ssm_reader.exceptions import MalformedEventError
from ssm_reader.models import (
    CrossRegionReadRequest,
    CrossRegionReadResult,
    LifecycleEvent,
)
from ssm_reader.reader import CrossRegionReader

# Initialize logger
logger = Logger(service="cross-region-ssm-reader-lifecycle")


class LifecycleHandler:
    """Drives a CrossRegionReader from CloudFormation lifecycle events.

    Parameters
    ----------
    reader : CrossRegionReader
        The reader used on Create and Update.
    """

    def __init__(self, reader: CrossRegionReader) -> None:
        self.reader = reader

    def handle(
        self, event: Dict[str, Any], deadline: Optional[float] = None
    ) -> Dict[str, Any]:
        """Handle one lifecycle event and return the provider response.

        Parameters
        ----------
        event : Dict[str, Any]
            The raw custom resource event.
        deadline : Optional[float], optional
            Absolute time on the reader's clock by which a read must give up,
            by default None

        Returns
        -------
        Dict[str, Any]
            ``PhysicalResourceId``, plus ``Data`` and ``NoEcho`` on
            Create/Update.

        Raises
        ------
        MalformedEventError
            If the event itself is invalid.
        CrossRegionReadError
            If a Create or Update read fails.
        """
        lifecycle_event = LifecycleEvent.parse(event)
        logger.append_keys(request_id=lifecycle_event.request_id)

        if lifecycle_event.request_type == RequestType.delete:
            return self.on_delete(lifecycle_event)

        try:
            if lifecycle_event.request_type == RequestType.create:
                result = self.on_create(lifecycle_event, deadline)
            else:
                result = self.on_update(lifecycle_event, deadline)
        except Exception:
            logger.exception(
                f"{lifecycle_event.request_type.value} of "
                f"{lifecycle_event.logical_resource_id} failed"
            )
            raise
        return result.to_response()

    def _read(
        self, request: CrossRegionReadRequest, deadline: Optional[float]
    ) -> str:
        logger.info(
            f"Reading '{request.parameter_name}' from {request.region}",
            extra={"request_id": request.request_id},
        )
        return self.reader.read(
            request.parameter_name,
            request.region,
            with_decryption=request.with_decryption,
            deadline=deadline,
        )

    def on_create(
        self, event: LifecycleEvent, deadline: Optional[float] = None
    ) -> CrossRegionReadResult:
        properties = event.properties()
        request = CrossRegionReadRequest.from_event(event, properties)
        value = self._read(request, deadline)
        return CrossRegionReadResult(
            value=value,
            physical_resource_id=properties.physical_resource_id,
            no_echo=properties.with_decryption,
        )

    def on_update(
        self, event: LifecycleEvent, deadline: Optional[float] = None
    ) -> CrossRegionReadResult:
        """Re-read the value. The identity only moves when the target moves."""
        properties = event.properties()
        new_id = properties.physical_resource_id
        if new_id != event.physical_resource_id:
            logger.info(
                f"Read target changed from {event.physical_resource_id} to "
                f"{new_id}; the resource will be replaced"
            )
        request = CrossRegionReadRequest.from_event(event, properties)
        value = self._read(request, deadline)
        return CrossRegionReadResult(
            value=value,
            physical_resource_id=new_id,
            no_echo=properties.with_decryption,
        )

    def on_delete(self, event: LifecycleEvent) -> Dict[str, Any]:
        """Nothing is mutated remotely, so teardown always succeeds."""
        try:
            properties = event.properties()
            logger.info(
                f"Releasing reader for '{properties.parameter_name}' in "
                f"{properties.region}; nothing to delete"
            )
        except MalformedEventError as e:
            logger.warning(f"Ignoring invalid properties on delete: {e}")
        except Exception as e:
            logger.warning(f"Ignoring error during delete: {e}")
        return {"PhysicalResourceId": event.physical_resource_id}


def on_event(
    event: Dict[str, Any],
    context: LambdaContext,
    handler: LifecycleHandler,
) -> Dict[str, Any]:
    """Handle an event within the invoking Lambda's remaining time.

    The read deadline is the Lambda's remaining time minus the retry policy's
    margin, so a failure can still be reported before the function times out.
    """
    reader = handler.reader
    remaining = context.get_remaining_time_in_millis() / 1000.0
    deadline = (
        reader.now()
        + remaining
        - reader.retry_policy.deadline_margin_seconds
    )
    return handler.handle(event, deadline=deadline)
