"""Unit tests for the cross-region reader."""

# Standard Library
import threading
from unittest.mock import MagicMock

# Third Party
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

# Local Modules
from core.utils.config import RetryPolicy
from ssm_reader.exceptions import (
    CrossRegionReadError,
    ParameterAccessDeniedError,
    ParameterNotFoundError,
    ParameterStoreUnreachableError,
)
from ssm_reader.reader import NO_SDK_RETRIES, CrossRegionReader


def client_error(code, operation="GetParameter"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestCrossRegionReader:
    """Test cases for the CrossRegionReader class."""

    def setup_method(self):
        """Set up test fixtures before each test method."""
        self.parameter_name = "MinecraftHostedZoneID"
        self.region = "us-east-1"
        self.policy = RetryPolicy(
            max_attempts=5,
            base_delay_seconds=0.001,
            max_delay_seconds=0.002,
            max_elapsed_seconds=10.0,
        )
        self.ssm_client = MagicMock()
        self.client_factory = MagicMock(return_value=self.ssm_client)

    def make_reader(self, policy=None, **kwargs):
        return CrossRegionReader(
            policy or self.policy,
            client_factory=self.client_factory,
            **kwargs,
        )

    def test_read_success(self):
        """Test a value read on the first attempt."""
        self.ssm_client.get_parameter.return_value = "Z123ABC"

        value = self.make_reader().read(self.parameter_name, self.region)

        assert value == "Z123ABC"
        self.client_factory.assert_called_once_with(
            region_name=self.region, config=NO_SDK_RETRIES
        )
        self.ssm_client.get_parameter.assert_called_once_with(
            self.parameter_name, with_decryption=False
        )

    def test_read_with_decryption(self):
        """Test that the decryption flag reaches the client."""
        self.ssm_client.get_parameter.return_value = "secret"

        self.make_reader().read(
            self.parameter_name, self.region, with_decryption=True
        )

        self.ssm_client.get_parameter.assert_called_once_with(
            self.parameter_name, with_decryption=True
        )

    def test_sdk_retries_disabled(self):
        """Test that the client config leaves retries to the reader."""
        assert NO_SDK_RETRIES.retries["total_max_attempts"] == 1

    def test_throttled_three_times_then_success(self):
        """Test that throttling is retried until the value arrives."""
        self.ssm_client.get_parameter.side_effect = [
            client_error("ThrottlingException"),
            client_error("ThrottlingException"),
            client_error("ThrottlingException"),
            "Z123ABC",
        ]

        value = self.make_reader().read(self.parameter_name, self.region)

        assert value == "Z123ABC"
        assert self.ssm_client.get_parameter.call_count == 4

    def test_throttled_beyond_attempt_cap(self):
        """Test that persistent throttling ends as unreachable."""
        self.ssm_client.get_parameter.side_effect = client_error(
            "ThrottlingException"
        )
        policy = RetryPolicy(
            max_attempts=3, base_delay_seconds=0.001, max_delay_seconds=0.002
        )

        with pytest.raises(ParameterStoreUnreachableError) as exc_info:
            self.make_reader(policy).read(self.parameter_name, self.region)

        assert exc_info.value.attempts == 3
        assert "retry limit reached" in str(exc_info.value)
        assert self.ssm_client.get_parameter.call_count == 3

    def test_not_found_is_not_retried(self):
        """Test that a missing parameter fails at once with a clear message."""
        self.ssm_client.get_parameter.side_effect = client_error(
            "ParameterNotFound"
        )

        with pytest.raises(ParameterNotFoundError) as exc_info:
            self.make_reader().read(self.parameter_name, self.region)

        message = str(exc_info.value)
        assert self.parameter_name in message
        assert self.region in message
        assert exc_info.value.parameter_name == self.parameter_name
        assert exc_info.value.region == self.region
        assert self.ssm_client.get_parameter.call_count == 1

    @pytest.mark.parametrize(
        "code", ["AccessDeniedException", "UnrecognizedClientException"]
    )
    def test_access_denied_is_not_retried(self, code):
        """Test that permission failures fail at once and name the target."""
        self.ssm_client.get_parameter.side_effect = client_error(code)

        with pytest.raises(ParameterAccessDeniedError) as exc_info:
            self.make_reader().read(self.parameter_name, self.region)

        message = str(exc_info.value)
        assert code in message
        assert self.parameter_name in message
        assert self.region in message
        assert self.ssm_client.get_parameter.call_count == 1

    def test_unknown_error_is_not_retried(self):
        """Test that unclassified SSM errors fail at once."""
        self.ssm_client.get_parameter.side_effect = client_error(
            "ValidationException"
        )

        with pytest.raises(CrossRegionReadError) as exc_info:
            self.make_reader().read(self.parameter_name, self.region)

        assert not isinstance(exc_info.value, ParameterStoreUnreachableError)
        assert "ValidationException" in str(exc_info.value)
        assert self.ssm_client.get_parameter.call_count == 1

    def test_network_error_is_retried(self):
        """Test that connection failures count as transient."""
        self.ssm_client.get_parameter.side_effect = [
            EndpointConnectionError(
                endpoint_url="https://ssm.us-east-1.amazonaws.com"
            ),
            "Z123ABC",
        ]

        value = self.make_reader().read(self.parameter_name, self.region)

        assert value == "Z123ABC"
        assert self.ssm_client.get_parameter.call_count == 2

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_value_is_an_error(self, value):
        """Test that a response without a value is never reported as success."""
        self.ssm_client.get_parameter.return_value = value

        with pytest.raises(CrossRegionReadError, match="no value"):
            self.make_reader().read(self.parameter_name, self.region)

    def test_elapsed_budget_exhausted(self):
        """Test that the loop stops once the elapsed budget is spent."""
        self.ssm_client.get_parameter.side_effect = client_error(
            "ThrottlingException"
        )
        policy = RetryPolicy(
            max_attempts=10,
            base_delay_seconds=0.001,
            max_delay_seconds=0.002,
            max_elapsed_seconds=1.0,
        )
        clock = MagicMock(side_effect=[0.0, 5.0])

        with pytest.raises(ParameterStoreUnreachableError) as exc_info:
            self.make_reader(policy, clock=clock).read(
                self.parameter_name, self.region
            )

        assert "time budget exhausted" in str(exc_info.value)
        assert exc_info.value.attempts == 1

    def test_deadline_stops_retries(self):
        """Test that no backoff runs past the caller's deadline."""
        self.ssm_client.get_parameter.side_effect = client_error(
            "ThrottlingException"
        )
        reader = self.make_reader(clock=lambda: 100.0)

        with pytest.raises(ParameterStoreUnreachableError) as exc_info:
            reader.read(self.parameter_name, self.region, deadline=100.0005)

        assert "time budget exhausted" in str(exc_info.value)
        assert self.ssm_client.get_parameter.call_count == 1

    def test_cancelled_before_read(self):
        """Test that a cancelled reader makes no request."""
        reader = self.make_reader()
        reader.cancel()

        with pytest.raises(ParameterStoreUnreachableError, match="cancelled"):
            reader.read(self.parameter_name, self.region)

        assert reader.cancelled
        self.ssm_client.get_parameter.assert_not_called()

    def test_cancelled_during_backoff(self):
        """Test that setting the cancel event interrupts the retry wait."""
        cancel_event = threading.Event()
        policy = RetryPolicy(
            max_attempts=5, base_delay_seconds=30.0, max_delay_seconds=30.0
        )

        def throttle_and_cancel(*args, **kwargs):
            cancel_event.set()
            raise client_error("ThrottlingException")

        self.ssm_client.get_parameter.side_effect = throttle_and_cancel
        reader = self.make_reader(policy, cancel_event=cancel_event)

        with pytest.raises(ParameterStoreUnreachableError) as exc_info:
            reader.read(self.parameter_name, self.region)

        assert "cancelled" in str(exc_info.value)
        assert exc_info.value.attempts == 1

    def test_repeated_reads_are_identical(self):
        """Test that reading twice yields the same value and one client."""
        self.ssm_client.get_parameter.return_value = "Z123ABC"
        reader = self.make_reader()

        first = reader.read(self.parameter_name, self.region)
        second = reader.read(self.parameter_name, self.region)

        assert first == second == "Z123ABC"
        self.client_factory.assert_called_once()

    def test_one_client_per_region(self):
        """Test that each source region gets its own client."""
        self.ssm_client.get_parameter.return_value = "value"
        reader = self.make_reader()

        reader.read(self.parameter_name, "us-east-1")
        reader.read(self.parameter_name, "eu-west-1")

        regions = [
            call.kwargs["region_name"]
            for call in self.client_factory.call_args_list
        ]
        assert regions == ["us-east-1", "eu-west-1"]
