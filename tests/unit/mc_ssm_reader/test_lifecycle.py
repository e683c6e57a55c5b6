"""Unit tests for the reader's custom resource lifecycle."""

# Standard Library
from unittest.mock import MagicMock, patch

# Third Party
import pytest
from botocore.exceptions import ClientError

# Local Modules
from cdk.constants import hosted_zone_arn
from core.utils.config import RetryPolicy
from ssm_reader.exceptions import (
    MalformedEventError,
    ParameterNotFoundError,
    ParameterStoreUnreachableError,
)
from ssm_reader.lifecycle import LifecycleHandler, on_event
from ssm_reader.reader import CrossRegionReader


class TestLifecycleHandler:
    """Test cases for the LifecycleHandler class."""

    def setup_method(self):
        """Set up test fixtures before each test method."""
        self.parameter_name = "MinecraftHostedZoneID"
        self.region = "us-east-1"
        self.expected_id = f"SsmReader-{self.region}-{self.parameter_name}"
        self.ssm_client = MagicMock()
        self.ssm_client.get_parameter.return_value = "Z123ABC"
        self.policy = RetryPolicy(
            max_attempts=2, base_delay_seconds=0.001, max_delay_seconds=0.002
        )
        self.reader = CrossRegionReader(
            self.policy, client_factory=MagicMock(return_value=self.ssm_client)
        )
        self.handler = LifecycleHandler(self.reader)

    def make_event(self, request_type, physical_id=None, **properties):
        resource_properties = {
            "ServiceToken": "arn:aws:lambda:ap-southeast-2:123456789012:function:provider",
            "ParameterName": self.parameter_name,
            "Region": self.region,
            "WithDecryption": "false",
        }
        resource_properties.update(properties)
        event = {
            "RequestType": request_type,
            "RequestId": f"{request_type.lower()}-request",
            "StackId": "arn:aws:cloudformation:ap-southeast-2:123456789012:stack/minecraft-server-stack/1",
            "LogicalResourceId": "HostedZoneIdReader",
            "ResourceType": "Custom::CrossRegionSsmReader",
            "ResourceProperties": resource_properties,
        }
        if physical_id is not None:
            event["PhysicalResourceId"] = physical_id
        return event

    def test_create_returns_value_and_stable_id(self):
        """Test that Create reads the value under a derived identity."""
        response = self.handler.handle(self.make_event("Create"))

        assert response == {
            "PhysicalResourceId": self.expected_id,
            "Data": {"Value": "Z123ABC"},
            "NoEcho": False,
        }

    def test_create_twice_gives_identical_ids(self):
        """Test that the identity does not depend on the request."""
        first = self.handler.handle(self.make_event("Create"))
        second = self.handler.handle(self.make_event("Create"))

        assert first["PhysicalResourceId"] == second["PhysicalResourceId"]

    def test_value_feeds_hosted_zone_arn(self):
        """Test that a read hosted zone ID yields the policy resource ARN."""
        response = self.handler.handle(self.make_event("Create"))

        arn = hosted_zone_arn(response["Data"]["Value"])

        assert arn == "arn:aws:route53:::hostedzone/Z123ABC"

    def test_update_with_changed_value_keeps_id(self):
        """Test that a changed value is an in-place update."""
        self.ssm_client.get_parameter.return_value = "Z999XYZ"
        event = self.make_event("Update", physical_id=self.expected_id)

        response = self.handler.handle(event)

        assert response["PhysicalResourceId"] == self.expected_id
        assert response["Data"]["Value"] == "Z999XYZ"

    def test_update_with_new_target_changes_id(self):
        """Test that pointing at another parameter replaces the resource."""
        event = self.make_event(
            "Update",
            physical_id=self.expected_id,
            ParameterName="LauncherLambdaRoleArn",
        )

        response = self.handler.handle(event)

        assert response["PhysicalResourceId"] == (
            f"SsmReader-{self.region}-LauncherLambdaRoleArn"
        )

    def test_secure_value_is_masked(self):
        """Test that decrypted values are returned with NoEcho."""
        response = self.handler.handle(
            self.make_event("Create", WithDecryption="true")
        )

        assert response["NoEcho"] is True
        self.ssm_client.get_parameter.assert_called_once_with(
            self.parameter_name, with_decryption=True
        )

    def test_delete_does_not_read(self):
        """Test that Delete succeeds without touching Parameter Store."""
        self.ssm_client.get_parameter.side_effect = ClientError(
            {"Error": {"Code": "ThrottlingException", "Message": "Slow down"}},
            "GetParameter",
        )
        event = self.make_event("Delete", physical_id=self.expected_id)

        response = self.handler.handle(event)

        assert response == {"PhysicalResourceId": self.expected_id}
        self.ssm_client.get_parameter.assert_not_called()

    def test_delete_with_invalid_properties_succeeds(self):
        """Test that teardown is never blocked by bad properties."""
        event = self.make_event(
            "Delete", physical_id=self.expected_id, Region="not a region"
        )

        response = self.handler.handle(event)

        assert response == {"PhysicalResourceId": self.expected_id}

    def test_create_failure_propagates(self):
        """Test that a failed read fails the Create with the reader's error."""
        self.ssm_client.get_parameter.side_effect = ClientError(
            {"Error": {"Code": "ParameterNotFound", "Message": "Missing"}},
            "GetParameter",
        )

        with pytest.raises(ParameterNotFoundError) as exc_info:
            self.handler.handle(self.make_event("Create"))

        assert self.parameter_name in str(exc_info.value)
        assert self.region in str(exc_info.value)

    def test_update_unreachable_propagates(self):
        """Test that persistent throttling fails the Update."""
        self.ssm_client.get_parameter.side_effect = ClientError(
            {"Error": {"Code": "ThrottlingException", "Message": "Slow down"}},
            "GetParameter",
        )
        event = self.make_event("Update", physical_id=self.expected_id)

        with pytest.raises(ParameterStoreUnreachableError):
            self.handler.handle(event)

    @pytest.mark.parametrize(
        "event",
        [
            "not an event",
            {"RequestId": "r-1", "ResourceProperties": {}},
            {"RequestType": "Replace", "RequestId": "r-1"},
        ],
    )
    def test_malformed_event_rejected(self, event):
        """Test that structurally invalid events are rejected."""
        with pytest.raises(MalformedEventError):
            self.handler.handle(event)

    def test_update_without_physical_id_rejected(self):
        """Test that Update must name the resource it updates."""
        with pytest.raises(MalformedEventError, match="PhysicalResourceId"):
            self.handler.handle(self.make_event("Update"))

    @pytest.mark.parametrize(
        "properties",
        [
            {"ParameterName": ""},
            {"Region": "Mars"},
            {"Unexpected": "value"},
        ],
    )
    def test_invalid_properties_rejected_on_create(self, properties):
        """Test that bad properties fail before any read."""
        with pytest.raises(MalformedEventError):
            self.handler.handle(self.make_event("Create", **properties))

        self.ssm_client.get_parameter.assert_not_called()


class TestOnEvent:
    """Test cases for the on_event entry point."""

    def test_deadline_from_remaining_time(self):
        """Test that reads are bounded by the Lambda's remaining time."""
        policy = RetryPolicy(deadline_margin_seconds=5.0)
        reader = CrossRegionReader(
            policy, client_factory=MagicMock(), clock=lambda: 1000.0
        )
        handler = LifecycleHandler(reader)
        context = MagicMock()
        context.get_remaining_time_in_millis.return_value = 30000
        event = {"RequestType": "Create"}

        with patch.object(handler, "handle") as mock_handle:
            mock_handle.return_value = {"PhysicalResourceId": "id"}
            result = on_event(event, context, handler)

        mock_handle.assert_called_once_with(event, deadline=1025.0)
        assert result == {"PhysicalResourceId": "id"}
