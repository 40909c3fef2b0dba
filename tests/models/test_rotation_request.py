"""Tests for device action and registration event validation."""

from __future__ import annotations

import pytest

from fleetcert.core.errors import RequestValidationError
from fleetcert.core.types import RotationAction
from fleetcert.models.device import DeviceRecord, PolicyDocument
from fleetcert.models.registration import RegistrationEvent
from fleetcert.models.rotation import RotationAck, RotationGet, parse_rotation_request


class TestParseRotationRequest:
    def test_get_with_csr(self):
        request = parse_rotation_request(
            {"action": "get", "deviceId": "d", "certId": "c", "csr": "PEM"},
        )
        assert request == RotationGet(device_id="d", cert_id="c", csr="PEM")
        assert request.action == RotationAction.GET

    def test_ack_with_previous(self):
        request = parse_rotation_request(
            {"action": "ack", "deviceId": "d", "certId": "c2", "previousCertificateId": "c1"},
        )
        assert isinstance(request, RotationAck)
        assert request.previous_certificate_id == "c1"

    def test_ack_ignores_csr(self):
        request = parse_rotation_request(
            {"action": "ack", "deviceId": "d", "certId": "c", "csr": "PEM"},
        )
        assert not hasattr(request, "csr")

    @pytest.mark.parametrize(
        ("payload", "fragment"),
        [
            ({"action": "get", "certId": "c"}, "deviceId"),
            ({"action": "get", "deviceId": "d"}, "certId"),
            ({"action": "get", "deviceId": "d", "certId": "c", "csr": ""}, "csr"),
            ({"action": "ack", "deviceId": "d", "certId": "c", "previousCertificateId": 3}, "previousCertificateId"),
            ({"deviceId": "d", "certId": "c"}, "action"),
        ],
    )
    def test_invalid_payloads(self, payload, fragment):
        with pytest.raises(RequestValidationError) as exc_info:
            parse_rotation_request(payload)
        assert fragment in str(exc_info.value)


class TestRegistrationEvent:
    def test_valid_event(self):
        event = RegistrationEvent.from_payload(
            {
                "certificateId": "c",
                "caCertificateId": "ca",
                "timestamp": 1,
                "awsAccountId": "123",
            },
        )
        assert event.certificate_id == "c"
        assert event.owner_account_id == "123"

    def test_collects_every_error(self):
        with pytest.raises(RequestValidationError) as exc_info:
            RegistrationEvent.from_payload({"timestamp": True})
        assert len(exc_info.value.errors) == 4

    def test_non_object(self):
        with pytest.raises(RequestValidationError):
            RegistrationEvent.from_payload("certificateId=c")


class TestDeviceModels:
    def test_policy_template_id(self):
        assert PolicyDocument("p", "T", '{"template": "tpl"}').template_id == "tpl"
        assert PolicyDocument("p", "T", '{"template": ""}').template_id is None
        assert PolicyDocument("p", "T", "not json").template_id is None
        assert PolicyDocument("p", "T", "[1]").template_id is None

    def test_policy_from_payload_serialises_object_document(self):
        policy = PolicyDocument.from_payload(
            {"policyId": "p", "type": "T", "document": {"template": "tpl"}},
        )
        assert policy.template_id == "tpl"

    def test_device_activity(self):
        assert DeviceRecord.from_payload({"deviceId": "d", "state": "active"}).is_active
        assert not DeviceRecord.from_payload({"deviceId": "d", "state": "suspended"}).is_active
        assert not DeviceRecord.from_payload({"deviceId": "d"}).is_active
