"""Tests for the HTTP collaborator clients built on JsonHttpClient."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from fleetcert.clients.audit_feed import HttpAuditFeed
from fleetcert.clients.blob_store import HttpBlobStore
from fleetcert.clients.device_registry import HttpDeviceRegistry
from fleetcert.clients.http import JsonHttpClient
from fleetcert.clients.identity_registry import HttpIdentityRegistry
from fleetcert.clients.provisioning import HttpProvisioningService
from fleetcert.clients.publisher import HttpPublisher
from fleetcert.clients.queue import HttpMessageQueue
from fleetcert.config.settings import _build_endpoint
from fleetcert.core.errors import CollaboratorError


@pytest.fixture()
def http():
    """A real client (for quoting) whose transport methods are mocked."""
    client = JsonHttpClient(_build_endpoint({"base_url": "https://svc.example.com"}), name="svc")
    client.request_json = MagicMock(return_value={})
    client.request_bytes = MagicMock(return_value=b"")
    return client


class TestDeviceRegistry:
    def test_get_device(self, http):
        http.request_json.return_value = {"state": "active", "attributes": {"status": "active"}}

        device = HttpDeviceRegistry(http).get_device("Sensor 1")

        http.request_json.assert_called_once_with(
            "GET",
            "/devices/Sensor%201",
            allow_not_found=True,
        )
        assert device.device_id == "Sensor 1"
        assert device.is_active

    def test_unknown_device(self, http):
        http.request_json.return_value = None
        assert HttpDeviceRegistry(http).get_device("ghost") is None

    def test_inherited_policies_in_order(self, http):
        http.request_json.return_value = {
            "results": [
                {"policyId": "p1", "type": "ProvisioningTemplate", "document": '{"template": "a"}'},
                {"policyId": "p2", "type": "ProvisioningTemplate", "document": {"template": "b"}},
            ],
        }

        policies = HttpDeviceRegistry(http).list_inherited_policies("d1", "ProvisioningTemplate")

        assert [p.template_id for p in policies] == ["a", "b"]
        assert http.request_json.call_args.kwargs["query"] == {"type": "ProvisioningTemplate"}

    def test_update_device(self, http):
        HttpDeviceRegistry(http).update_device("d1", {"attributes": {"status": "active"}})
        http.request_json.assert_called_once_with(
            "PATCH",
            "/devices/d1",
            {"attributes": {"status": "active"}},
        )


class TestIdentityRegistry:
    def test_merge_attributes(self, http):
        HttpIdentityRegistry(http).update_identity_attributes("thing", {"status": "ok"})
        http.request_json.assert_called_once_with(
            "PATCH",
            "/things/thing/attributes",
            {"attributes": {"status": "ok"}, "merge": True},
        )

    def test_describe_absent(self, http):
        http.request_json.return_value = None
        assert HttpIdentityRegistry(http).describe_identity("thing") is None


class TestProvisioning:
    def test_provision_with_csr(self, http):
        http.request_json.return_value = {
            "resourceArns": {"thing": "arn:thing", "certificate": "arn:cert"},
            "certificateId": "c1",
            "certificatePem": "PEM",
        }

        result = HttpProvisioningService(http).provision_thing("tpl", {"ThingName": "t"}, csr="CSR")

        http.request_json.assert_called_once_with(
            "POST",
            "/things",
            {"provisioningTemplateId": "tpl", "parameters": {"ThingName": "t"}, "csr": "CSR"},
        )
        assert result.thing_arn == "arn:thing"
        assert result.certificate_arn == "arn:cert"

    def test_missing_thing_arn(self, http):
        http.request_json.return_value = {"resourceArns": {}}
        with pytest.raises(CollaboratorError, match="resourceArns.thing"):
            HttpProvisioningService(http).provision_thing("tpl", {})


class TestAuditFeed:
    def test_extracts_certificate_ids(self, http):
        http.request_json.return_value = {
            "findings": [
                {"nonCompliantResource": {"resourceIdentifier": {"deviceCertificateId": "c1"}}},
                {"nonCompliantResource": {"resourceIdentifier": {"caCertificateId": "ca"}}},
                {},
            ],
            "nextToken": "n",
        }

        page = HttpAuditFeed(http).list_findings("CHECK", "task", max_results=5)

        assert page.items == ("c1",)
        assert page.next_token == "n"
        assert http.request_json.call_args.kwargs["query"] == {
            "checkName": "CHECK",
            "taskId": "task",
            "maxResults": 5,
            "nextToken": None,
        }


class TestBlobQueuePublisher:
    def test_blob_key_keeps_slashes(self, http):
        HttpBlobStore(http).put("certs", "2026/3/7/c1.pem", b"PEM")
        http.request_bytes.assert_called_once_with(
            "PUT",
            "/buckets/certs/objects/2026/3/7/c1.pem",
            b"PEM",
        )

    def test_blob_get(self, http):
        http.request_bytes.return_value = b"{}"
        assert HttpBlobStore(http).get("crl", "crl/crl.json") == b"{}"

    def test_queue_send(self, http):
        HttpMessageQueue(http).send("https://q", "{}")
        http.request_json.assert_called_once_with(
            "POST",
            "/messages",
            {"queueUrl": "https://q", "messageBody": "{}"},
        )

    def test_publish_quotes_topic(self, http):
        HttpPublisher(http).publish("fleet/d1/get/ok", {"message": "OK"})
        http.request_json.assert_called_once_with(
            "POST",
            "/topics/fleet%2Fd1%2Fget%2Fok",
            {"message": "OK"},
            query={"qos": 1},
        )
