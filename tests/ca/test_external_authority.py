"""Tests for fleetcert.ca.external.ExternalCertificateAuthority."""

from __future__ import annotations

import json
import urllib.error
from io import BytesIO
from unittest.mock import MagicMock, patch

import pytest

from fleetcert.ca.base import CAError
from fleetcert.ca.external import ExternalCertificateAuthority
from fleetcert.clients.http import JsonHttpClient
from fleetcert.config.settings import CASettings, EndpointSettings, LocalSignerSettings
from fleetcert.core.types import CertificateStatus

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

CERT_BODY = {
    "certificateId": "abc",
    "certificateArn": "arn:fleet:cert/abc",
    "certificatePem": "PEM",
    "status": "ACTIVE",
}


def _endpoint(**overrides) -> EndpointSettings:
    defaults = {
        "base_url": "https://ca.example.com",
        "auth_header": "Authorization",
        "auth_value": "Bearer t",
        "ca_cert_path": None,
        "client_cert_path": None,
        "client_key_path": None,
        "timeout_seconds": 30,
        "max_retries": 0,
        "retry_delay_seconds": 1.0,
    }
    defaults.update(overrides)
    return EndpointSettings(**defaults)


def _ca_settings(**endpoint_overrides) -> CASettings:
    return CASettings(
        backend="external",
        external=_endpoint(**endpoint_overrides),
        local_signer=LocalSignerSettings(
            root_cert_path="",
            root_key_path="",
            hash_algorithm="sha256",
            validity_days=365,
        ),
        circuit_breaker_failure_threshold=5,
        circuit_breaker_recovery_timeout=30.0,
    )


def _authority(response=None):
    """Authority over a real client whose request_json is mocked."""
    settings = _ca_settings()
    http = JsonHttpClient(settings.external, name="certificate authority", error_cls=CAError)
    http.request_json = MagicMock(return_value=response)
    return ExternalCertificateAuthority(settings, http=http), http.request_json


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


class TestIssuance:
    def test_issue_returns_generated_key(self):
        body = dict(CERT_BODY, keyPair={"privateKey": "PRIV", "publicKey": "PUB"})
        authority, request = _authority(body)

        issued = authority.issue_certificate(set_active=True)

        request.assert_called_once_with("POST", "/certificates", {"setAsActive": True})
        assert issued.certificate_id == "abc"
        assert issued.private_key_pem == "PRIV"
        assert issued.public_key_pem == "PUB"

    def test_issue_without_key_pair_rejected(self):
        authority, _ = _authority(dict(CERT_BODY))
        with pytest.raises(CAError, match="private key"):
            authority.issue_certificate()

    def test_sign_csr(self):
        authority, request = _authority(dict(CERT_BODY))

        issued = authority.sign_csr("CSR", set_active=False)

        request.assert_called_once_with(
            "POST",
            "/certificates/sign",
            {"csr": "CSR", "setAsActive": False},
        )
        assert issued.private_key_pem is None

    def test_register_with_ca_certificate(self):
        authority, request = _authority(dict(CERT_BODY))

        authority.register_certificate("LEAF", ca_certificate_pem="ROOT")

        request.assert_called_once_with(
            "POST",
            "/certificates/register",
            {"certificatePem": "LEAF", "setAsActive": True, "caCertificatePem": "ROOT"},
        )

    @pytest.mark.parametrize("missing", ["certificateId", "certificateArn", "certificatePem"])
    def test_incomplete_response_not_retryable(self, missing):
        body = dict(CERT_BODY)
        del body[missing]
        authority, _ = _authority(body)

        with pytest.raises(CAError) as exc_info:
            authority.sign_csr("CSR")

        assert exc_info.value.retryable is False
        assert missing in exc_info.value.detail


# ---------------------------------------------------------------------------
# Lifecycle, policies, devices
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_describe(self):
        authority, request = _authority(dict(CERT_BODY))

        description = authority.describe_certificate("abc")

        request.assert_called_once_with("GET", "/certificates/abc", None)
        assert description.status == "ACTIVE"
        assert description.certificate_arn == "arn:fleet:cert/abc"

    def test_revoke_sets_revoked_status(self):
        authority, request = _authority(None)

        authority.revoke_certificate("abc")

        request.assert_called_once_with(
            "PUT",
            "/certificates/abc/status",
            {"status": "REVOKED"},
        )

    def test_update_status_inactive(self):
        authority, request = _authority(None)
        authority.update_certificate_status("abc", CertificateStatus.INACTIVE)
        assert request.call_args.args[2] == {"status": "INACTIVE"}

    def test_arn_is_quoted_in_principal_paths(self):
        authority, request = _authority({"policies": ["a", "b"]})

        policies = authority.list_attached_policies("arn:fleet:cert/abc")

        assert policies == ["a", "b"]
        assert request.call_args.args[1] == "/principals/arn%3Afleet%3Acert%2Fabc/policies"

    def test_attach_to_device(self):
        authority, request = _authority(None)

        authority.attach_to_device("arn:fleet:cert/abc", "dev-1")

        request.assert_called_once_with(
            "PUT",
            "/things/dev-1/principals",
            {"principal": "arn:fleet:cert/abc"},
        )

    def test_list_devices_page(self):
        authority, request = _authority({"things": ["t1", "t2"], "nextToken": "n"})

        page = authority.list_devices_for_certificate("arn:a", page_token="p", max_results=2)

        assert page.items == ("t1", "t2")
        assert page.next_token == "n"
        assert request.call_args.kwargs == {"query": {"nextToken": "p", "maxResults": 2}}

    def test_last_device_page_has_no_token(self):
        authority, _ = _authority({"things": [], "nextToken": ""})
        assert authority.list_devices_for_certificate("arn:a").next_token is None


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------


def _http_error(code: int, body: str = "") -> urllib.error.HTTPError:
    return urllib.error.HTTPError(
        url="https://ca.example.com/certificates",
        code=code,
        msg=f"HTTP {code}",
        hdrs=None,
        fp=BytesIO(body.encode("utf-8")),
    )


class TestTransport:
    def test_http_500_is_retryable_ca_error(self):
        authority = ExternalCertificateAuthority(_ca_settings())

        with patch("urllib.request.build_opener") as mock_opener_fn:
            opener = MagicMock()
            mock_opener_fn.return_value = opener
            opener.open.side_effect = _http_error(500, "boom")

            with pytest.raises(CAError) as exc_info:
                authority.describe_certificate("abc")

        assert exc_info.value.retryable is True
        assert "500" in exc_info.value.detail

    def test_success_body_decoded(self):
        authority = ExternalCertificateAuthority(_ca_settings())

        with patch("urllib.request.build_opener") as mock_opener_fn:
            opener = MagicMock()
            mock_opener_fn.return_value = opener
            resp = MagicMock()
            resp.status = 200
            resp.read.return_value = json.dumps(CERT_BODY).encode()
            resp.__enter__.return_value = resp
            opener.open.return_value = resp

            description = authority.describe_certificate("abc")

        assert description.certificate_id == "abc"
        request = opener.open.call_args.args[0]
        assert request.full_url == "https://ca.example.com/certificates/abc"
        assert request.get_header("Authorization") == "Bearer t"

    def test_startup_check_requires_base_url(self):
        with pytest.raises(CAError, match="base_url"):
            ExternalCertificateAuthority(_ca_settings(base_url="")).startup_check()
