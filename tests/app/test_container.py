"""Tests for the Container wiring in fleetcert.app.context.

Settings are built from real config data so the constructor exercises
every client, gate and service factory.  Nothing in the constructor
touches the network; the database is a MagicMock because
``BaseRepository`` only stores it.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from fleetcert.app.context import Container
from fleetcert.ca.circuit_breaker import CircuitBreakerAuthority
from fleetcert.ca.internal import LocalCsrSigner
from fleetcert.config.settings import build_settings
from fleetcert.repositories.renewal import CertificateRenewalRepository
from fleetcert.services import QueueDispatcher, RenewalProcessor
from fleetcert.whitelist.allow_all import AllowAllGate
from fleetcert.whitelist.identity import IdentityRegistryGate
from fleetcert.whitelist.managed import ManagedRegistryGate


@pytest.fixture()
def settings_for(minimal_config_data):
    def _build(**sections):
        data = dict(minimal_config_data)
        data.update(sections)
        return build_settings(data)

    return _build


class TestContainer:
    def test_without_database(self, settings_for):
        c = Container(settings_for())

        assert c.db is None
        assert c.ledger is None
        assert c.processor is None
        assert c.dispatcher is None
        assert c.admission is not None
        assert c.scanner is not None
        assert c.rotation is not None
        assert c.signer is None

    def test_with_database(self, settings_for):
        db = MagicMock()

        c = Container(settings_for(), db=db)

        assert c.db is db
        assert isinstance(c.ledger, CertificateRenewalRepository)
        assert isinstance(c.processor, RenewalProcessor)
        assert isinstance(c.dispatcher, QueueDispatcher)

    def test_authority_wrapped_in_breaker(self, settings_for):
        c = Container(settings_for())
        assert isinstance(c.authority, CircuitBreakerAuthority)
        assert c.authority.state == "closed"

    @pytest.mark.parametrize(
        ("mode", "gate_cls"),
        [
            ("managed", ManagedRegistryGate),
            ("identity", IdentityRegistryGate),
            ("allow_all", AllowAllGate),
        ],
    )
    def test_gate_follows_registry_mode(self, settings_for, mode, gate_cls):
        c = Container(settings_for(registry={"mode": mode}))
        assert isinstance(c.gate, gate_cls)

    def test_local_csr_mode_builds_signer(self, settings_for):
        c = Container(
            settings_for(
                rotation={"csr_mode": "local"},
                ca={
                    "external": {"base_url": "https://ca.example.com"},
                    "local_signer": {
                        "root_cert_path": "/etc/fleet/root.pem",
                        "root_key_path": "/etc/fleet/root.key",
                    },
                },
            ),
        )
        assert isinstance(c.signer, LocalCsrSigner)

    def test_services_share_one_metrics_collector(self, settings_for):
        c = Container(settings_for(), db=MagicMock())

        assert c.admission._metrics is c.metrics
        assert c.processor._metrics is c.metrics
        assert c.rotation._metrics is c.metrics
