"""Dependency injection container for fleetcert.

Created once per process by the CLI and passed explicitly to whatever
runs a unit of work; there are no global client singletons.

Usage::

    from fleetcert.app.context import Container

    c = Container(settings, db=db)
    c.admission.activate(event)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pypgkit import Database

    from fleetcert.ca.base import CertificateAuthority
    from fleetcert.ca.internal import LocalCsrSigner
    from fleetcert.clients import (
        AuditFeed,
        BlobStore,
        DeviceRegistry,
        IdentityRegistry,
        MessageQueue,
        ProvisioningService,
        Publisher,
    )
    from fleetcert.config.settings import FleetCertSettings
    from fleetcert.metrics.collector import MetricsCollector
    from fleetcert.repositories.renewal import CertificateRenewalRepository
    from fleetcert.services import (
        AdmissionValidator,
        DeviceRotationHandler,
        FleetRenewalScanner,
        QueueDispatcher,
        RenewalProcessor,
        RevocationStoreReader,
    )
    from fleetcert.whitelist.base import RegistryGate

log = logging.getLogger(__name__)


class Container:
    """Process-wide wiring of collaborators and services.

    The renewal ledger lives in PostgreSQL; without a *db* the
    container still serves admission and rotation, but ``ledger``,
    ``processor`` and ``dispatcher`` are ``None``.
    """

    def __init__(  # noqa: PLR0915
        self,
        settings: FleetCertSettings,
        db: Database | None = None,
    ) -> None:
        """Build every client and service from *settings*."""
        from fleetcert.ca.registry import (  # noqa: PLC0415
            load_certificate_authority as _load_ca,
        )
        from fleetcert.clients import (  # noqa: PLC0415
            HttpAuditFeed as _HAF,  # noqa: N814
        )
        from fleetcert.clients import (  # noqa: PLC0415
            HttpBlobStore as _HBS,  # noqa: N814
        )
        from fleetcert.clients import (  # noqa: PLC0415
            HttpDeviceRegistry as _HDR,  # noqa: N814
        )
        from fleetcert.clients import (  # noqa: PLC0415
            HttpIdentityRegistry as _HIR,  # noqa: N814
        )
        from fleetcert.clients import (  # noqa: PLC0415
            HttpMessageQueue as _HMQ,  # noqa: N814
        )
        from fleetcert.clients import (  # noqa: PLC0415
            HttpProvisioningService as _HPS,  # noqa: N814
        )
        from fleetcert.clients import (  # noqa: PLC0415
            HttpPublisher as _HP,  # noqa: N814
        )
        from fleetcert.clients import JsonHttpClient as _JHC  # noqa: N814, PLC0415
        from fleetcert.metrics.collector import MetricsCollector as _MC  # noqa: N814, PLC0415
        from fleetcert.whitelist.registry import load_registry_gate as _load_gate  # noqa: PLC0415

        self.settings: FleetCertSettings = settings
        self.db: Database | None = db
        self.metrics: MetricsCollector = _MC()

        # Collaborator clients
        svc = settings.services
        self.devices: DeviceRegistry = _HDR(_JHC(svc.device_registry, name="device registry"))
        self.identities: IdentityRegistry = _HIR(
            _JHC(svc.identity_registry, name="identity registry"),
        )
        self.provisioning: ProvisioningService = _HPS(_JHC(svc.provisioning, name="provisioning"))
        self.blobs: BlobStore = _HBS(_JHC(svc.blob_store, name="blob store"))
        self.queue: MessageQueue = _HMQ(_JHC(svc.queue, name="queue"))
        self.audit_feed: AuditFeed = _HAF(_JHC(svc.audit_feed, name="audit feed"))
        self.publisher: Publisher = _HP(_JHC(svc.publisher, name="publisher"))

        # Certificate authority (circuit breaker applied by the loader)
        self.authority: CertificateAuthority = _load_ca(settings.ca)

        self.signer: LocalCsrSigner | None = None
        if settings.rotation.csr_mode == "local":
            from fleetcert.ca.internal import LocalCsrSigner as _LCS  # noqa: N814, PLC0415

            self.signer = _LCS(settings.ca.local_signer)

        self.gate: RegistryGate = _load_gate(
            settings.registry,
            devices=self.devices,
            identities=self.identities,
        )

        # Services
        from fleetcert.services import (  # noqa: PLC0415
            AdmissionValidator as _AV,  # noqa: N814
        )
        from fleetcert.services import (  # noqa: PLC0415
            DeviceRotationHandler as _DRH,  # noqa: N814
        )
        from fleetcert.services import (  # noqa: PLC0415
            FleetRenewalScanner as _FRS,  # noqa: N814
        )
        from fleetcert.services import (  # noqa: PLC0415
            RevocationStoreReader as _RSR,  # noqa: N814
        )

        self.revocations: RevocationStoreReader = _RSR(self.blobs, settings.admission)
        self.admission: AdmissionValidator = _AV(
            revocations=self.revocations,
            authority=self.authority,
            gate=self.gate,
            devices=self.devices,
            provisioning=self.provisioning,
            settings=settings.admission,
            metrics=self.metrics,
        )
        self.scanner: FleetRenewalScanner = _FRS(
            audit_feed=self.audit_feed,
            authority=self.authority,
            queue=self.queue,
            settings=settings.renewal,
            metrics=self.metrics,
        )
        self.rotation: DeviceRotationHandler = _DRH(
            authority=self.authority,
            gate=self.gate,
            publisher=self.publisher,
            settings=settings.rotation,
            signer=self.signer,
            provisioning=self.provisioning,
            metrics=self.metrics,
        )

        # Ledger-backed services (only with a database)
        self.ledger: CertificateRenewalRepository | None = None
        self.processor: RenewalProcessor | None = None
        self.dispatcher: QueueDispatcher | None = None
        if db is not None:
            from fleetcert.repositories import (  # noqa: PLC0415
                CertificateRenewalRepository as _CRR,  # noqa: N814
            )
            from fleetcert.services import (  # noqa: PLC0415
                QueueDispatcher as _QD,  # noqa: N814
            )
            from fleetcert.services import (  # noqa: PLC0415
                RenewalProcessor as _RP,  # noqa: N814
            )

            self.ledger = _CRR(db)
            self.processor = _RP(
                authority=self.authority,
                devices=self.devices,
                ledger=self.ledger,
                blobs=self.blobs,
                settings=settings.renewal,
                metrics=self.metrics,
            )
            self.dispatcher = _QD(self.scanner, self.processor)

        log.debug(
            "Container ready (registry=%s, csr_mode=%s, ledger=%s)",
            settings.registry.mode,
            settings.rotation.csr_mode,
            "yes" if self.ledger is not None else "no",
        )
