"""Revocation store reader.

Fetches the current revocation list from the blob store on every call.
Nothing is cached between admission checks.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fleetcert.models.revocation import RevocationList

if TYPE_CHECKING:
    from fleetcert.clients.blob_store import BlobStore
    from fleetcert.config.settings import AdmissionSettings

log = logging.getLogger(__name__)


class RevocationStoreReader:
    def __init__(self, blobs: BlobStore, settings: AdmissionSettings) -> None:
        self._blobs = blobs
        self._bucket = settings.crl_bucket
        self._key = settings.crl_key

    def fetch(self) -> RevocationList:
        """Fetch and parse the revocation list.

        Raises
        ------
        CollaboratorError
            If the blob store cannot be read.
        RevocationListError
            If the stored document is malformed.

        """
        raw = self._blobs.get(self._bucket, self._key)
        crl = RevocationList.from_json(raw)
        log.debug(
            "Fetched revocation list %s/%s: %d entries, lastUpdate=%d",
            self._bucket,
            self._key,
            len(crl.revoked_certificates),
            crl.last_update,
        )
        return crl
