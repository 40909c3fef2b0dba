"""Audit/compliance feed client.

API contract::

    GET /findings?checkName=&taskId=&maxResults=&nextToken=
        -> {"findings": [{"nonCompliantResource":
                            {"resourceIdentifier": {"deviceCertificateId": "..."}}}],
            "nextToken": "..."}

Only the non-compliant certificate ids are surfaced; findings without a
device certificate resource are ignored.
"""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING

from fleetcert.models.page import Page

if TYPE_CHECKING:
    from fleetcert.clients.http import JsonHttpClient

log = logging.getLogger(__name__)


class AuditFeed(abc.ABC):
    @abc.abstractmethod
    def list_findings(
        self,
        check_name: str,
        task_id: str,
        *,
        max_results: int,
        page_token: str | None = None,
    ) -> Page[str]:
        """Return one page of non-compliant certificate ids."""


class HttpAuditFeed(AuditFeed):
    def __init__(self, http: JsonHttpClient) -> None:
        self._http = http

    def list_findings(
        self,
        check_name: str,
        task_id: str,
        *,
        max_results: int,
        page_token: str | None = None,
    ) -> Page[str]:
        data = self._http.request_json(
            "GET",
            "/findings",
            query={
                "checkName": check_name,
                "taskId": task_id,
                "maxResults": max_results,
                "nextToken": page_token,
            },
        ) or {}

        cert_ids = []
        for finding in data.get("findings") or []:
            resource = (finding.get("nonCompliantResource") or {}).get("resourceIdentifier") or {}
            cert_id = resource.get("deviceCertificateId")
            if cert_id:
                cert_ids.append(cert_id)
            else:
                log.debug("Ignoring finding without a device certificate: %s", finding)
        return Page(items=tuple(cert_ids), next_token=data.get("nextToken") or None)
