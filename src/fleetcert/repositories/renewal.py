"""Certificate renewal ledger repository.

Keyed by the *expiring* certificate's ARN.  A row is written once, when
the first replacement is issued, and is never updated or deleted by
fleetcert.
"""

from __future__ import annotations

from pypgkit import BaseRepository, Database

from fleetcert.models.renewal import CertificateRenewalRecord


class CertificateRenewalRepository(BaseRepository[CertificateRenewalRecord]):
    table_name = "certificate_renewals"
    primary_key = "expiring_certificate_arn"

    def _row_to_entity(self, row: dict) -> CertificateRenewalRecord:
        return CertificateRenewalRecord(
            expiring_certificate_arn=row["expiring_certificate_arn"],
            thing_name=row["thing_name"],
            renewed_certificate_arn=row["renewed_certificate_arn"],
            renewed_certificate_id=row["renewed_certificate_id"],
            renewed_certificate_pem=row["renewed_certificate_pem"],
            created_at=row.get("created_at"),
        )

    def _entity_to_row(self, entity: CertificateRenewalRecord) -> dict:
        return {
            "expiring_certificate_arn": entity.expiring_certificate_arn,
            "thing_name": entity.thing_name,
            "renewed_certificate_arn": entity.renewed_certificate_arn,
            "renewed_certificate_id": entity.renewed_certificate_id,
            "renewed_certificate_pem": entity.renewed_certificate_pem,
        }

    def get_item(self, expiring_certificate_arn: str) -> CertificateRenewalRecord | None:
        """Return the ledger entry for *expiring_certificate_arn*, if any."""
        db = Database.get_instance()
        row = db.fetch_one(
            "SELECT * FROM certificate_renewals WHERE expiring_certificate_arn = %s",
            (expiring_certificate_arn,),
            as_dict=True,
        )
        return self._row_to_entity(row) if row is not None else None

    def put_item_if_absent(self, record: CertificateRenewalRecord) -> bool:
        """Insert *record* unless an entry for its expiring ARN exists.

        Returns True if this caller's row was written (rowcount == 1),
        False if a concurrent delivery already recorded a replacement.
        """
        row = self._entity_to_row(record)
        db = Database.get_instance()
        rowcount = db.execute(
            "INSERT INTO certificate_renewals "
            "(expiring_certificate_arn, thing_name, renewed_certificate_arn, "
            "renewed_certificate_id, renewed_certificate_pem) "
            "VALUES (%s, %s, %s, %s, %s) "
            "ON CONFLICT (expiring_certificate_arn) DO NOTHING",
            (
                row["expiring_certificate_arn"],
                row["thing_name"],
                row["renewed_certificate_arn"],
                row["renewed_certificate_id"],
                row["renewed_certificate_pem"],
            ),
        )
        return rowcount == 1
