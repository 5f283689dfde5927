"""Audit storage backends.

Provides append-only storage implementations for audit records. Records for
an organization are always returned in append order, which is the order the
verifier validates.
"""

import hashlib
import logging
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from trailseal.audit.models import AuditRecord, AuditStorageError

logger = logging.getLogger(__name__)


class AuditStorage(Protocol):
    """Protocol for audit storage backends.

    Implementations must provide append-only semantics.
    Updates and deletes should be blocked at the storage level.
    """

    async def append(self, record: AuditRecord) -> None:
        """Append a record (insert only, no updates)."""
        ...

    async def get_latest(self, organization_id: str) -> AuditRecord | None:
        """Get the most recently appended record for an organization."""
        ...

    async def get_all(
        self, organization_id: str, limit: int | None = None
    ) -> list[AuditRecord]:
        """Get records for an organization in append order."""
        ...

    async def count(self, organization_id: str) -> int:
        """Get total record count for an organization."""
        ...

    async def list_organizations(self) -> list[str]:
        """List every organization that has at least one record."""
        ...


class InMemoryAuditStorage:
    """Process-local storage for tests and embedded use."""

    def __init__(self) -> None:
        self._records: dict[str, list[AuditRecord]] = {}

    async def append(self, record: AuditRecord) -> None:
        self._records.setdefault(record.organization_id, []).append(record)

    async def get_latest(self, organization_id: str) -> AuditRecord | None:
        records = self._records.get(organization_id)
        return records[-1] if records else None

    async def get_all(
        self, organization_id: str, limit: int | None = None
    ) -> list[AuditRecord]:
        return list(self._records.get(organization_id, [])[:limit])

    async def count(self, organization_id: str) -> int:
        return len(self._records.get(organization_id, []))

    async def list_organizations(self) -> list[str]:
        return sorted(org for org, records in self._records.items() if records)


class FileAuditStorage:
    """File-based audit storage for development and small deployments.

    Stores records in JSONL (JSON Lines) format, one record per line, using
    the camelCase record shape. Each organization gets its own file.

    WARNING: This is NOT suitable for high-volume production use.
    """

    def __init__(self, storage_path: str | Path):
        """Initialize file storage.

        Args:
            storage_path: Directory to store audit files
        """
        self.storage_path = Path(storage_path)
        self.storage_path.mkdir(parents=True, exist_ok=True)
        logger.info("FileAuditStorage initialized at %s", self.storage_path)

    def _organization_file(self, organization_id: str) -> Path:
        """Get the file path for an organization's audit log.

        The name is derived from a digest of the id, so distinct ids never
        share a file and no id can traverse out of the storage directory.
        """
        if not organization_id:
            raise AuditStorageError("Unusable organization id: ''")
        digest = hashlib.sha256(organization_id.encode("utf-8")).hexdigest()[:32]
        return self.storage_path / f"audit_{digest}.jsonl"

    def _parse_line(
        self,
        file_path: Path,
        line_number: int,
        line: str,
        organization_id: str | None,
    ) -> AuditRecord:
        """Parse one stored line, checking it belongs to the expected chain."""
        try:
            record = AuditRecord.model_validate_json(line)
        except ValidationError as e:
            raise AuditStorageError(
                f"Corrupt audit record at {file_path.name}:{line_number}: {e}"
            ) from e

        if organization_id is not None and record.organization_id != organization_id:
            raise AuditStorageError(
                f"Record at {file_path.name}:{line_number} belongs to organization "
                f"{record.organization_id!r}, not {organization_id!r}"
            )
        return record

    def _read_file(
        self,
        file_path: Path,
        organization_id: str | None,
        limit: int | None = None,
    ) -> list[AuditRecord]:
        """Parse every record of a JSONL file in line order."""
        records: list[AuditRecord] = []
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                for line_number, line in enumerate(f, start=1):
                    if not line.strip():
                        continue
                    records.append(
                        self._parse_line(file_path, line_number, line, organization_id)
                    )
                    if limit is not None and len(records) >= limit:
                        break
        except OSError as e:
            raise AuditStorageError(f"Cannot read {file_path}: {e}") from e

        return records

    async def append(self, record: AuditRecord) -> None:
        """Append a record to storage."""
        file_path = self._organization_file(record.organization_id)
        record_json = record.model_dump_json(by_alias=True)

        try:
            with open(file_path, "a", encoding="utf-8") as f:
                f.write(record_json + "\n")
        except OSError as e:
            raise AuditStorageError(f"Cannot append to {file_path}: {e}") from e

        logger.debug(
            "Stored audit record: organization=%s id=%s",
            record.organization_id,
            record.id,
        )

    async def get_latest(self, organization_id: str) -> AuditRecord | None:
        """Get the most recent record for an organization."""
        file_path = self._organization_file(organization_id)

        if not file_path.exists():
            return None

        # Only the last non-empty line needs parsing
        last_line = None
        last_number = 0
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                for line_number, line in enumerate(f, start=1):
                    if line.strip():
                        last_line = line
                        last_number = line_number
        except OSError as e:
            raise AuditStorageError(f"Cannot read {file_path}: {e}") from e

        if not last_line:
            return None

        return self._parse_line(file_path, last_number, last_line, organization_id)

    async def get_all(
        self, organization_id: str, limit: int | None = None
    ) -> list[AuditRecord]:
        """Get records for an organization, the whole chain unless limited."""
        file_path = self._organization_file(organization_id)

        if not file_path.exists():
            return []

        return self._read_file(file_path, organization_id, limit=limit)

    async def count(self, organization_id: str) -> int:
        """Get total record count for an organization."""
        file_path = self._organization_file(organization_id)

        if not file_path.exists():
            return 0

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return sum(1 for line in f if line.strip())
        except OSError as e:
            raise AuditStorageError(f"Cannot read {file_path}: {e}") from e

    async def list_organizations(self) -> list[str]:
        """List organizations by reading the first record of each file."""
        organizations = []
        for file_path in sorted(self.storage_path.glob("audit_*.jsonl")):
            records = self._read_file(file_path, None, limit=1)
            if records:
                organizations.append(records[0].organization_id)
        return sorted(organizations)


def get_audit_storage(
    storage_type: str = "file", storage_path: str | Path = "data/audit"
) -> AuditStorage:
    """Get audit storage instance based on configuration."""
    if storage_type == "memory":
        return InMemoryAuditStorage()
    if storage_type == "file":
        return FileAuditStorage(storage_path)
    raise AuditStorageError(f"Unknown audit storage type: {storage_type}")
