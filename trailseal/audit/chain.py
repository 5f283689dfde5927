"""Audit hash chain service.

Writes hash-linked audit records through a storage backend and verifies
stored chains per organization.
"""

import asyncio
import logging
import re
from datetime import datetime, timezone
from uuid import uuid4

from pydantic import JsonValue

from trailseal.audit.hashing import link
from trailseal.audit.models import (
    AuditChainStatus,
    AuditRecord,
    AuditRecordError,
    ChainVerificationResult,
)
from trailseal.audit.storage import AuditStorage
from trailseal.audit.verifier import verify_chain

logger = logging.getLogger(__name__)

EVENT_TYPE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+(\.[A-Za-z0-9_-]+)+$")


class AuditChain:
    """Manages hash-chained audit records.

    Ensures tamper-evident logging by:
    1. Computing the content hash of each record
    2. Linking it to the latest record of the same organization
    3. Storing records in append-only storage
    4. Providing chain verification

    Appends are serialized per organization so that the prev_hash handed to
    the linker is always the true latest self_hash of that chain.

    Usage:
        chain = AuditChain(storage)

        await chain.append_record(
            organization_id="org-123",
            event_type="contact.created",
            event_data={"contactId": "c1"},
            user_id="user-1",
        )

        result = await chain.verify_organization("org-123")
    """

    def __init__(self, storage: AuditStorage):
        """Initialize audit chain with storage backend."""
        self.storage = storage
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, organization_id: str) -> asyncio.Lock:
        if organization_id not in self._locks:
            self._locks[organization_id] = asyncio.Lock()
        return self._locks[organization_id]

    async def append_record(
        self,
        organization_id: str,
        event_type: str,
        event_data: JsonValue = None,
        user_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        created_at: datetime | None = None,
    ) -> AuditRecord:
        """Create, link and persist a new audit record.

        Returns:
            The stored record, including its prev_hash and self_hash

        Raises:
            AuditRecordError: if the organization id or event type is unusable
        """
        if not organization_id:
            raise AuditRecordError("organization_id is required")
        if not EVENT_TYPE_PATTERN.match(event_type):
            raise AuditRecordError(
                f"Invalid event_type {event_type!r}: expected a dot-namespaced name "
                "such as 'contact.created'"
            )

        async with self._lock_for(organization_id):
            previous = await self.storage.get_latest(organization_id)

            record = AuditRecord(
                id=str(uuid4()),
                organization_id=organization_id,
                event_type=event_type,
                event_data=event_data,
                user_id=user_id,
                ip_address=ip_address,
                user_agent=user_agent,
                created_at=created_at or datetime.now(timezone.utc),
            )
            hashes = link(record, previous.self_hash if previous else None)
            record = record.model_copy(
                update={"prev_hash": hashes.prev_hash, "self_hash": hashes.self_hash}
            )

            await self.storage.append(record)

        logger.debug(
            "Appended audit record: organization=%s type=%s hash=%s",
            organization_id,
            event_type,
            record.self_hash[:16] + "...",
        )

        return record

    async def verify_organization(self, organization_id: str) -> ChainVerificationResult:
        """Verify the integrity of one organization's chain."""
        records = await self.storage.get_all(organization_id, limit=None)
        result = verify_chain(records)

        if result.valid:
            logger.info(
                "Chain verification passed: organization=%s records=%d",
                organization_id,
                result.total_records,
            )
        else:
            logger.warning(
                "Chain verification failed: organization=%s records=%d errors=%d",
                organization_id,
                result.total_records,
                len(result.errors),
            )

        return result

    async def verify_all(self) -> dict[str, ChainVerificationResult]:
        """Verify every organization's chain known to storage."""
        results = {}
        for organization_id in await self.storage.list_organizations():
            results[organization_id] = await self.verify_organization(organization_id)
        return results

    async def get_chain_status(self, organization_id: str) -> AuditChainStatus:
        """Get current status of an organization's chain."""
        records = await self.storage.get_all(organization_id, limit=None)
        result = verify_chain(records)

        first = records[0] if records else None
        last = records[-1] if records else None

        return AuditChainStatus(
            organization_id=organization_id,
            total_records=result.total_records,
            first_record_id=first.id if first else None,
            last_record_id=last.id if last else None,
            last_timestamp=last.created_at if last else None,
            last_self_hash=last.self_hash if last else None,
            chain_valid=result.valid,
            error_count=len(result.errors),
            last_verified_at=datetime.now(timezone.utc),
        )
