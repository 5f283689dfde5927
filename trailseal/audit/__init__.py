"""Trailseal audit package.

Tamper-evident integrity verification for append-only audit logs.

Features:
- Canonical JSON encoding of record content
- SHA-256 content hashes linked record to record
- Chain verification reporting every violation in one pass
- Append-only storage backends (memory, JSONL files)

Usage:
    from trailseal.audit import AuditChain, FileAuditStorage

    chain = AuditChain(FileAuditStorage("data/audit"))

    # Record an event
    record = await chain.append_record(
        organization_id="org-123",
        event_type="contact.created",
        event_data={"contactId": "c1"},
    )

    # Verify chain integrity
    result = await chain.verify_organization("org-123")
"""

from trailseal.audit.canonical import canonicalize
from trailseal.audit.chain import AuditChain
from trailseal.audit.hashing import content_hash, link
from trailseal.audit.models import (
    AuditChainError,
    AuditChainStatus,
    AuditRecord,
    AuditRecordError,
    AuditStorageError,
    ChainErrorType,
    ChainLink,
    ChainVerificationError,
    ChainVerificationResult,
)
from trailseal.audit.storage import (
    AuditStorage,
    FileAuditStorage,
    InMemoryAuditStorage,
    get_audit_storage,
)
from trailseal.audit.verifier import verify_chain

__all__ = [
    "canonicalize",
    "content_hash",
    "link",
    "verify_chain",
    "AuditChain",
    "AuditRecord",
    "ChainLink",
    "ChainErrorType",
    "ChainVerificationError",
    "ChainVerificationResult",
    "AuditChainStatus",
    "AuditChainError",
    "AuditRecordError",
    "AuditStorageError",
    "AuditStorage",
    "FileAuditStorage",
    "InMemoryAuditStorage",
    "get_audit_storage",
]
