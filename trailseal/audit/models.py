"""Audit data models.

Immutable audit records with hash chaining for tamper-evident logging.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator
from pydantic.alias_generators import to_camel


def to_utc(value: datetime) -> datetime:
    """Return the same instant as an aware UTC datetime (naive means UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ChainModel(BaseModel):
    """Base model accepting both snake_case and camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class AuditRecord(ChainModel):
    """One logged event of an organization's audit trail.

    The record is persisted once and never mutated. Any later divergence
    between `self_hash` and a freshly computed content hash is tampering.

    Chain integrity:
    - `self_hash` covers the content fields only (see `HASHED_FIELDS`)
    - `prev_hash` links to the `self_hash` of the prior record
    - Genesis record has `prev_hash` of None
    """

    model_config = ConfigDict(frozen=True)

    # Identity (never hashed)
    id: str = Field(description="Opaque record identifier")
    organization_id: str = Field(description="Organization (chain) this record belongs to")

    # Event details
    event_type: str = Field(description="Dot-namespaced event name, e.g. 'contact.created'")
    event_data: JsonValue = Field(
        default=None,
        description="Event-specific JSON payload"
    )

    # Provenance
    user_id: str | None = Field(default=None, description="Who performed the action")
    ip_address: str | None = Field(default=None, description="IP address of the actor")
    user_agent: str | None = Field(default=None, description="User agent of the actor")

    # Timing
    created_at: datetime = Field(description="When the event was recorded")

    # Chain integrity
    prev_hash: str | None = Field(
        default=None,
        description="self_hash of the previous record (None for genesis)"
    )
    self_hash: str = Field(
        default="",
        description="Content hash of this record"
    )

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        return to_utc(value)


# Canonical key -> model attribute, for the hashed content only.
HASHED_FIELDS: dict[str, str] = {
    "organizationId": "organization_id",
    "eventType": "event_type",
    "eventData": "event_data",
    "userId": "user_id",
    "ipAddress": "ip_address",
    "userAgent": "user_agent",
    "createdAt": "created_at",
}


class ChainLink(ChainModel):
    """The hash pair persisted alongside a record at write time."""

    model_config = ConfigDict(frozen=True)

    prev_hash: str | None
    self_hash: str


class ChainErrorType(str, Enum):
    """Classes of chain integrity violations."""

    GENESIS = "genesis"
    SELF_HASH = "self_hash"
    PREV_HASH = "prev_hash"
    ORDERING = "ordering"


class ChainVerificationError(ChainModel):
    """A single integrity violation found by the verifier."""

    error_type: ChainErrorType
    record_index: int
    record_id: str
    message: str
    expected: str | None = None
    actual: str | None = None


class ChainVerificationResult(ChainModel):
    """Outcome of verifying an ordered sequence of audit records."""

    valid: bool
    total_records: int
    errors: list[ChainVerificationError] = Field(default_factory=list)


class AuditChainStatus(ChainModel):
    """Status of an organization's audit chain."""

    organization_id: str
    total_records: int
    first_record_id: str | None
    last_record_id: str | None
    last_timestamp: datetime | None
    last_self_hash: str | None
    chain_valid: bool
    error_count: int
    last_verified_at: datetime


class AuditChainError(Exception):
    """Base error for audit chain operations."""

    def __init__(self, message: str, code: str = "audit_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AuditRecordError(AuditChainError):
    """Raised when a record cannot be appended as requested."""

    def __init__(self, reason: str):
        super().__init__(reason, "invalid_record")


class AuditStorageError(AuditChainError):
    """Raised when a storage backend cannot read or write records."""

    def __init__(self, reason: str):
        super().__init__(reason, "storage_error")
