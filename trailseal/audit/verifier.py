"""Audit chain verification.

Replays canonicalization and hashing over a stored sequence and cross-checks
the stored links. Every violation is reported as data; nothing is raised for
tampering, and the whole sequence is always walked so a single call yields a
complete report.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from trailseal.audit.canonical import format_timestamp
from trailseal.audit.hashing import content_hash
from trailseal.audit.models import (
    AuditRecord,
    ChainErrorType,
    ChainVerificationError,
    ChainVerificationResult,
    to_utc,
)

logger = logging.getLogger(__name__)


def verify_chain(records: Sequence[AuditRecord | Mapping[str, Any]]) -> ChainVerificationResult:
    """Verify an ordered sequence of audit records.

    Records are validated in the order given (claimed append order); they
    are never re-sorted. For each record, independently:

    1. Genesis: the first record must have a null prev_hash
    2. Self hash: stored self_hash must equal the recomputed content hash
    3. Continuity: prev_hash must equal the previous record's self_hash
    4. Ordering: created_at must not go backwards

    Args:
        records: AuditRecord instances, or mappings in the stored record
            shape (validated into AuditRecord first)

    Returns:
        ChainVerificationResult with every error found

    Raises:
        TypeError: if `records` is not a sequence or holds non-record items
    """
    chain = _coerce_records(records)
    errors: list[ChainVerificationError] = []

    for index, record in enumerate(chain):
        if index == 0 and record.prev_hash is not None:
            errors.append(ChainVerificationError(
                error_type=ChainErrorType.GENESIS,
                record_index=index,
                record_id=record.id,
                message="Genesis record must have null prev_hash",
                expected="null",
                actual=record.prev_hash,
            ))

        expected_hash = content_hash(record)
        if record.self_hash != expected_hash:
            errors.append(ChainVerificationError(
                error_type=ChainErrorType.SELF_HASH,
                record_index=index,
                record_id=record.id,
                message="Stored self_hash does not match recomputed content hash (tampered data)",
                expected=expected_hash,
                actual=record.self_hash,
            ))

        if index == 0:
            continue

        previous = chain[index - 1]
        if record.prev_hash != previous.self_hash:
            errors.append(ChainVerificationError(
                error_type=ChainErrorType.PREV_HASH,
                record_index=index,
                record_id=record.id,
                message="prev_hash does not match previous record's self_hash (broken chain)",
                expected=previous.self_hash,
                actual=record.prev_hash if record.prev_hash is not None else "null",
            ))

        if to_utc(record.created_at) < to_utc(previous.created_at):
            errors.append(ChainVerificationError(
                error_type=ChainErrorType.ORDERING,
                record_index=index,
                record_id=record.id,
                message="Record is out of chronological order",
                expected=f">= {format_timestamp(previous.created_at)}",
                actual=format_timestamp(record.created_at),
            ))

    logger.debug(
        "Verified %d audit records: %d errors",
        len(chain),
        len(errors),
    )

    return ChainVerificationResult(
        valid=not errors,
        total_records=len(chain),
        errors=errors,
    )


def _coerce_records(
    records: Sequence[AuditRecord | Mapping[str, Any]],
) -> list[AuditRecord]:
    """Check the argument shape and turn stored mappings into records."""
    if isinstance(records, (str, bytes)) or not isinstance(records, Sequence):
        raise TypeError(
            f"records must be a sequence of audit records, got {type(records).__name__}"
        )

    chain = []
    for item in records:
        if isinstance(item, AuditRecord):
            chain.append(item)
        elif isinstance(item, Mapping):
            chain.append(AuditRecord.model_validate(item))
        else:
            raise TypeError(f"Cannot verify item of type {type(item).__name__}")
    return chain
