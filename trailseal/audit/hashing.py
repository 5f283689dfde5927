"""Content hashing and chain linking.

All hashes are SHA-256 over the UTF-8 canonical form, lowercase hex.
"""

import hashlib

from trailseal.audit.canonical import canonicalize
from trailseal.audit.models import AuditRecord, ChainLink

HASH_ALGORITHM = "sha256"


def content_hash(record: AuditRecord) -> str:
    """Compute the content hash (`selfHash`) of a record.

    Depends only on the canonical content fields, so changing `id`,
    `prev_hash` or `self_hash` never changes the result.
    """
    canonical = canonicalize(record)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def link(record: AuditRecord, prev_hash: str | None) -> ChainLink:
    """Compute the hash pair to persist with a new record.

    `prev_hash` is passed through unchanged: None for the first record of an
    organization's chain, otherwise the latest `self_hash` of that chain.
    It is not folded into `self_hash`; continuity is checked by the verifier.
    """
    return ChainLink(prev_hash=prev_hash, self_hash=content_hash(record))
