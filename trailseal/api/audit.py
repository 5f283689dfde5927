"""Audit API endpoints.

Records events into per-organization hash chains and exposes chain
verification for administrators.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import Field, JsonValue

from trailseal.api.config import Settings
from trailseal.audit.chain import AuditChain
from trailseal.audit.models import (
    AuditChainStatus,
    AuditRecord,
    AuditRecordError,
    ChainModel,
    ChainVerificationResult,
)
from trailseal.audit.storage import get_audit_storage

router = APIRouter(prefix="/audit", tags=["Audit"])

_audit_chain: AuditChain | None = None


def get_settings(request: Request) -> Settings:
    """Settings attached to the running app."""
    return request.app.state.settings


def get_audit_chain(settings: Settings = Depends(get_settings)) -> AuditChain:
    """Get or create the audit chain for the configured storage."""
    global _audit_chain
    if _audit_chain is None:
        storage = get_audit_storage(
            settings.audit_storage_type, settings.audit_storage_path
        )
        _audit_chain = AuditChain(storage)
    return _audit_chain


def require_admin_verify(settings: Settings = Depends(get_settings)) -> None:
    """Reject admin verification when it is disabled for this environment."""
    if not settings.admin_verify_allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Audit chain verification is not available in this environment",
        )


# =============================================================================
# Request/Response Models
# =============================================================================


class RecordEventRequest(ChainModel):
    """Request to record an audit event."""

    organization_id: str = Field(..., min_length=1, max_length=64, description="Organization ID")
    event_type: str = Field(
        ...,
        min_length=3,
        max_length=128,
        description="Dot-namespaced event type, e.g. 'contact.created'",
    )
    event_data: JsonValue = Field(default=None, description="Event payload")
    user_id: str | None = Field(default=None, description="Actor performing the action")
    ip_address: str | None = Field(default=None, description="Defaults to the client address")
    user_agent: str | None = Field(default=None, description="Defaults to the User-Agent header")


class OrganizationVerificationResponse(ChainVerificationResult):
    """Verification result for one organization."""

    organization_id: str


class VerificationSummary(ChainModel):
    """Totals across every verified organization."""

    total_organizations: int
    total_records: int
    all_valid: bool
    total_errors: int


class AllChainsVerificationResponse(ChainModel):
    """Verification results for all organizations."""

    summary: VerificationSummary
    organizations: list[OrganizationVerificationResponse]


# =============================================================================
# Audit Endpoints
# =============================================================================


@router.post("/record", response_model=AuditRecord, status_code=status.HTTP_201_CREATED)
async def record_event(
    body: RecordEventRequest,
    request: Request,
    chain: AuditChain = Depends(get_audit_chain),
) -> AuditRecord:
    """Record an audit event at the end of the organization's chain."""
    ip_address = body.ip_address
    if ip_address is None and request.client is not None:
        ip_address = request.client.host

    try:
        return await chain.append_record(
            organization_id=body.organization_id,
            event_type=body.event_type,
            event_data=body.event_data,
            user_id=body.user_id,
            ip_address=ip_address,
            user_agent=body.user_agent or request.headers.get("user-agent"),
        )
    except AuditRecordError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        )


@router.get("/status/{organization_id}", response_model=AuditChainStatus)
async def get_chain_status(
    organization_id: str,
    chain: AuditChain = Depends(get_audit_chain),
) -> AuditChainStatus:
    """Get the status of an organization's audit chain."""
    return await chain.get_chain_status(organization_id)


@router.get(
    "/verify/{organization_id}",
    response_model=OrganizationVerificationResponse,
    dependencies=[Depends(require_admin_verify)],
)
async def verify_organization_chain(
    organization_id: str,
    chain: AuditChain = Depends(get_audit_chain),
) -> OrganizationVerificationResponse:
    """Verify the integrity of one organization's audit chain."""
    result = await chain.verify_organization(organization_id)
    return OrganizationVerificationResponse(
        organization_id=organization_id,
        **result.model_dump(),
    )


@router.get(
    "/verify",
    response_model=AllChainsVerificationResponse,
    dependencies=[Depends(require_admin_verify)],
)
async def verify_all_chains(
    chain: AuditChain = Depends(get_audit_chain),
) -> AllChainsVerificationResponse:
    """Verify every organization's audit chain."""
    results = await chain.verify_all()

    organizations = [
        OrganizationVerificationResponse(organization_id=org_id, **result.model_dump())
        for org_id, result in results.items()
    ]

    return AllChainsVerificationResponse(
        summary=VerificationSummary(
            total_organizations=len(organizations),
            total_records=sum(o.total_records for o in organizations),
            all_valid=all(o.valid for o in organizations),
            total_errors=sum(len(o.errors) for o in organizations),
        ),
        organizations=organizations,
    )
