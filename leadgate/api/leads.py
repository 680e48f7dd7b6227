"""
Lead endpoints.

- POST   /api/v1/leads                  - intake (public, guarded by the pipeline)
- GET    /api/v1/leads/export           - CSV export
- POST   /api/v1/leads/bulk-resend      - re-queue many leads for delivery
- GET    /api/v1/leads/{id}
- DELETE /api/v1/leads/{id}             - soft delete
- POST   /api/v1/leads/{id}/restore
- POST   /api/v1/leads/{id}/resend

Everything except intake requires a bearer token.
"""
import csv
import io
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import StreamingResponse
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from leadgate.api.auth import require_api_token
from leadgate.database import get_db
from leadgate.errors import LeadNotFound
from leadgate.models.lead import Lead
from leadgate.schemas.leads import (
    LeadCreateRequest,
    LeadResponse,
    ResendRequest,
    BulkResendRequest,
    BulkResendResponse,
)
from leadgate.services.contact_encryption import encrypt_contacts, decrypt_contacts
from leadgate.services.lead_intake import LeadIntakePipeline
from leadgate.services.lead_resend import LeadResendService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/leads", tags=["leads"])

MAX_EXPORT_ROWS = 10000

EXPORT_COLUMNS = [
    "id", "name", "phone", "email", "contacts", "city", "country",
    "quiz_id", "entity_id", "utm_source", "utm_medium", "utm_campaign",
    "paid", "blocked", "is_test", "created_at",
]


def get_pipeline() -> LeadIntakePipeline:
    return LeadIntakePipeline()


def get_resend_service() -> LeadResendService:
    return LeadResendService()


def _to_response(lead: Lead) -> LeadResponse:
    response = LeadResponse.model_validate(lead)
    response.contacts = decrypt_contacts(lead.contacts)
    return response


def _build_lead(payload: LeadCreateRequest) -> Lead:
    values = payload.model_dump(exclude={"contacts"}, exclude_none=True)
    lead = Lead(**values)
    lead.contacts = encrypt_contacts(payload.contacts)
    return lead


async def _get_live_lead(db: AsyncSession, lead_id: int) -> Lead:
    lead = await db.get(Lead, lead_id)
    if lead is None or lead.is_deleted:
        raise LeadNotFound(lead_id)
    return lead


@router.post("", status_code=201, response_model=LeadResponse)
async def create_lead(
    payload: LeadCreateRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    pipeline: LeadIntakePipeline = Depends(get_pipeline),
):
    from leadgate.config import get_settings
    settings = get_settings()

    lead = _build_lead(payload)
    if not lead.ip_address and request.client:
        lead.ip_address = request.client.host

    lead = await pipeline.intake(
        db, lead, fingerprint_header=request.headers.get(settings.fingerprint_header),
    )
    return _to_response(lead)


@router.get("/export")
async def export_leads_csv(
    user_id: Optional[int] = Query(default=None),
    quiz_id: Optional[int] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    db: AsyncSession = Depends(get_db),
    _claims: dict = Depends(require_api_token),
):
    """Export live leads as CSV (capped at 10,000 rows)."""
    query = select(Lead).where(Lead.deleted_at.is_(None))
    if user_id is not None:
        query = query.where(Lead.user_id == user_id)
    if quiz_id is not None:
        query = query.where(Lead.quiz_id == quiz_id)
    if date_from is not None:
        query = query.where(Lead.created_at >= datetime.combine(date_from, time.min, tzinfo=timezone.utc))
    if date_to is not None:
        upper = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
        query = query.where(Lead.created_at < upper)

    result = await db.execute(query.order_by(desc(Lead.created_at)).limit(MAX_EXPORT_ROWS))
    leads = result.scalars().all()

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_COLUMNS)

    for lead in leads:
        contacts = decrypt_contacts(lead.contacts)
        writer.writerow([
            lead.id,
            lead.name or "",
            lead.phone or "",
            lead.email or "",
            "; ".join(f"{k}: {v}" for k, v in contacts.items()) if contacts else "",
            lead.city or "",
            lead.country or "",
            lead.quiz_id if lead.quiz_id is not None else "",
            lead.external_entity_id,
            lead.utm_source or "",
            lead.utm_medium or "",
            lead.utm_campaign or "",
            int(bool(lead.paid)),
            int(bool(lead.blocked)),
            int(bool(lead.is_test)),
            lead.created_at.isoformat() if lead.created_at else "",
        ])

    logger.info("Exported %d leads", len(leads))

    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=leads_export.csv"},
    )


@router.post("/bulk-resend", response_model=BulkResendResponse)
async def bulk_resend_leads(
    payload: BulkResendRequest,
    db: AsyncSession = Depends(get_db),
    service: LeadResendService = Depends(get_resend_service),
    _claims: dict = Depends(require_api_token),
):
    return await service.bulk_resend(
        db, payload.lead_ids, payload.integration_types, payload.credentials,
    )


@router.get("/{lead_id}", response_model=LeadResponse)
async def get_lead(
    lead_id: int,
    db: AsyncSession = Depends(get_db),
    _claims: dict = Depends(require_api_token),
):
    return _to_response(await _get_live_lead(db, lead_id))


@router.delete("/{lead_id}", status_code=204)
async def delete_lead(
    lead_id: int,
    db: AsyncSession = Depends(get_db),
    _claims: dict = Depends(require_api_token),
):
    lead = await _get_live_lead(db, lead_id)
    lead.deleted_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("Lead soft-deleted", extra={"lead_id": lead_id})
    return Response(status_code=204)


@router.post("/{lead_id}/restore", response_model=LeadResponse)
async def restore_lead(
    lead_id: int,
    db: AsyncSession = Depends(get_db),
    _claims: dict = Depends(require_api_token),
):
    lead = await db.get(Lead, lead_id)
    if lead is None:
        raise LeadNotFound(lead_id)
    if lead.deleted_at is not None:
        lead.deleted_at = None
        await db.flush()
        logger.info("Lead restored", extra={"lead_id": lead_id})
    return _to_response(lead)


@router.post("/{lead_id}/resend")
async def resend_lead(
    lead_id: int,
    payload: Optional[ResendRequest] = None,
    db: AsyncSession = Depends(get_db),
    service: LeadResendService = Depends(get_resend_service),
    _claims: dict = Depends(require_api_token),
):
    payload = payload or ResendRequest()
    return await service.resend_lead(
        db, lead_id, payload.integration_types, payload.credentials,
    )
