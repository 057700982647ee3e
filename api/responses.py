"""Serializers: ORM rows to camelCase dicts for the frontend."""
from typing import Any, Optional

from models import Application, ApplicationEvent, Package, Payment, QueueEntry, SiteConfig, User, UserNote
from models.site_config import DEFAULT_SITE_NAME
from services.site_settings import role_names
from utils import dict_keys_to_camel, isoformat


def _money(value) -> Optional[str]:
    return f"{value:.2f}" if value is not None else None


def application_to_response(app: Application) -> dict[str, Any]:
    return {
        "id": app.id,
        "userId": app.user_id,
        "packageId": app.package_id,
        "status": app.status,
        # formData is returned exactly as submitted
        "formData": app.form_data or {},
        "paymentStatus": app.payment_status,
        "paymentAmount": _money(app.payment_amount),
        "assignedAgentId": app.assigned_agent_id,
        "level2Notes": app.level2_notes,
        "level2ApprovedAt": isoformat(app.level2_approved_at),
        "level3Notes": app.level3_notes,
        "level3CompletedAt": isoformat(app.level3_completed_at),
        "level3CompletedBy": app.level3_completed_by,
        "level4Notes": app.level4_notes,
        "level4VerifiedAt": isoformat(app.level4_verified_at),
        "doctorId": app.doctor_id,
        "doctorNotes": app.doctor_notes,
        "reworkCount": app.rework_count or 0,
        "rejectionReason": app.rejection_reason,
        "completedAt": isoformat(app.completed_at),
        "createdAt": isoformat(app.created_at),
        "updatedAt": isoformat(app.updated_at),
    }


def event_to_response(e: ApplicationEvent) -> dict[str, Any]:
    return {
        "id": e.id,
        "applicationId": e.application_id,
        "actorId": e.actor_id,
        "action": e.action,
        "fromStatus": e.from_status,
        "toStatus": e.to_status,
        "notes": e.notes,
        "createdAt": isoformat(e.created_at),
    }


def package_to_response(p: Package) -> dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "price": _money(p.price),
        "state": p.state,
        "formFields": dict_keys_to_camel(p.form_fields or []),
        "requiresLevel2Interaction": p.requires_level2_interaction,
        "isActive": p.is_active,
        "sortOrder": p.sort_order,
    }


def user_to_response(u: User) -> dict[str, Any]:
    return {
        "id": u.id,
        "email": u.email,
        "firstName": u.first_name,
        "lastName": u.last_name,
        "phone": u.phone,
        "state": u.state,
        "role": u.role,
        "isActive": u.is_active,
        "createdAt": isoformat(u.created_at),
    }


def payment_to_response(p: Payment) -> dict[str, Any]:
    return {
        "id": p.id,
        "applicationId": p.application_id,
        "userId": p.user_id,
        "amount": _money(p.amount),
        "status": p.status,
        "method": p.method,
        "transactionId": p.transaction_id,
        "recordedBy": p.recorded_by,
        "createdAt": isoformat(p.created_at),
    }


def user_note_to_response(n: UserNote) -> dict[str, Any]:
    return {
        "id": n.id,
        "userId": n.user_id,
        "authorId": n.author_id,
        "content": n.content,
        "createdAt": isoformat(n.created_at),
    }


def queue_entry_to_response(q: QueueEntry) -> dict[str, Any]:
    return {
        "id": q.id,
        "userId": q.user_id,
        "applicationId": q.application_id,
        "packageId": q.package_id,
        "phone": q.phone,
        "status": q.status,
        "reviewerId": q.reviewer_id,
        "notes": q.notes,
        "outcome": q.outcome,
        "createdAt": isoformat(q.created_at),
        "claimedAt": isoformat(q.claimed_at),
        "callStartedAt": isoformat(q.call_started_at),
        "callEndedAt": isoformat(q.call_ended_at),
    }


def site_config_to_response(config: Optional[SiteConfig]) -> dict[str, Any]:
    base = {
        "siteName": DEFAULT_SITE_NAME,
        "tagline": None,
        "description": None,
        "logoUrl": None,
        "faviconUrl": None,
        "primaryColor": "#3b82f6",
        "contactEmail": None,
        "contactPhone": None,
        "address": None,
    }
    if config is not None:
        base.update({
            "siteName": config.site_name,
            "tagline": config.tagline,
            "description": config.description,
            "logoUrl": config.logo_url,
            "faviconUrl": config.favicon_url,
            "primaryColor": config.primary_color,
            "contactEmail": config.contact_email,
            "contactPhone": config.contact_phone,
            "address": config.address,
        })
    base["roleNames"] = role_names(config)
    return base
