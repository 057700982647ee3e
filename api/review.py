"""
Public doctor review surface. No account needed: the single-use token in the URL is the credential.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.responses import application_to_response, package_to_response
from database import get_db
from models import Package, User
from schemas.application import DoctorDecisionRequest
from services import workflow
from utils import isoformat

router = APIRouter(prefix="/api/review", tags=["review"])


@router.get("/{token}")
async def get_review(token: str, db: AsyncSession = Depends(get_db)):
    review, app = await workflow.open_review(db, token)
    patient = await db.get(User, app.user_id)
    package = await db.get(Package, app.package_id)
    doctor = await db.get(User, review.doctor_id) if review.doctor_id else None
    return {
        "application": application_to_response(app),
        "patient": {
            "firstName": patient.first_name,
            "lastName": patient.last_name,
            "email": patient.email,
            "phone": patient.phone,
            "state": patient.state,
        } if patient else None,
        "package": package_to_response(package) if package else None,
        "doctor": {"id": doctor.id, "name": doctor.full_name} if doctor else None,
        "expiresAt": isoformat(review.expires_at),
    }


@router.post("/{token}/decision")
async def submit_decision(token: str, body: DoctorDecisionRequest, db: AsyncSession = Depends(get_db)):
    app = await workflow.doctor_decision(db, token, body.decision == "approved", body.notes)
    return {"status": app.status, "applicationId": app.id}
