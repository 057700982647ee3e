from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_capability
from api.responses import application_to_response
from database import get_db
from models import User
from schemas.application import CompleteWorkRequest
from services import queue_views, workflow
from services.policy import Capability
from utils import dict_keys_to_camel

router = APIRouter(prefix="/api/agent", tags=["agent"])

agent_user = require_capability(Capability.WORK_AGENT_QUEUE)


@router.get("/work-queue")
async def work_queue(user: User = Depends(agent_user), db: AsyncSession = Depends(get_db)):
    return [application_to_response(a) for a in await queue_views.waiting(db)]


@router.get("/work-queue/stats")
async def work_queue_stats(user: User = Depends(agent_user), db: AsyncSession = Depends(get_db)):
    return dict_keys_to_camel(await queue_views.agent_stats(db, user.id))


@router.get("/my-work")
async def my_work(user: User = Depends(agent_user), db: AsyncSession = Depends(get_db)):
    return [application_to_response(a) for a in await queue_views.in_progress(db, user.id)]


@router.get("/my-completed")
async def my_completed(user: User = Depends(agent_user), db: AsyncSession = Depends(get_db)):
    return [application_to_response(a) for a in await queue_views.completed_by(db, user.id)]


@router.post("/work-queue/{application_id}/claim")
async def claim(application_id: str, user: User = Depends(agent_user), db: AsyncSession = Depends(get_db)):
    return application_to_response(await workflow.claim(db, application_id, user))


@router.post("/work-queue/{application_id}/release")
async def release(application_id: str, user: User = Depends(agent_user), db: AsyncSession = Depends(get_db)):
    return application_to_response(await workflow.release(db, application_id, user))


@router.post("/work-queue/{application_id}/complete")
async def complete(
    application_id: str,
    body: CompleteWorkRequest,
    user: User = Depends(agent_user),
    db: AsyncSession = Depends(get_db),
):
    app = await workflow.complete_work(db, application_id, user, body.notes)
    return application_to_response(app)
