from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, require_capability
from api.responses import application_to_response, queue_entry_to_response
from database import get_db
from models import User
from schemas.queue import EndCallRequest, JoinQueueRequest
from services import call_queue
from services.policy import Capability

router = APIRouter(prefix="/api/queue", tags=["call-queue"])

reviewer_user = require_capability(Capability.WORK_CALL_QUEUE)


@router.get("")
async def waiting_callers(user: User = Depends(reviewer_user), db: AsyncSession = Depends(get_db)):
    return [queue_entry_to_response(e) for e in await call_queue.waiting_entries(db)]


@router.get("/stats")
async def queue_stats(user: User = Depends(reviewer_user), db: AsyncSession = Depends(get_db)):
    groups = await call_queue.stats(db)
    return {
        "waitingCount": len(groups["waiting"]),
        "inCallCount": len(groups["in_call"]),
        "completedTodayCount": len(groups["completed"]),
        "waiting": [queue_entry_to_response(e) for e in groups["waiting"]],
        "inCall": [queue_entry_to_response(e) for e in groups["in_call"]],
        "completed": [queue_entry_to_response(e) for e in groups["completed"]],
    }


@router.post("/join", status_code=201)
async def join_queue(
    body: JoinQueueRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    entry = await call_queue.join(
        db, user, body.phone, application_id=body.application_id, package_id=body.package_id
    )
    status = await call_queue.status_for(db, user)
    return {
        "entry": queue_entry_to_response(entry),
        "position": status.position if status else None,
        "estimatedWaitMinutes": status.estimated_wait_minutes if status else None,
    }


@router.get("/my-status")
async def my_status(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    status = await call_queue.status_for(db, user)
    if status is None:
        return {"inQueue": False}
    return {
        "inQueue": True,
        "position": status.position,
        "estimatedWaitMinutes": status.estimated_wait_minutes,
        "entry": queue_entry_to_response(status.entry),
    }


@router.post("/leave")
async def leave_queue(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await call_queue.leave(db, user)
    return {"message": "Left the queue"}


@router.post("/{entry_id}/claim")
async def claim_caller(entry_id: str, user: User = Depends(reviewer_user), db: AsyncSession = Depends(get_db)):
    return queue_entry_to_response(await call_queue.claim(db, entry_id, user))


@router.post("/{entry_id}/release")
async def release_caller(entry_id: str, user: User = Depends(reviewer_user), db: AsyncSession = Depends(get_db)):
    return queue_entry_to_response(await call_queue.release(db, entry_id, user))


@router.post("/{entry_id}/start-call")
async def start_call(entry_id: str, user: User = Depends(reviewer_user), db: AsyncSession = Depends(get_db)):
    return queue_entry_to_response(await call_queue.start_call(db, entry_id, user))


@router.post("/{entry_id}/end-call")
async def end_call(
    entry_id: str,
    body: EndCallRequest,
    user: User = Depends(reviewer_user),
    db: AsyncSession = Depends(get_db),
):
    entry, app = await call_queue.end_call(db, entry_id, user, body.outcome, body.notes)
    return {
        "entry": queue_entry_to_response(entry),
        "application": application_to_response(app) if app else None,
    }
