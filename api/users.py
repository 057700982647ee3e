from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, require_capability
from api.responses import user_note_to_response, user_to_response
from database import get_db
from models import User, UserNote
from models.enums import Role
from schemas.user import UserCreate, UserNoteCreate, UserRegister, UserUpdate
from services.errors import NotFoundError, PermissionDeniedError, ValidationError
from services.notifications import send_welcome_email
from services.policy import Capability
from services.site_settings import site_name
from utils import new_id, utcnow

router = APIRouter(prefix="/api", tags=["users"])


async def _create_user(db: AsyncSession, body: UserRegister, role: Role) -> User:
    email = body.email.strip().lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise ValidationError("Email already registered")
    user = User(
        id=new_id("usr"),
        email=email,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        state=body.state,
        role=role.value,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


async def _get_user(db: AsyncSession, user_id: str) -> User:
    target = await db.get(User, user_id)
    if target is None:
        raise NotFoundError("User not found")
    return target


@router.post("/users/register", status_code=201)
async def register(body: UserRegister, background_tasks: BackgroundTasks, db: AsyncSession = Depends(get_db)):
    user = await _create_user(db, body, Role.APPLICANT)
    background_tasks.add_task(send_welcome_email, user.email, user.first_name, await site_name(db))
    return user_to_response(user)


@router.get("/users/me")
async def me(user: User = Depends(get_current_user)):
    return user_to_response(user)


@router.get("/admin/users")
async def list_users(
    role: str | None = None,
    user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(User).order_by(User.created_at.desc())
    if role:
        stmt = stmt.where(User.role == role)
    result = await db.execute(stmt)
    return [user_to_response(u) for u in result.scalars().all()]


@router.post("/admin/users", status_code=201)
async def create_user(
    body: UserCreate,
    background_tasks: BackgroundTasks,
    user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    if body.role == Role.OWNER.value and user.role != Role.OWNER.value:
        raise PermissionDeniedError("Only an owner can create owner accounts")
    created = await _create_user(db, body, Role(body.role))
    background_tasks.add_task(send_welcome_email, created.email, created.first_name, await site_name(db))
    return user_to_response(created)


@router.patch("/admin/users/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdate,
    user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    target = await _get_user(db, user_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True, by_alias=False)
    if Role.OWNER.value in (changes.get("role"), target.role) and user.role != Role.OWNER.value:
        raise PermissionDeniedError("Only an owner can change owner accounts")
    for field, value in changes.items():
        setattr(target, field, value)
    await db.flush()
    await db.refresh(target)
    return user_to_response(target)


@router.get("/users/{user_id}/notes")
async def list_user_notes(
    user_id: str,
    user: User = Depends(require_capability(Capability.MANAGE_USER_NOTES)),
    db: AsyncSession = Depends(get_db),
):
    await _get_user(db, user_id)
    result = await db.execute(
        select(UserNote).where(UserNote.user_id == user_id).order_by(UserNote.created_at.desc(), UserNote.id)
    )
    return [user_note_to_response(n) for n in result.scalars().all()]


@router.post("/users/{user_id}/notes", status_code=201)
async def add_user_note(
    user_id: str,
    body: UserNoteCreate,
    user: User = Depends(require_capability(Capability.MANAGE_USER_NOTES)),
    db: AsyncSession = Depends(get_db),
):
    content = body.content.strip()
    if not content:
        raise ValidationError("Note content is required", missing=["content"])
    await _get_user(db, user_id)
    note = UserNote(id=new_id("note"), user_id=user_id, author_id=user.id, content=content, created_at=utcnow())
    db.add(note)
    await db.flush()
    return user_note_to_response(note)
