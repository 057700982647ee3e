from schemas.application import (
    ApplicationCreate,
    CompleteWorkRequest,
    DoctorDecisionRequest,
    ProcessPaymentRequest,
    ReviewerDecisionRequest,
    SendToDoctorRequest,
    VerifyRequest,
)
from schemas.package import FormFieldSchema, PackageCreate, PackageUpdate
from schemas.queue import EndCallRequest, JoinQueueRequest
from schemas.site_config import SiteConfigUpdate
from schemas.user import UserCreate, UserNoteCreate, UserRegister, UserUpdate

__all__ = [
    "ApplicationCreate",
    "CompleteWorkRequest",
    "DoctorDecisionRequest",
    "EndCallRequest",
    "FormFieldSchema",
    "JoinQueueRequest",
    "PackageCreate",
    "PackageUpdate",
    "ProcessPaymentRequest",
    "ReviewerDecisionRequest",
    "SendToDoctorRequest",
    "SiteConfigUpdate",
    "UserCreate",
    "UserNoteCreate",
    "UserRegister",
    "UserUpdate",
]
