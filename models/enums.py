from enum import Enum


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    LEVEL3_WORK = "level3_work"                    # agent work queue (claimable)
    DOCTOR_REVIEW = "doctor_review"                # review link sent, waiting on doctor
    DOCTOR_APPROVED = "doctor_approved"
    DOCTOR_DENIED = "doctor_denied"
    LEVEL4_VERIFICATION = "level4_verification"    # agent done, waiting on admin
    COMPLETED = "completed"
    REJECTED = "rejected"


TERMINAL_STATUSES = frozenset({ApplicationStatus.COMPLETED, ApplicationStatus.REJECTED})


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PROCESSING = "processing"          # row reserved while a charge is in flight
    PAID = "paid"


class QueueStatus(str, Enum):
    WAITING = "waiting"
    CLAIMED = "claimed"
    IN_CALL = "in_call"
    DONE = "done"


ACTIVE_QUEUE_STATUSES = (QueueStatus.WAITING.value, QueueStatus.CLAIMED.value, QueueStatus.IN_CALL.value)


class QueueOutcome(str, Enum):
    APPROVED = "approved"
    DENIED = "denied"
    FOLLOW_UP = "follow_up"
    LEFT = "left"


class Role(str, Enum):
    APPLICANT = "applicant"
    REVIEWER = "reviewer"
    AGENT = "agent"
    ADMIN = "admin"
    OWNER = "owner"
    DOCTOR = "doctor"
