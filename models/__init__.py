from models.application import Application, ApplicationEvent
from models.package import Package
from models.payment import Payment
from models.queue_entry import QueueEntry
from models.review_token import ReviewToken
from models.site_config import SiteConfig
from models.user import User
from models.user_note import UserNote

__all__ = [
    "Application",
    "ApplicationEvent",
    "Package",
    "Payment",
    "QueueEntry",
    "ReviewToken",
    "SiteConfig",
    "User",
    "UserNote",
]
