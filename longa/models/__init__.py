"""
Database models - import all models here so Alembic can discover them.
"""
from longa.models.user import User
from longa.models.service import Service
from longa.models.package import SubscriptionPackage, PackageServiceInclusion
from longa.models.booking import Booking
from longa.models.booking_assignment import BookingAssignment
from longa.models.payout import Payout, PayoutExport
from longa.models.notification import Notification
from longa.models.support_faq import SupportFAQ

__all__ = [
    "User",
    "Service",
    "SubscriptionPackage",
    "PackageServiceInclusion",
    "Booking",
    "BookingAssignment",
    "Payout",
    "PayoutExport",
    "Notification",
    "SupportFAQ",
]
