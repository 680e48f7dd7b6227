"""
Database models - import all models here so Alembic can discover them.
"""
from leadgate.models.user import User
from leadgate.models.lead import Lead, LeadStatus
from leadgate.models.blocklist import BlockListEntry
from leadgate.models.phone_verification import PhoneVerification
from leadgate.models.task_queue import TaskQueue

__all__ = [
    "User",
    "Lead",
    "LeadStatus",
    "BlockListEntry",
    "PhoneVerification",
    "TaskQueue",
]
