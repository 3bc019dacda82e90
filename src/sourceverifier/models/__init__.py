"""SQLAlchemy ORM models."""

from sourceverifier.models.base import Base
from sourceverifier.models.submission import (
    ReviewEntryRecord,
    SubmissionRecord,
)
from sourceverifier.models.user import (
    BadgeRecord,
    PointAwardRecord,
    UserRecord,
)

__all__ = [
    "BadgeRecord",
    "Base",
    "PointAwardRecord",
    "ReviewEntryRecord",
    "SubmissionRecord",
    "UserRecord",
]
