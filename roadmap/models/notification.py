import enum

from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Text, Boolean, JSON

from roadmap.db.base import Base
from roadmap.utils.dates import utc_now


class NotificationType(str, enum.Enum):
    NEW_FEATURE = "new_feature"
    STATUS_UPDATE = "status_update"
    MENTION = "mention"


class ActivityAction(str, enum.Enum):
    PROJECT_CREATED = "PROJECT_CREATED"
    FEATURE_CREATED = "FEATURE_CREATED"
    FEATURE_STATUS_CHANGED = "FEATURE_STATUS_CHANGED"
    COMMENT_ADDED = "COMMENT_ADDED"
    USER_MENTIONED = "USER_MENTIONED"
    DISCUSSION_CREATED = "DISCUSSION_CREATED"
    PROJECT_FOLLOWED = "PROJECT_FOLLOWED"
    PROJECT_UNFOLLOWED = "PROJECT_UNFOLLOWED"
    MEMBER_JOINED = "MEMBER_JOINED"
    MEMBER_ROLE_UPDATED = "MEMBER_ROLE_UPDATED"
    MEMBER_REMOVED = "MEMBER_REMOVED"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    # Тип хранится строкой, набор значений см. NotificationType
    type = Column(String(50), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    reference_id = Column(Integer, nullable=True)
    message = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(50), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    # "metadata" зарезервировано в declarative, поэтому атрибут называется meta
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
