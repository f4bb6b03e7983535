from sqlalchemy.orm import relationship

from roadmap.models.user import User
from roadmap.models.project import Project, RoadmapStage, ProjectMember, ProjectInvite, Follower
from roadmap.models.feature import Feature, Vote, Comment, CommentLike
from roadmap.models.discussion import Discussion, DiscussionLike, DiscussionReply, DiscussionReplyLike
from roadmap.models.notification import Notification, ActivityLog

# Описаны только связи "многие к одному". Дочерние записи удаляются каскадом на уровне БД,
# коллекции считаются запросами в репозиториях.

# Отношения для Project
Project.owner = relationship("User", lazy="selectin")

# Отношения для RoadmapStage
RoadmapStage.project = relationship("Project", lazy="select")

# Отношения для ProjectMember
ProjectMember.user = relationship("User", lazy="selectin")
ProjectMember.project = relationship("Project", lazy="selectin")

# Отношения для ProjectInvite
ProjectInvite.project = relationship("Project", lazy="selectin")
ProjectInvite.invited_by = relationship("User", lazy="selectin")

# Отношения для Follower
Follower.user = relationship("User", lazy="selectin")
Follower.project = relationship("Project", lazy="selectin")

# Отношения для Feature
Feature.author = relationship("User", lazy="selectin")
Feature.stage = relationship("RoadmapStage", lazy="selectin")
Feature.project = relationship("Project", lazy="select")

# Отношения для Vote
Vote.user = relationship("User", lazy="select")
Vote.feature = relationship("Feature", lazy="selectin")

# Отношения для Comment
Comment.author = relationship("User", lazy="selectin")
Comment.feature = relationship("Feature", lazy="select")

# Отношения для лайков
CommentLike.comment = relationship("Comment", lazy="select")
DiscussionLike.discussion = relationship("Discussion", lazy="select")
DiscussionReplyLike.reply = relationship("DiscussionReply", lazy="select")

# Отношения для Discussion
Discussion.author = relationship("User", lazy="selectin")
Discussion.project = relationship("Project", lazy="select")

# Отношения для DiscussionReply
DiscussionReply.author = relationship("User", lazy="selectin")
DiscussionReply.discussion = relationship("Discussion", lazy="select")

# Отношения для Notification и ActivityLog
Notification.user = relationship("User", lazy="select")
ActivityLog.user = relationship("User", lazy="selectin")
ActivityLog.project = relationship("Project", lazy="selectin")
