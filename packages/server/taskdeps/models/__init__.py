# Table models, imported together so create_all sees every table.
from .base import CreatedAtMixin, TimestampMixin, UUIDMixin  # noqa: F401
from .project import Project, ProjectMember  # noqa: F401
from .task import Task  # noqa: F401
from .comment import Comment  # noqa: F401
from .dependency import TaskDependency  # noqa: F401
