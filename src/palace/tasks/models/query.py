"""查询与统计模型"""

from typing import Any, Literal

from pydantic import Field, field_validator

from .base import CamelModel
from .enums import TaskPriority, TaskStatus

_CAMEL_SORT_FIELDS = {"receivedAt": "received_at", "updatedAt": "updated_at"}


class TaskQueryOptions(CamelModel):
    """任务查询条件，各过滤条件相互独立、依次应用"""

    status: TaskStatus | list[TaskStatus] | None = None
    priority: TaskPriority | list[TaskPriority] | None = None
    directory_path: str | None = None
    sender_id: str | None = None
    ade_id: str | None = None
    tags: list[str] | None = Field(default=None, description="任一标签命中即可")
    received_after: int | None = None
    received_before: int | None = None
    updated_after: int | None = None
    sort_by: Literal["received_at", "updated_at", "priority", "status"] | None = None
    sort_direction: Literal["asc", "desc"] = "asc"
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)

    @field_validator("sort_by", mode="before")
    @classmethod
    def _normalize_sort_by(cls, value: Any) -> Any:
        """排序字段同时接受 camelCase 写法（receivedAt / updatedAt）"""
        return _CAMEL_SORT_FIELDS.get(value, value) if isinstance(value, str) else value


class TagCount(CamelModel):
    tag: str
    count: int


class SenderCount(CamelModel):
    sender_id: str
    count: int


class TaskStatistics(CamelModel):
    """仓库内任务统计"""

    total: int
    by_status: dict[TaskStatus, int]
    by_priority: dict[TaskPriority, int]
    average_completion_minutes: float | None = Field(
        default=None, description="从接收到完成的平均耗时（分钟）"
    )
    received_last_week: int
    completed_last_week: int
    by_directory: dict[str, int] = Field(default_factory=dict)
    top_tags: list[TagCount] = Field(default_factory=list)
    active_senders: list[SenderCount] = Field(default_factory=list)
