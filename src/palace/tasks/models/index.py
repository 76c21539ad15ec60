"""TaskIndex Domain Model

index.json 的结构：任务摘要 + 按状态 / 发送者 / ADE 的二级索引。
不变量：
- 二级索引中的每个 id 都在 tasks 中存在
- 每个 id 恰好出现在一个状态列表中，且与 tasks[id].status 一致
- 每个 id 在同一 sender / ADE 列表中至多出现一次
"""

from pydantic import Field

from .base import CamelModel
from .enums import TaskPriority, TaskStatus


def _empty_status_lists() -> dict[TaskStatus, list[str]]:
    return {status: [] for status in TaskStatus}


class TaskIndexEntry(CamelModel):
    """单个任务的索引摘要，足以回答查询而无需加载任务正文"""

    id: str
    status: TaskStatus
    priority: TaskPriority
    directory_path: str
    sender_id: str
    ade_id: str | None = None
    tags: list[str] = Field(default_factory=list)
    received_at: int
    updated_at: int
    completed_at: int | None = None
    file_path: str = Field(description="相对 tasks 目录的路径")


class TaskIndex(CamelModel):
    """完整任务索引"""

    version: str
    last_updated: int
    tasks: dict[str, TaskIndexEntry] = Field(default_factory=dict)
    by_status: dict[TaskStatus, list[str]] = Field(default_factory=_empty_status_lists)
    by_sender: dict[str, list[str]] = Field(default_factory=dict)
    by_ade: dict[str, list[str]] = Field(default_factory=dict, alias="byADE")
