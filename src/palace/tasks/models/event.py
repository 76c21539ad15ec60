"""TaskEvent Domain Model

事件日志 append-only，不允许更新或删除；仅作审计用途，store 自身不回读。
"""

from typing import Any

from pydantic import Field

from .base import CamelModel
from .enums import TaskEventType


class TaskEvent(CamelModel):
    """审计事件"""

    task_id: str = Field(description="关联的 Task ID")
    timestamp: int = Field(description="事件时间（epoch 毫秒）")
    event_type: TaskEventType
    actor: str = Field(description="触发者：发送者 / ADE / system")
    details: dict[str, Any] | None = None
