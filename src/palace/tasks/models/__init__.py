"""palace.tasks Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    PRIORITY_WEIGHTS,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    AssociationKind,
    TaskEventType,
    TaskPriority,
    TaskStatus,
    priority_weight,
    validate_transition,
)
from .event import TaskEvent
from .index import TaskIndex, TaskIndexEntry
from .query import SenderCount, TagCount, TaskQueryOptions, TaskStatistics
from .task import (
    CompletedTask,
    CreateTaskInput,
    GitReferences,
    Task,
    TaskAssociations,
    TaskMetadata,
)

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "TaskEventType",
    "AssociationKind",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "PRIORITY_WEIGHTS",
    "validate_transition",
    "priority_weight",
    # Task
    "Task",
    "CreateTaskInput",
    "CompletedTask",
    "GitReferences",
    "TaskMetadata",
    "TaskAssociations",
    # Index
    "TaskIndex",
    "TaskIndexEntry",
    # Event
    "TaskEvent",
    # Query
    "TaskQueryOptions",
    "TaskStatistics",
    "TagCount",
    "SenderCount",
]
