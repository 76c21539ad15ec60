"""palace.tasks -- 发送者与 ADE 之间的任务收件箱

基于文件的任务存储：active / history 任务文件、index.json 索引、events.jsonl 审计日志。
"""

from .config import TaskStoreConfig, load_task_store_config
from .exceptions import CorruptStateError, TaskStoreError
from .models import (
    AssociationKind,
    CompletedTask,
    CreateTaskInput,
    GitReferences,
    Task,
    TaskEvent,
    TaskEventType,
    TaskIndex,
    TaskIndexEntry,
    TaskMetadata,
    TaskPriority,
    TaskQueryOptions,
    TaskStatistics,
    TaskStatus,
)
from .store import (
    InMemoryFileSystemAdapter,
    LocalFileSystemAdapter,
    TaskStore,
    create_task_store,
)

__all__ = [
    "TaskStore",
    "create_task_store",
    "TaskStoreConfig",
    "load_task_store_config",
    "TaskStoreError",
    "CorruptStateError",
    "LocalFileSystemAdapter",
    "InMemoryFileSystemAdapter",
    "AssociationKind",
    "CompletedTask",
    "CreateTaskInput",
    "GitReferences",
    "Task",
    "TaskEvent",
    "TaskEventType",
    "TaskIndex",
    "TaskIndexEntry",
    "TaskMetadata",
    "TaskPriority",
    "TaskQueryOptions",
    "TaskStatistics",
    "TaskStatus",
]
