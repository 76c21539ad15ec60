"""palace.tasks Store -- 基于文件的任务持久化

提供工厂函数按环境配置创建 TaskStore。
"""

from collections.abc import Callable

from ..config import TaskStoreConfig, load_task_store_config
from .event_log import TaskEventLog
from .filesystem import LocalFileSystemAdapter, join_paths
from .ids import UlidIdGenerator
from .memory_fs import InMemoryFileSystemAdapter
from .protocols import FileSystemAdapter, IdGenerator
from .task_index import TaskIndexManager, create_empty_index, entry_from_task
from .task_store import TaskStore, now_ms


def create_task_store(
    repository_root: str,
    fs: FileSystemAdapter | None = None,
    *,
    config: TaskStoreConfig | None = None,
    id_generator: IdGenerator | None = None,
    clock: Callable[[], int] | None = None,
) -> TaskStore:
    """创建 TaskStore

    Args:
        repository_root: 仓库根路径，工作目录位于其下
        fs: 存储能力，默认本地文件系统
        config: 配置，默认从环境变量加载

    Returns:
        TaskStore 实例
    """
    return TaskStore(
        fs if fs is not None else LocalFileSystemAdapter(),
        repository_root,
        id_generator=id_generator,
        config=config if config is not None else load_task_store_config(),
        clock=clock,
    )


__all__ = [
    "TaskStore",
    "create_task_store",
    "FileSystemAdapter",
    "IdGenerator",
    "LocalFileSystemAdapter",
    "InMemoryFileSystemAdapter",
    "UlidIdGenerator",
    "TaskIndexManager",
    "TaskEventLog",
    "create_empty_index",
    "entry_from_task",
    "join_paths",
    "now_ms",
]
