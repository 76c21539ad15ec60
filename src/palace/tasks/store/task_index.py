"""TaskIndex 维护 -- 内存中的单写者缓存 + index.json 整体覆盖写

构造时加载一次，之后就地修改，每次变更后整体落盘。
index.json 无法解析时视为空索引（宽松模式）并记录警告，之前的状态被丢弃；
严格模式下抛出 CorruptStateError。
"""

from collections.abc import Callable

import structlog

from ..config import ACTIVE_DIR, ACTIVE_SUFFIX, HISTORY_DIR, HISTORY_SUFFIX, INDEX_VERSION
from ..exceptions import CorruptStateError
from ..models.enums import TaskStatus
from ..models.index import TaskIndex, TaskIndexEntry
from ..models.task import Task
from .protocols import FileSystemAdapter

log = structlog.get_logger()


def _append_unique(ids: list[str], task_id: str) -> None:
    if task_id not in ids:
        ids.append(task_id)


def _discard(ids: list[str] | None, task_id: str) -> None:
    if ids and task_id in ids:
        ids.remove(task_id)


def index_file_path(task: Task) -> str:
    """索引条目中的文件路径（相对 tasks 目录）"""
    if task.status == TaskStatus.COMPLETED:
        return f"{HISTORY_DIR}/{task.id}{HISTORY_SUFFIX}"
    return f"{ACTIVE_DIR}/{task.id}{ACTIVE_SUFFIX}"


def entry_from_task(task: Task) -> TaskIndexEntry:
    """从完整 Task 生成索引摘要"""
    return TaskIndexEntry(
        id=task.id,
        status=task.status,
        priority=task.priority,
        directory_path=task.directory_path,
        sender_id=task.sender_id,
        ade_id=task.ade_id,
        tags=list(task.tags),
        received_at=task.received_at,
        updated_at=task.updated_at,
        completed_at=task.completed_at,
        file_path=index_file_path(task),
    )


def create_empty_index(now_ms: int) -> TaskIndex:
    """创建空索引，包含全部状态列表"""
    return TaskIndex(
        version=INDEX_VERSION,
        last_updated=now_ms,
        by_status={status: [] for status in TaskStatus},
    )


class TaskIndexManager:
    """TaskIndex 的加载、更新与落盘"""

    def __init__(
        self,
        fs: FileSystemAdapter,
        tasks_dir: str,
        index_path: str,
        clock: Callable[[], int],
        strict: bool = False,
    ) -> None:
        self._fs = fs
        self._tasks_dir = tasks_dir
        self._index_path = index_path
        self._clock = clock
        self._strict = strict
        self.index = self._load()

    def _load(self) -> TaskIndex:
        """加载 index.json；不存在时返回空索引"""
        if not self._fs.exists(self._index_path):
            return create_empty_index(self._clock())

        try:
            raw = self._fs.read_file(self._index_path)
            index = TaskIndex.model_validate_json(raw)
        except (OSError, ValueError) as e:
            if self._strict:
                raise CorruptStateError(self._index_path, e) from e
            log.warning(
                "task_index_corrupt",
                path=self._index_path,
                error_type=type(e).__name__,
                message="任务索引无法解析，按空索引处理",
            )
            return create_empty_index(self._clock())

        for status in TaskStatus:
            index.by_status.setdefault(status, [])
        return index

    def save(self) -> None:
        """整体覆盖写入 index.json"""
        if not self._fs.exists(self._tasks_dir):
            self._fs.create_dir(self._tasks_dir)
        self.index.last_updated = self._clock()
        self._fs.write_file(
            self._index_path,
            self.index.model_dump_json(by_alias=True, exclude_none=True, indent=2),
        )

    def reset(self) -> None:
        """丢弃内存中的索引（不落盘）"""
        self.index = create_empty_index(self._clock())

    def get(self, task_id: str) -> TaskIndexEntry | None:
        return self.index.tasks.get(task_id)

    def ids_with_status(self, status: TaskStatus) -> list[str]:
        return list(self.index.by_status.get(status, []))

    def ids_for_sender(self, sender_id: str) -> list[str]:
        return list(self.index.by_sender.get(sender_id, []))

    def ids_for_ade(self, ade_id: str) -> list[str]:
        return list(self.index.by_ade.get(ade_id, []))

    def update(self, task: Task, *, flush: bool = True) -> TaskIndexEntry:
        """写入/覆盖任务的索引条目并维护二级索引

        重复调用不会产生重复 id。
        """
        index = self.index
        old_entry = index.tasks.get(task.id)

        # 状态列表：任务只属于与其当前状态一致的那一个列表
        for status, ids in index.by_status.items():
            if status != task.status:
                _discard(ids, task.id)
        _append_unique(index.by_status.setdefault(task.status, []), task.id)

        _append_unique(index.by_sender.setdefault(task.sender_id, []), task.id)

        # ADE 重新分配时从旧 ADE 列表移除
        if old_entry is not None and old_entry.ade_id and old_entry.ade_id != task.ade_id:
            _discard(index.by_ade.get(old_entry.ade_id), task.id)
        if task.ade_id:
            _append_unique(index.by_ade.setdefault(task.ade_id, []), task.id)

        entry = entry_from_task(task)
        index.tasks[task.id] = entry

        if flush:
            self.save()
        return entry

    def remove(self, task_id: str, *, flush: bool = True) -> TaskIndexEntry | None:
        """从主映射与全部二级索引中移除任务"""
        index = self.index
        entry = index.tasks.get(task_id)
        if entry is None:
            return None

        for ids in index.by_status.values():
            _discard(ids, task_id)
        _discard(index.by_sender.get(entry.sender_id), task_id)
        if entry.ade_id:
            _discard(index.by_ade.get(entry.ade_id), task_id)

        del index.tasks[task_id]

        if flush:
            self.save()
        return entry
