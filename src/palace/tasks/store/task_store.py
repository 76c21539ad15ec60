"""TaskStore -- 任务生命周期引擎 + 查询层

持久化布局（相对仓库根）::

    <work-dir>/tasks/active/<taskId>.task.md
    <work-dir>/tasks/history/<taskId>.hist.md
    <work-dir>/tasks/index.json
    <work-dir>/tasks/events.jsonl

状态流转遵循 VALID_TRANSITIONS；前置条件不满足时返回 None / False，不抛异常。
每次变更依次执行：写任务文件 -> 更新并落盘索引 -> 追加审计事件。

单写者模型：同一存储根只应有一个 TaskStore 实例，内部不加锁。
公开方法为 async 仅为与异步调用方保持接口一致，方法内部没有挂起点。
"""

import time
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from ..codec.task_codec import (
    active_file_path,
    build_completed_task,
    deserialize_completed_task,
    deserialize_task,
    extract_title,
    history_file_path,
    serialize_completed_task,
    serialize_task,
)
from ..config import (
    ACTIVE_DIR,
    ACTIVE_SUFFIX,
    EVENTS_FILE,
    HISTORY_DIR,
    HISTORY_SUFFIX,
    INDEX_FILE,
    TASKS_DIR,
    TaskStoreConfig,
)
from ..exceptions import CorruptStateError
from ..models.enums import (
    AssociationKind,
    TaskEventType,
    TaskPriority,
    TaskStatus,
    priority_weight,
    validate_transition,
)
from ..models.index import TaskIndexEntry
from ..models.query import TaskQueryOptions, TaskStatistics
from ..models.task import (
    CompletedTask,
    CreateTaskInput,
    GitReferences,
    Task,
    TaskAssociations,
    TaskMetadata,
)
from ..statistics import compute_statistics
from .event_log import TaskEventLog
from .ids import UlidIdGenerator
from .protocols import FileSystemAdapter, IdGenerator
from .task_index import TaskIndexManager

log = structlog.get_logger()

SYSTEM_ACTOR = "system"
UNKNOWN_SENDER = "unknown"


def now_ms() -> int:
    """当前时间（epoch 毫秒）"""
    return time.time_ns() // 1_000_000


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else [value]


class TaskStore:
    """任务存储：生命周期操作、索引维护与查询"""

    def __init__(
        self,
        fs: FileSystemAdapter,
        repository_root: str,
        *,
        id_generator: IdGenerator | None = None,
        config: TaskStoreConfig | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._fs = fs
        self._repository_root = repository_root
        self._config = config or TaskStoreConfig()
        self._ids = id_generator or UlidIdGenerator()
        self._clock = clock or now_ms

        self._work_path = fs.join(repository_root, self._config.work_dir_name)
        self._tasks_path = fs.join(self._work_path, TASKS_DIR)
        self._active_path = fs.join(self._tasks_path, ACTIVE_DIR)
        self._history_path = fs.join(self._tasks_path, HISTORY_DIR)

        # 索引在构造时加载一次；目录延迟到首次写入时创建
        self._index = TaskIndexManager(
            fs,
            self._tasks_path,
            fs.join(self._tasks_path, INDEX_FILE),
            self._clock,
            strict=self._config.strict,
        )
        self._events = TaskEventLog(
            fs,
            self._tasks_path,
            fs.join(self._tasks_path, EVENTS_FILE),
            self._clock,
        )

    @property
    def repository_root(self) -> str:
        return self._repository_root

    @property
    def tasks_path(self) -> str:
        """tasks 目录的存储路径"""
        return self._tasks_path

    @property
    def index_manager(self) -> TaskIndexManager:
        return self._index

    # ------------------------------------------------------------------
    # 接收任务
    # ------------------------------------------------------------------

    async def receive_task(
        self,
        task_input: CreateTaskInput | Mapping[str, Any],
        sender_id: str,
    ) -> Task:
        """接收发送者提交的新任务，总是成功"""
        if not isinstance(task_input, CreateTaskInput):
            task_input = CreateTaskInput.model_validate(task_input)

        task_id = self._ids.generate(self._config.id_prefix)
        now = self._clock()

        task = Task(
            id=task_id,
            title=extract_title(task_input.content),
            content=task_input.content,
            status=TaskStatus.PENDING,
            priority=task_input.priority,
            directory_path=task_input.directory_path,
            repository_path=self._repository_root,
            file_path=active_file_path(task_id, self._config.work_dir_name),
            tags=list(task_input.tags),
            anchors=list(task_input.anchors),
            sender_id=sender_id,
            received_at=now,
            updated_at=now,
            metadata=(
                task_input.metadata.model_copy(deep=True)
                if task_input.metadata is not None
                else None
            ),
        )

        self._save_task_file(task)
        self._index.update(task)
        self._events.record(task.id, TaskEventType.RECEIVED, sender_id, timestamp=now)

        log.info(
            "task_received",
            task_id=task.id,
            sender_id=sender_id,
            priority=task.priority.value,
        )
        return task

    # ------------------------------------------------------------------
    # 状态流转
    # ------------------------------------------------------------------

    async def acknowledge_task(self, task_id: str, ade_id: str) -> Task | None:
        """ADE 确认接收任务，仅 pending 状态可确认"""
        task = self._load_for_transition(task_id, TaskStatus.ACKNOWLEDGED)
        if task is None:
            return None

        now = self._clock()
        task.status = TaskStatus.ACKNOWLEDGED
        task.ade_id = ade_id
        task.acknowledged_at = now
        task.updated_at = now

        self._save_task_file(task)
        self._index.update(task)
        self._events.record(task_id, TaskEventType.ACKNOWLEDGED, ade_id, timestamp=now)
        return task

    async def start_task(self, task_id: str, ade_id: str) -> Task | None:
        """开始处理任务，pending / acknowledged 状态可开始，覆盖 ADE 分配"""
        task = self._load_for_transition(task_id, TaskStatus.IN_PROGRESS)
        if task is None:
            return None

        now = self._clock()
        task.status = TaskStatus.IN_PROGRESS
        task.ade_id = ade_id
        task.started_at = now
        task.updated_at = now

        self._save_task_file(task)
        self._index.update(task)
        self._events.record(task_id, TaskEventType.STARTED, ade_id, timestamp=now)
        return task

    async def complete_task(
        self,
        task_id: str,
        git_refs: GitReferences | Mapping[str, Any],
    ) -> Task | None:
        """完成任务：写入 history 轻量记录并移除 active 文件"""
        if not isinstance(git_refs, GitReferences):
            git_refs = GitReferences.model_validate(git_refs)

        task = self._load_for_transition(task_id, TaskStatus.COMPLETED)
        if task is None:
            return None

        now = self._clock()
        task.status = TaskStatus.COMPLETED
        task.git_refs = git_refs
        task.completed_at = now
        task.updated_at = now
        task.file_path = history_file_path(task_id, self._config.work_dir_name)

        record = build_completed_task(task, git_refs, self._repository_root)
        self._save_completed_task(record)

        active_file = self._active_file(task_id)
        if self._fs.exists(active_file):
            self._fs.delete_file(active_file)

        self._index.update(task)
        self._events.record(
            task_id,
            TaskEventType.COMPLETED,
            task.ade_id or SYSTEM_ACTOR,
            timestamp=now,
            details={"gitRefs": git_refs.model_dump(mode="json", by_alias=True, exclude_none=True)},
        )

        log.info(
            "task_completed",
            task_id=task_id,
            commit_sha=git_refs.commit_sha,
            pull_request=git_refs.pull_request,
        )
        return task

    async def fail_task(self, task_id: str, reason: str) -> Task | None:
        """标记任务失败，原因写入 metadata.error_message"""
        task = self._load_for_transition(task_id, TaskStatus.FAILED)
        if task is None:
            return None

        now = self._clock()
        task.status = TaskStatus.FAILED
        task.failed_at = now
        task.updated_at = now
        if task.metadata is None:
            task.metadata = TaskMetadata()
        task.metadata.error_message = reason

        self._save_task_file(task)
        self._index.update(task)
        self._events.record(
            task_id,
            TaskEventType.FAILED,
            task.ade_id or SYSTEM_ACTOR,
            timestamp=now,
            details={"reason": reason},
        )

        log.info("task_failed", task_id=task_id, reason=reason)
        return task

    async def delete_task(self, task_id: str) -> bool:
        """从跟踪中移除任务

        非 completed 任务同时删除 active 文件；history 记录永不删除。
        """
        entry = self._index.get(task_id)
        if entry is None:
            return False

        if entry.status != TaskStatus.COMPLETED:
            active_file = self._active_file(task_id)
            if self._fs.exists(active_file):
                self._fs.delete_file(active_file)

        self._index.remove(task_id)
        self._events.record(task_id, TaskEventType.DELETED, SYSTEM_ACTOR)

        log.info("task_deleted", task_id=task_id, status=entry.status.value)
        return True

    async def add_association(
        self,
        task_id: str,
        kind: AssociationKind | str,
        element_id: str,
    ) -> Task | None:
        """记录任务创建/修改的 palace 元素（notes / views / rooms / drawings）

        completed 任务已归档，不再接受关联。
        """
        kind = AssociationKind(kind)
        entry = self._index.get(task_id)
        if entry is None or entry.status == TaskStatus.COMPLETED:
            return None

        task = self._get_task(task_id)
        if task is None:
            return None

        if task.metadata is None:
            task.metadata = TaskMetadata()
        if task.metadata.associations is None:
            task.metadata.associations = TaskAssociations()
        associations = task.metadata.associations
        element_ids = list(getattr(associations, kind.value) or [])
        if element_id not in element_ids:
            element_ids.append(element_id)
        setattr(associations, kind.value, element_ids)

        now = self._clock()
        task.updated_at = now

        self._save_task_file(task)
        self._index.update(task)
        self._events.record(
            task_id,
            TaskEventType.ASSOCIATION_ADDED,
            task.ade_id or SYSTEM_ACTOR,
            timestamp=now,
            details={"kind": kind.value, "elementId": element_id},
        )
        return task

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    async def get_task(self, task_id: str) -> Task | None:
        """查询任务详情

        completed 任务由 history 记录与索引条目重建，content 为指向 PR 的占位文本。
        """
        return self._get_task(task_id)

    async def get_next_pending_task(self) -> Task | None:
        """取优先级最高的 pending 任务，同优先级按接收顺序（FIFO）"""
        candidates: list[TaskIndexEntry] = []
        for task_id in self._index.ids_with_status(TaskStatus.PENDING):
            entry = self._index.get(task_id)
            if entry is not None:
                candidates.append(entry)

        # sorted 是稳定排序，同优先级保持 pending 列表顺序
        candidates.sort(key=lambda e: priority_weight(e.priority), reverse=True)
        for entry in candidates:
            task = self._get_task(entry.id)
            if task is not None:
                return task
        return None

    async def query_tasks(
        self,
        options: TaskQueryOptions | Mapping[str, Any] | None = None,
    ) -> list[Task]:
        """按条件查询：过滤 -> 排序 -> 分页 -> 加载任务"""
        if options is None:
            options = TaskQueryOptions()
        elif not isinstance(options, TaskQueryOptions):
            options = TaskQueryOptions.model_validate(options)

        return self._load_many(self._select_ids(options))

    async def get_tasks_by_sender(self, sender_id: str) -> list[Task]:
        """发送者提交的全部任务（按接收顺序）"""
        return self._load_many(self._index.ids_for_sender(sender_id))

    async def get_tasks_by_ade(self, ade_id: str) -> list[Task]:
        """分配给 ADE 的全部任务"""
        return self._load_many(self._index.ids_for_ade(ade_id))

    async def get_statistics(self, now: int | None = None) -> TaskStatistics:
        """基于索引的任务统计"""
        return compute_statistics(self._index.index, now if now is not None else self._clock())

    # ------------------------------------------------------------------
    # 索引重建
    # ------------------------------------------------------------------

    async def rebuild_index(self) -> int:
        """从 active / history 文件重建索引

        history 记录不含发送者 / 优先级 / 目录，优先沿用内存中旧索引的条目，
        否则使用默认值。

        Returns:
            重建后的任务数
        """
        previous = dict(self._index.index.tasks)
        self._index.reset()

        for name in self._list_dir(self._active_path):
            if not name.endswith(ACTIVE_SUFFIX):
                continue
            task = self._load_task_file(self._fs.join(self._active_path, name))
            if task is not None:
                self._index.update(task, flush=False)

        for name in self._list_dir(self._history_path):
            if not name.endswith(HISTORY_SUFFIX):
                continue
            record = self._load_history_file(self._fs.join(self._history_path, name))
            if record is None or self._index.get(record.id) is not None:
                continue
            self._index.update(
                self._task_from_history(record, previous.get(record.id)), flush=False
            )

        self._index.save()
        task_count = len(self._index.index.tasks)
        log.info("task_index_rebuilt", task_count=task_count)
        return task_count

    # ------------------------------------------------------------------
    # 内部实现
    # ------------------------------------------------------------------

    def _active_file(self, task_id: str) -> str:
        return self._fs.join(self._active_path, f"{task_id}{ACTIVE_SUFFIX}")

    def _history_file(self, task_id: str) -> str:
        return self._fs.join(self._history_path, f"{task_id}{HISTORY_SUFFIX}")

    def _ensure_dir(self, path: str) -> None:
        if not self._fs.exists(path):
            self._fs.create_dir(path)

    def _list_dir(self, path: str) -> list[str]:
        if not self._fs.exists(path):
            return []
        return self._fs.read_dir(path)

    def _save_task_file(self, task: Task) -> None:
        self._ensure_dir(self._active_path)
        self._fs.write_file(self._active_file(task.id), serialize_task(task))

    def _save_completed_task(self, record: CompletedTask) -> None:
        self._ensure_dir(self._history_path)
        self._fs.write_file(self._history_file(record.id), serialize_completed_task(record))

    def _read_text(self, path: str) -> str | None:
        """读取任务 / history 文件；不存在或无法读取（含非 UTF-8 内容）时返回 None

        严格模式下无法读取抛出 CorruptStateError。
        """
        if not self._fs.exists(path):
            return None
        try:
            return self._fs.read_file(path)
        except (OSError, ValueError) as e:
            if self._config.strict:
                raise CorruptStateError(path, e) from e
            log.warning(
                "task_file_decode_failed",
                path=path,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

    def _load_task_file(self, path: str) -> Task | None:
        text = self._read_text(path)
        if text is None:
            return None
        return deserialize_task(
            text,
            self._config.work_dir_name,
            path=path,
            strict=self._config.strict,
        )

    def _get_task(self, task_id: str) -> Task | None:
        entry = self._index.get(task_id)
        if entry is None:
            return None
        if entry.status == TaskStatus.COMPLETED:
            return self._load_completed_as_full(entry)
        return self._load_task_file(self._active_file(task_id))

    def _load_history_file(self, path: str) -> CompletedTask | None:
        text = self._read_text(path)
        if text is None:
            return None
        return deserialize_completed_task(text, path=path, strict=self._config.strict)

    def _load_completed_as_full(self, entry: TaskIndexEntry) -> Task | None:
        record = self._load_history_file(self._history_file(entry.id))
        if record is None:
            return None

        pull_request = record.git_refs.pull_request
        return Task(
            id=record.id,
            title=record.title,
            content=f"See PR #{pull_request if pull_request is not None else 'N/A'} for details",
            status=TaskStatus.COMPLETED,
            priority=entry.priority,
            directory_path=entry.directory_path,
            repository_path=self._repository_root,
            file_path=history_file_path(entry.id, self._config.work_dir_name),
            tags=list(record.tags),
            anchors=[],
            sender_id=entry.sender_id,
            ade_id=entry.ade_id,
            received_at=entry.received_at,
            updated_at=entry.updated_at,
            completed_at=record.completed_at,
            git_refs=record.git_refs,
        )

    def _task_from_history(
        self,
        record: CompletedTask,
        previous: TaskIndexEntry | None,
    ) -> Task:
        return Task(
            id=record.id,
            title=record.title,
            content="",
            status=TaskStatus.COMPLETED,
            priority=previous.priority if previous else TaskPriority.NORMAL,
            directory_path=previous.directory_path if previous else "",
            repository_path=self._repository_root,
            file_path=history_file_path(record.id, self._config.work_dir_name),
            tags=list(record.tags),
            sender_id=previous.sender_id if previous else UNKNOWN_SENDER,
            ade_id=previous.ade_id if previous else None,
            received_at=previous.received_at if previous else record.completed_at,
            updated_at=previous.updated_at if previous else record.completed_at,
            completed_at=record.completed_at,
            git_refs=record.git_refs,
        )

    def _load_for_transition(self, task_id: str, to_status: TaskStatus) -> Task | None:
        task = self._get_task(task_id)
        if task is None:
            return None
        if not validate_transition(task.status, to_status):
            log.info(
                "task_transition_rejected",
                task_id=task_id,
                from_status=task.status.value,
                to_status=to_status.value,
            )
            return None
        return task

    def _select_ids(self, options: TaskQueryOptions) -> list[str]:
        entries = self._index.index.tasks
        task_ids = list(entries)

        if options.status:
            statuses = _as_list(options.status)
            task_ids = [i for i in task_ids if entries[i].status in statuses]

        if options.priority:
            priorities = _as_list(options.priority)
            task_ids = [i for i in task_ids if entries[i].priority in priorities]

        if options.sender_id:
            task_ids = [i for i in task_ids if entries[i].sender_id == options.sender_id]

        if options.ade_id:
            task_ids = [i for i in task_ids if entries[i].ade_id == options.ade_id]

        if options.directory_path is not None:
            task_ids = [
                i for i in task_ids if entries[i].directory_path == options.directory_path
            ]

        if options.tags:
            wanted = set(options.tags)
            task_ids = [i for i in task_ids if wanted.intersection(entries[i].tags)]

        if options.received_after is not None:
            task_ids = [i for i in task_ids if entries[i].received_at > options.received_after]

        if options.received_before is not None:
            task_ids = [i for i in task_ids if entries[i].received_at < options.received_before]

        if options.updated_after is not None:
            task_ids = [i for i in task_ids if entries[i].updated_at > options.updated_after]

        if options.sort_by:
            reverse = options.sort_direction == "desc"
            if options.sort_by == "priority":
                task_ids.sort(key=lambda i: priority_weight(entries[i].priority), reverse=reverse)
            else:
                field = options.sort_by
                task_ids.sort(key=lambda i: getattr(entries[i], field), reverse=reverse)

        if options.offset:
            task_ids = task_ids[options.offset:]
        if options.limit is not None:
            task_ids = task_ids[: options.limit]

        return task_ids

    def _load_many(self, task_ids: list[str]) -> list[Task]:
        tasks: list[Task] = []
        for task_id in task_ids:
            task = self._get_task(task_id)
            if task is not None:
                tasks.append(task)
        return tasks
