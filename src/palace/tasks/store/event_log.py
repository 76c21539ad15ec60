"""审计事件日志 -- events.jsonl

事件日志 append-only：只追加，不更新、不删除，store 自身不回读。
存储能力没有 append 原语，追加通过读取现有内容后整体写回实现。
"""

from collections.abc import Callable
from typing import Any

from ..models.enums import TaskEventType
from ..models.event import TaskEvent
from .protocols import FileSystemAdapter


class TaskEventLog:
    """events.jsonl 追加写入"""

    def __init__(
        self,
        fs: FileSystemAdapter,
        tasks_dir: str,
        events_path: str,
        clock: Callable[[], int],
    ) -> None:
        self._fs = fs
        self._tasks_dir = tasks_dir
        self._events_path = events_path
        self._clock = clock

    def append(self, event: TaskEvent) -> None:
        """追加单条事件（每行一个 JSON 对象）"""
        line = event.model_dump_json(by_alias=True, exclude_none=True) + "\n"

        if not self._fs.exists(self._tasks_dir):
            self._fs.create_dir(self._tasks_dir)
        if self._fs.exists(self._events_path):
            current = self._fs.read_file(self._events_path)
            self._fs.write_file(self._events_path, current + line)
        else:
            self._fs.write_file(self._events_path, line)

    def record(
        self,
        task_id: str,
        event_type: TaskEventType,
        actor: str,
        *,
        timestamp: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> TaskEvent:
        """构造并追加事件"""
        event = TaskEvent(
            task_id=task_id,
            timestamp=timestamp if timestamp is not None else self._clock(),
            event_type=event_type,
            actor=actor,
            details=details,
        )
        self.append(event)
        return event
