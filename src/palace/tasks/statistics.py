"""任务统计 -- 仅基于索引计算，不加载任务正文"""

from collections import Counter

from .config import TOP_TAGS_LIMIT
from .models.enums import TERMINAL_STATES, TaskPriority, TaskStatus
from .models.index import TaskIndex
from .models.query import SenderCount, TagCount, TaskStatistics

WEEK_MS = 7 * 24 * 60 * 60 * 1000
_MINUTE_MS = 60 * 1000


def compute_statistics(index: TaskIndex, now_ms: int) -> TaskStatistics:
    """汇总索引中的任务

    Args:
        index: 任务索引
        now_ms: 统计时刻（epoch 毫秒），最近 7 天窗口以此为终点

    Returns:
        TaskStatistics
    """
    entries = list(index.tasks.values())
    week_start = now_ms - WEEK_MS

    by_status = {status: 0 for status in TaskStatus}
    by_priority = {priority: 0 for priority in TaskPriority}
    by_directory: Counter[str] = Counter()
    tags: Counter[str] = Counter()
    senders: Counter[str] = Counter()
    completion_ms: list[int] = []
    received_last_week = 0
    completed_last_week = 0

    for entry in entries:
        by_status[entry.status] += 1
        by_priority[entry.priority] += 1
        by_directory[entry.directory_path] += 1
        tags.update(entry.tags)

        if entry.status not in TERMINAL_STATES:
            senders[entry.sender_id] += 1

        if entry.received_at >= week_start:
            received_last_week += 1

        if entry.status == TaskStatus.COMPLETED and entry.completed_at is not None:
            completion_ms.append(entry.completed_at - entry.received_at)
            if entry.completed_at >= week_start:
                completed_last_week += 1

    average = (
        sum(completion_ms) / len(completion_ms) / _MINUTE_MS if completion_ms else None
    )

    return TaskStatistics(
        total=len(entries),
        by_status=by_status,
        by_priority=by_priority,
        average_completion_minutes=average,
        received_last_week=received_last_week,
        completed_last_week=completed_last_week,
        by_directory=dict(by_directory),
        top_tags=[
            TagCount(tag=tag, count=count) for tag, count in tags.most_common(TOP_TAGS_LIMIT)
        ],
        active_senders=[
            SenderCount(sender_id=sender, count=count) for sender, count in senders.most_common()
        ],
    )
