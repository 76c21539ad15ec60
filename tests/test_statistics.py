"""任务统计测试"""

from conftest import START_MS
from palace.tasks.models import CreateTaskInput, TaskIndexEntry, TaskPriority, TaskStatus
from palace.tasks.statistics import WEEK_MS, compute_statistics
from palace.tasks.store import create_empty_index


class TestStatistics:
    """get_statistics"""

    async def test_empty_store(self, store):
        """空仓库：全部计数为 0，平均耗时为 None"""
        stats = await store.get_statistics()
        assert stats.total == 0
        assert stats.by_status == {s: 0 for s in TaskStatus}
        assert stats.by_priority == {p: 0 for p in TaskPriority}
        assert stats.average_completion_minutes is None
        assert stats.top_tags == []
        assert stats.active_senders == []

    async def test_counts_and_average(self, store, clock):
        """按状态 / 优先级 / 目录计数，平均完成耗时按分钟计"""
        a = await store.receive_task(
            CreateTaskInput(content="a", priority=TaskPriority.HIGH, directory_path="src", tags=["auth", "ui"]),
            "alice",
        )
        b = await store.receive_task(CreateTaskInput(content="b", tags=["auth"]), "bob")
        await store.receive_task(CreateTaskInput(content="c", directory_path="src"), "alice")

        clock.advance(10 * 60_000)
        await store.complete_task(a.id, {"commitSha": "1"})
        clock.advance(10 * 60_000)
        await store.complete_task(b.id, {"commitSha": "2"})

        stats = await store.get_statistics()
        assert stats.total == 3
        assert stats.by_status[TaskStatus.COMPLETED] == 2
        assert stats.by_status[TaskStatus.PENDING] == 1
        assert stats.by_priority[TaskPriority.HIGH] == 1
        assert stats.by_priority[TaskPriority.NORMAL] == 2
        assert stats.by_directory == {"src": 2, "": 1}
        assert stats.average_completion_minutes == 15.0
        assert stats.received_last_week == 3
        assert stats.completed_last_week == 2
        assert [(t.tag, t.count) for t in stats.top_tags] == [("auth", 2), ("ui", 1)]
        # 只统计未结束任务的发送者
        assert [(s.sender_id, s.count) for s in stats.active_senders] == [("alice", 1)]

    async def test_week_window(self, store, clock):
        """7 天窗口以统计时刻为终点"""
        await store.receive_task(CreateTaskInput(content="old"), "alice")
        stats = await store.get_statistics(now=START_MS + WEEK_MS + 1)
        assert stats.received_last_week == 0
        stats = await store.get_statistics(now=START_MS + WEEK_MS)
        assert stats.received_last_week == 1

    def test_top_tags_limited_to_ten(self):
        """top_tags 最多 10 个"""
        index = create_empty_index(START_MS)
        for i in range(12):
            index.tasks[f"t-{i}"] = TaskIndexEntry(
                id=f"t-{i}",
                status=TaskStatus.PENDING,
                priority=TaskPriority.NORMAL,
                directory_path="",
                sender_id="alice",
                tags=[f"tag-{i}"],
                received_at=START_MS,
                updated_at=START_MS,
                file_path=f"active/t-{i}.task.md",
            )
        stats = compute_statistics(index, START_MS)
        assert len(stats.top_tags) == 10
        assert stats.active_senders[0].count == 12
