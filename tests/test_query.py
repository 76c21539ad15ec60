"""查询测试

测试内容：
1. get_next_pending_task 优先级与 FIFO
2. query_tasks 过滤、排序、分页
3. 按发送者 / ADE 查询
"""

from pathlib import Path

import pytest
from conftest import START_MS
from palace.tasks.config import TaskStoreConfig
from palace.tasks.exceptions import CorruptStateError
from palace.tasks.models import CreateTaskInput, TaskPriority, TaskQueryOptions, TaskStatus
from palace.tasks.store import LocalFileSystemAdapter, TaskStore
from pydantic import ValidationError


async def _receive(store, clock, content, sender="alice", **kwargs):
    task = await store.receive_task(CreateTaskInput(content=content, **kwargs), sender)
    clock.advance(1000)
    return task


class TestNextPendingTask:
    """下一个待处理任务"""

    async def test_empty_store(self, store):
        """没有任务时返回 None"""
        assert await store.get_next_pending_task() is None

    async def test_highest_priority_first(self, store, clock):
        """优先级最高者优先，同优先级按接收顺序"""
        await _receive(store, clock, "low", priority=TaskPriority.LOW)
        first_high = await _receive(store, clock, "high-1", priority=TaskPriority.HIGH)
        await _receive(store, clock, "high-2", priority=TaskPriority.HIGH)
        await _receive(store, clock, "normal", priority=TaskPriority.NORMAL)

        nxt = await store.get_next_pending_task()
        assert nxt.id == first_high.id

    async def test_skips_non_pending(self, store, clock):
        """已确认的任务不再是候选"""
        critical = await _receive(store, clock, "critical", priority=TaskPriority.CRITICAL)
        normal = await _receive(store, clock, "normal")
        await store.acknowledge_task(critical.id, "ade-1")

        nxt = await store.get_next_pending_task()
        assert nxt.id == normal.id

    async def test_skips_unloadable_task(self, store, clock, memory_fs):
        """任务文件丢失时跳过"""
        high = await _receive(store, clock, "high", priority=TaskPriority.HIGH)
        low = await _receive(store, clock, "low", priority=TaskPriority.LOW)
        memory_fs.delete_file(f"/repo/.palace-work/tasks/active/{high.id}.task.md")

        nxt = await store.get_next_pending_task()
        assert nxt.id == low.id


class TestQueryTasks:
    """条件查询"""

    @pytest.fixture
    async def seeded(self, store, clock):
        """四个任务：不同状态、优先级、目录、标签、发送者"""
        a = await _receive(store, clock, "a", priority=TaskPriority.LOW, directory_path="src", tags=["auth"])
        b = await _receive(store, clock, "b", priority=TaskPriority.CRITICAL, directory_path="docs", tags=["docs"])
        c = await _receive(store, clock, "c", sender="bob", priority=TaskPriority.HIGH, tags=["auth", "ui"])
        d = await _receive(store, clock, "d", sender="bob", directory_path="src")
        await store.acknowledge_task(b.id, "ade-1")
        await store.start_task(c.id, "ade-2")
        return a, b, c, d

    async def test_no_options_returns_all_in_index_order(self, store, seeded):
        """无条件时按索引顺序返回全部"""
        tasks = await store.query_tasks()
        assert [t.id for t in tasks] == [t.id for t in seeded]

    async def test_filter_by_status(self, store, seeded):
        """单个状态与状态列表"""
        a, b, c, d = seeded
        pending = await store.query_tasks(TaskQueryOptions(status=TaskStatus.PENDING))
        assert [t.id for t in pending] == [a.id, d.id]

        active = await store.query_tasks(
            TaskQueryOptions(status=[TaskStatus.ACKNOWLEDGED, TaskStatus.IN_PROGRESS])
        )
        assert [t.id for t in active] == [b.id, c.id]

    async def test_filter_by_priority_directory_sender(self, store, seeded):
        """优先级、目录、发送者、ADE 过滤"""
        a, b, c, d = seeded
        assert [t.id for t in await store.query_tasks({"priority": ["critical", "high"]})] == [b.id, c.id]
        assert [t.id for t in await store.query_tasks({"directoryPath": "src"})] == [a.id, d.id]
        assert [t.id for t in await store.query_tasks({"senderId": "bob"})] == [c.id, d.id]
        assert [t.id for t in await store.query_tasks({"adeId": "ade-2"})] == [c.id]

    async def test_filter_by_root_directory(self, store, seeded):
        """空字符串目录表示仓库根"""
        _, _, c, _ = seeded
        assert [t.id for t in await store.query_tasks({"directoryPath": ""})] == [c.id]

    async def test_filter_by_any_tag(self, store, seeded):
        """任一标签命中即可"""
        a, b, c, _ = seeded
        tasks = await store.query_tasks(TaskQueryOptions(tags=["ui", "docs"]))
        assert [t.id for t in tasks] == [b.id, c.id]
        tasks = await store.query_tasks(TaskQueryOptions(tags=["auth"]))
        assert [t.id for t in tasks] == [a.id, c.id]

    async def test_received_window_is_exclusive(self, store, seeded):
        """received_after / received_before 为开区间"""
        _, b, c, _ = seeded
        tasks = await store.query_tasks(
            TaskQueryOptions(received_after=START_MS, received_before=START_MS + 3000)
        )
        assert [t.id for t in tasks] == [b.id, c.id]

    async def test_updated_after(self, store, seeded, clock):
        """updated_after 过滤最近更新的任务"""
        a, _, _, _ = seeded
        cutoff = clock.now
        clock.advance(1)
        await store.fail_task(a.id, "boom")
        tasks = await store.query_tasks(TaskQueryOptions(updated_after=cutoff))
        assert [t.id for t in tasks] == [a.id]

    async def test_sort_by_priority(self, store, seeded):
        """按优先级排序，desc 为最高优先"""
        a, b, c, d = seeded
        asc = await store.query_tasks(TaskQueryOptions(sort_by="priority"))
        assert [t.id for t in asc] == [a.id, d.id, c.id, b.id]
        desc = await store.query_tasks(TaskQueryOptions(sort_by="priority", sort_direction="desc"))
        assert [t.id for t in desc] == [b.id, c.id, d.id, a.id]

    async def test_sort_by_received_desc(self, store, seeded):
        """按接收时间倒序"""
        a, b, c, d = seeded
        tasks = await store.query_tasks(TaskQueryOptions(sort_by="received_at", sort_direction="desc"))
        assert [t.id for t in tasks] == [d.id, c.id, b.id, a.id]

    async def test_sort_by_camel_case_field(self, store, seeded):
        """排序字段接受 camelCase 写法"""
        a, b, c, d = seeded
        tasks = await store.query_tasks({"sortBy": "receivedAt", "sortDirection": "desc"})
        assert [t.id for t in tasks] == [d.id, c.id, b.id, a.id]
        assert TaskQueryOptions(sort_by="updatedAt").sort_by == "updated_at"

    async def test_pagination(self, store, seeded):
        """offset 后取 limit 个"""
        _, b, c, _ = seeded
        tasks = await store.query_tasks(TaskQueryOptions(offset=1, limit=2))
        assert [t.id for t in tasks] == [b.id, c.id]

    async def test_offset_beyond_end(self, store, seeded):
        """offset 超出范围返回空列表"""
        assert await store.query_tasks(TaskQueryOptions(offset=10)) == []

    def test_invalid_pagination_rejected(self):
        """limit 必须 >= 1，offset 必须 >= 0"""
        with pytest.raises(ValidationError):
            TaskQueryOptions(limit=0)
        with pytest.raises(ValidationError):
            TaskQueryOptions(offset=-1)


class TestLookups:
    """按发送者 / ADE 查询"""

    async def test_tasks_by_sender(self, store, clock):
        """按接收顺序返回发送者的任务"""
        first = await _receive(store, clock, "one")
        await _receive(store, clock, "other", sender="bob")
        second = await _receive(store, clock, "two")

        tasks = await store.get_tasks_by_sender("alice")
        assert [t.id for t in tasks] == [first.id, second.id]
        assert await store.get_tasks_by_sender("nobody") == []

    async def test_tasks_by_ade_includes_completed(self, store, clock):
        """ADE 的任务包括已完成任务（从 history 重建）"""
        task = await _receive(store, clock, "# Done")
        await store.start_task(task.id, "ade-1")
        await store.complete_task(task.id, {"commitSha": "abc", "pullRequest": 5})

        tasks = await store.get_tasks_by_ade("ade-1")
        assert len(tasks) == 1
        assert tasks[0].status == TaskStatus.COMPLETED
        assert tasks[0].content == "See PR #5 for details"


class TestUnreadableTaskFile:
    """任务文件含非 UTF-8 内容"""

    async def test_invalid_bytes_degrade_to_none(self, tmp_path: Path):
        """宽松模式：查询跳过该任务，get_task 返回 None"""
        store = TaskStore(LocalFileSystemAdapter(), str(tmp_path))
        broken = await store.receive_task(CreateTaskInput(content="broken"), "alice")
        intact = await store.receive_task(CreateTaskInput(content="intact"), "alice")
        active_file = tmp_path / ".palace-work" / "tasks" / "active" / f"{broken.id}.task.md"
        active_file.write_bytes(b"\xff")

        assert await store.get_task(broken.id) is None
        assert [t.id for t in await store.query_tasks()] == [intact.id]
        assert (await store.get_next_pending_task()).id == intact.id
        assert await store.acknowledge_task(broken.id, "ade-1") is None

    async def test_invalid_bytes_strict_raises(self, tmp_path: Path):
        """严格模式抛出 CorruptStateError"""
        store = TaskStore(
            LocalFileSystemAdapter(), str(tmp_path), config=TaskStoreConfig(strict=True)
        )
        task = await store.receive_task(CreateTaskInput(content="x"), "alice")
        active_file = tmp_path / ".palace-work" / "tasks" / "active" / f"{task.id}.task.md"
        active_file.write_bytes(b"\xff")

        with pytest.raises(CorruptStateError) as exc_info:
            await store.get_task(task.id)
        assert exc_info.value.path.endswith(f"{task.id}.task.md")
