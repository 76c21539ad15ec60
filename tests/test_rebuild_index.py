"""索引重建测试

测试内容：
1. 从 active / history 文件重建
2. history 记录沿用旧索引信息，否则使用默认值
3. 损坏文件跳过
"""

import json
from pathlib import Path

from conftest import REPO_ROOT
from palace.tasks.models import CreateTaskInput, TaskPriority, TaskStatus
from palace.tasks.store import LocalFileSystemAdapter, TaskStore

TASKS = f"{REPO_ROOT}/.palace-work/tasks"


class TestRebuildIndex:
    """rebuild_index"""

    async def test_empty_store(self, store, memory_fs):
        """没有任务文件时重建出空索引"""
        assert await store.rebuild_index() == 0
        data = json.loads(memory_fs.read_file(f"{TASKS}/index.json"))
        assert data["tasks"] == {}

    async def test_rebuild_matches_live_index(self, store):
        """重建结果与增量维护的索引一致"""
        a = await store.receive_task(CreateTaskInput(content="a", tags=["x"]), "alice")
        b = await store.receive_task(CreateTaskInput(content="b", priority=TaskPriority.HIGH), "bob")
        c = await store.receive_task(CreateTaskInput(content="c"), "alice")
        await store.start_task(a.id, "ade-1")
        await store.fail_task(b.id, "boom")
        await store.complete_task(c.id, {"commitSha": "abc"})
        before = store.index_manager.index.model_copy(deep=True)

        assert await store.rebuild_index() == 3

        after = store.index_manager.index
        assert after.tasks == before.tasks
        for status in TaskStatus:
            assert sorted(after.by_status[status]) == sorted(before.by_status[status])
        assert {k: sorted(v) for k, v in after.by_sender.items()} == {
            k: sorted(v) for k, v in before.by_sender.items()
        }

    async def test_recover_after_index_loss(self, store, make_store, memory_fs):
        """index.json 丢失后，新实例重建索引恢复 active 与 history 任务"""
        active = await store.receive_task(CreateTaskInput(content="# Keep", directory_path="src"), "alice")
        done = await store.receive_task(CreateTaskInput(content="# Done", priority=TaskPriority.HIGH), "bob")
        await store.complete_task(done.id, {"commitSha": "abc", "pullRequest": 9})
        memory_fs.delete_file(f"{TASKS}/index.json")

        fresh = make_store()
        assert await fresh.query_tasks() == []
        assert await fresh.rebuild_index() == 2

        restored_active = await fresh.get_task(active.id)
        assert restored_active.directory_path == "src"
        assert restored_active.sender_id == "alice"

        # history 记录不含发送者 / 优先级 / 目录
        restored_done = await fresh.get_task(done.id)
        assert restored_done.status == TaskStatus.COMPLETED
        assert restored_done.sender_id == "unknown"
        assert restored_done.priority == TaskPriority.NORMAL
        assert restored_done.content == "See PR #9 for details"

    async def test_corrupt_file_skipped(self, store, memory_fs):
        """无法解析的任务文件被跳过"""
        await store.receive_task(CreateTaskInput(content="ok"), "alice")
        memory_fs.write_file(f"{TASKS}/active/task-broken.task.md", "not a task")
        memory_fs.write_file(f"{TASKS}/active/notes.txt", "ignored")

        assert await store.rebuild_index() == 1
        assert store.index_manager.get("task-broken") is None


class TestUnreadableHistoryFile:
    """history 文件含非 UTF-8 内容"""

    async def test_invalid_history_bytes_skipped(self, tmp_path: Path):
        """get_task 返回 None，重建索引时跳过该记录"""
        store = TaskStore(LocalFileSystemAdapter(), str(tmp_path))
        done = await store.receive_task(CreateTaskInput(content="done"), "alice")
        await store.receive_task(CreateTaskInput(content="open"), "alice")
        await store.complete_task(done.id, {"commitSha": "abc"})
        history_file = tmp_path / ".palace-work" / "tasks" / "history" / f"{done.id}.hist.md"
        history_file.write_bytes(b"\xff\xfe")

        assert await store.get_task(done.id) is None
        assert await store.get_tasks_by_sender("alice") != []
        assert await store.rebuild_index() == 1
        assert store.index_manager.get(done.id) is None
