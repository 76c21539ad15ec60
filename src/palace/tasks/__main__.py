"""CLI 入口模块 -- python -m palace.tasks <command>

支持的命令：
  list [status]   列出任务（可按状态过滤）
  show <task_id>  以 JSON 输出任务详情
  next            输出下一个待处理任务
  stats           以 JSON 输出任务统计
  rebuild-index   从任务文件重建 index.json
"""

import asyncio
import sys

import structlog

from .config import get_repository_root
from .logging_config import setup_logging
from .models.enums import TaskStatus
from .models.query import TaskQueryOptions
from .models.task import Task
from .store import create_task_store

_USAGE = """用法: python -m palace.tasks <command>
命令:
  list [status]   列出任务（可按状态过滤）
  show <task_id>  以 JSON 输出任务详情
  next            输出下一个待处理任务
  stats           以 JSON 输出任务统计
  rebuild-index   从任务文件重建 index.json"""

_COMMANDS = ("list", "show", "next", "stats", "rebuild-index")


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]
    args = sys.argv[2:]

    if command not in _COMMANDS:
        print(f"未知命令: {command}")
        print(f"可用命令: {', '.join(_COMMANDS)}")
        sys.exit(1)

    setup_logging()
    exit_code = asyncio.run(run_command(command, args))
    if exit_code:
        sys.exit(exit_code)


def _format_line(task: Task) -> str:
    return f"{task.id}  {task.status.value:<12} {task.priority.value:<8} {task.title}"


async def run_command(command: str, args: list[str]) -> int:
    """执行命令，返回退出码"""
    repository_root = get_repository_root()
    structlog.contextvars.bind_contextvars(command=command, repository_root=repository_root)
    store = create_task_store(repository_root)

    if command == "list":
        options = TaskQueryOptions(sort_by="received_at")
        if args:
            try:
                options.status = TaskStatus(args[0])
            except ValueError:
                print(f"未知状态: {args[0]}")
                print(f"可用状态: {', '.join(s.value for s in TaskStatus)}")
                return 1
        tasks = await store.query_tasks(options)
        for task in tasks:
            print(_format_line(task))
        print(f"共 {len(tasks)} 个任务")
        return 0

    if command == "show":
        if not args:
            print("用法: python -m palace.tasks show <task_id>")
            return 1
        task = await store.get_task(args[0])
        if task is None:
            print(f"任务不存在: {args[0]}")
            return 1
        print(task.model_dump_json(by_alias=True, exclude_none=True, indent=2))
        return 0

    if command == "next":
        task = await store.get_next_pending_task()
        if task is None:
            print("没有待处理任务")
            return 0
        print(_format_line(task))
        return 0

    if command == "stats":
        stats = await store.get_statistics()
        print(stats.model_dump_json(by_alias=True, indent=2))
        return 0

    print(f"重建索引: {store.tasks_path}")
    task_count = await store.rebuild_index()
    print(f"重建完成，索引 {task_count} 个任务")
    return 0


if __name__ == "__main__":
    main()
