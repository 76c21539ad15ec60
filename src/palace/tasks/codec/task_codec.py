"""Task / CompletedTask 与 frontmatter 文本之间的转换

内存模型中时间戳为 epoch 毫秒，文件中为 ISO-8601（UTC，毫秒精度，Z 结尾）。
"""

import re
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from pydantic import ValidationError

from ..config import (
    ACTIVE_DIR,
    ACTIVE_SUFFIX,
    DEFAULT_WORK_DIR_NAME,
    HISTORY_DIR,
    HISTORY_SUFFIX,
    TASKS_DIR,
    TITLE_MAX_LENGTH,
)
from ..exceptions import CorruptStateError
from ..models.enums import TaskPriority, TaskStatus
from ..models.task import CompletedTask, GitReferences, Task, TaskMetadata
from . import frontmatter

log = structlog.get_logger()

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)
_HEADING_RE = re.compile(r"^#+\s*")
_SUMMARY_RE = re.compile(r"^## Summary\n(.*?)\n(?=\n## Details\n|\Z)", re.DOTALL | re.MULTILINE)
_DETAILS_RE = re.compile(r"^## Details\nSee (.+) for full implementation details\.$", re.MULTILINE)

_DEFAULT_SUMMARY = "Task completed successfully."

# 解码失败的异常类型：字段缺失、类型不符、枚举 / 时间 / 模型校验失败
_DECODE_ERRORS = (KeyError, TypeError, ValueError, ValidationError)


def to_iso(epoch_ms: int) -> str:
    """epoch 毫秒 -> ISO-8601 字符串"""
    dt = _EPOCH + timedelta(milliseconds=epoch_ms)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def from_iso(value: Any) -> int:
    """ISO-8601 字符串 -> epoch 毫秒；整数原样返回"""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    dt = datetime.fromisoformat(str(value))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return (dt - _EPOCH) // _ONE_MS


def _optional_iso(epoch_ms: int | None) -> str | None:
    return to_iso(epoch_ms) if epoch_ms is not None else None


def _optional_ms(value: Any) -> int | None:
    return from_iso(value) if value not in (None, "") else None


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def extract_title(content: str) -> str:
    """从任务内容提取标题

    首行为 markdown 标题时去掉 # 标记；否则取首行前 50 个字符，截断时追加省略号。
    """
    first_line = content.split("\n")[0].strip()
    if first_line.startswith("#"):
        return _HEADING_RE.sub("", first_line)
    if len(first_line) > TITLE_MAX_LENGTH:
        return first_line[:TITLE_MAX_LENGTH] + "…"
    return first_line


def active_file_path(task_id: str, work_dir_name: str = DEFAULT_WORK_DIR_NAME) -> str:
    """active 任务文件相对仓库根的路径"""
    return f"{work_dir_name}/{TASKS_DIR}/{ACTIVE_DIR}/{task_id}{ACTIVE_SUFFIX}"


def history_file_path(task_id: str, work_dir_name: str = DEFAULT_WORK_DIR_NAME) -> str:
    """history 记录相对仓库根的路径"""
    return f"{work_dir_name}/{TASKS_DIR}/{HISTORY_DIR}/{task_id}{HISTORY_SUFFIX}"


def serialize_task(task: Task) -> str:
    """将 Task 渲染为 active 文件内容"""
    fields: dict[str, Any] = {
        "id": task.id,
        "status": task.status.value,
        "priority": task.priority.value,
        "receivedAt": to_iso(task.received_at),
        "updatedAt": to_iso(task.updated_at),
        "directory": task.directory_path,
        "repository": task.repository_path,
        "tags": task.tags,
        "anchors": task.anchors,
        "senderId": task.sender_id,
        "adeId": task.ade_id,
        "acknowledgedAt": _optional_iso(task.acknowledged_at),
        "startedAt": _optional_iso(task.started_at),
        "failedAt": _optional_iso(task.failed_at),
        "completedAt": _optional_iso(task.completed_at),
        "gitRefs": (
            task.git_refs.model_dump(mode="json", by_alias=True, exclude_none=True)
            if task.git_refs is not None
            else None
        ),
        "metadata": (
            task.metadata.model_dump(mode="json", by_alias=True, exclude_none=True)
            if task.metadata is not None
            else None
        ),
    }
    return frontmatter.serialize(task.title, task.content, fields)


def _decode_task(text: str, work_dir_name: str) -> Task:
    fields, body = frontmatter.deserialize(text)
    title, content = frontmatter.split_title(body)

    task_id = str(fields["id"])
    status = TaskStatus(fields["status"])
    file_path = (
        history_file_path(task_id, work_dir_name)
        if status == TaskStatus.COMPLETED
        else active_file_path(task_id, work_dir_name)
    )
    ade_id = fields.get("adeId")
    git_refs = fields.get("gitRefs")
    metadata = fields.get("metadata")

    return Task(
        id=task_id,
        title=title if title is not None else task_id,
        content=content,
        status=status,
        priority=TaskPriority(fields.get("priority", TaskPriority.NORMAL)),
        directory_path=str(fields.get("directory", "")),
        repository_path=str(fields.get("repository", "")),
        file_path=file_path,
        tags=_str_list(fields.get("tags")),
        anchors=_str_list(fields.get("anchors")),
        sender_id=str(fields["senderId"]),
        ade_id=str(ade_id) if ade_id not in (None, "") else None,
        received_at=from_iso(fields["receivedAt"]),
        updated_at=from_iso(fields["updatedAt"]),
        acknowledged_at=_optional_ms(fields.get("acknowledgedAt")),
        started_at=_optional_ms(fields.get("startedAt")),
        failed_at=_optional_ms(fields.get("failedAt")),
        completed_at=_optional_ms(fields.get("completedAt")),
        git_refs=GitReferences.model_validate(git_refs) if git_refs is not None else None,
        metadata=TaskMetadata.model_validate(metadata) if metadata is not None else None,
    )


def deserialize_task(
    text: str,
    work_dir_name: str = DEFAULT_WORK_DIR_NAME,
    *,
    path: str = "",
    strict: bool = False,
) -> Task | None:
    """解析 active 文件内容

    解析失败时记录警告并返回 None；strict=True 时抛出 CorruptStateError。
    """
    try:
        return _decode_task(text, work_dir_name)
    except _DECODE_ERRORS as e:
        if strict:
            raise CorruptStateError(path or "<task>", e) from e
        log.warning(
            "task_file_decode_failed",
            path=path,
            error_type=type(e).__name__,
            error=str(e),
        )
        return None


def build_completed_task(task: Task, git_refs: GitReferences, repository_root: str) -> CompletedTask:
    """由完成的 Task 生成轻量 history 记录"""
    pull_request = git_refs.pull_request
    return CompletedTask(
        id=task.id,
        title=task.title,
        completed_at=task.completed_at if task.completed_at is not None else task.updated_at,
        tags=list(task.tags),
        git_refs=git_refs,
        summary=f"Completed in PR #{pull_request or 'N/A'}",
        details_url=f"{repository_root}/pull/{pull_request}" if pull_request else None,
    )


def serialize_completed_task(record: CompletedTask) -> str:
    """将 CompletedTask 渲染为 history 文件内容"""
    refs = record.git_refs
    fields: dict[str, Any] = {
        "id": record.id,
        "status": TaskStatus.COMPLETED.value,
        "completedAt": to_iso(record.completed_at),
        "title": record.title,
        "tags": record.tags,
        "commitSha": refs.commit_sha,
        "pullRequest": refs.pull_request,
        "branch": refs.branch,
        "filesModified": refs.files_modified,
    }

    body = f"# {record.title}\n\n"
    body += "## Git References\n"
    body += f"- Commit: {refs.commit_sha}\n"
    if refs.pull_request:
        body += f"- PR: #{refs.pull_request}\n"
    if refs.branch:
        body += f"- Branch: {refs.branch}\n"
    body += f"\n## Summary\n{record.summary or _DEFAULT_SUMMARY}\n"
    if record.details_url:
        body += f"\n## Details\nSee {record.details_url} for full implementation details.\n"

    return frontmatter.stringify(body, fields)


def _decode_completed_task(text: str) -> CompletedTask:
    fields, body = frontmatter.deserialize(text)

    pull_request = fields.get("pullRequest")
    branch = fields.get("branch")
    files_modified = fields.get("filesModified")
    summary_match = _SUMMARY_RE.search(body)
    details_match = _DETAILS_RE.search(body)

    return CompletedTask(
        id=str(fields["id"]),
        title=str(fields["title"]),
        completed_at=from_iso(fields["completedAt"]),
        tags=_str_list(fields.get("tags")),
        git_refs=GitReferences(
            commit_sha=str(fields["commitSha"]),
            pull_request=int(pull_request) if pull_request not in (None, "") else None,
            branch=str(branch) if branch not in (None, "") else None,
            files_modified=_str_list(files_modified) if isinstance(files_modified, list) else None,
        ),
        summary=summary_match.group(1) if summary_match else None,
        details_url=details_match.group(1) if details_match else None,
    )


def deserialize_completed_task(
    text: str,
    *,
    path: str = "",
    strict: bool = False,
) -> CompletedTask | None:
    """解析 history 文件内容，失败处理同 deserialize_task"""
    try:
        return _decode_completed_task(text)
    except _DECODE_ERRORS as e:
        if strict:
            raise CorruptStateError(path or "<history>", e) from e
        log.warning(
            "history_file_decode_failed",
            path=path,
            error_type=type(e).__name__,
            error=str(e),
        )
        return None
