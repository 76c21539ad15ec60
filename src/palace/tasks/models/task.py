"""Task Domain Model

active 目录下的任务文件是 Task 的完整渲染；
任务完成后降级为轻量的 CompletedTask 写入 history 目录（有损归档）。
"""

from typing import Any

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .base import CamelModel
from .enums import TaskPriority, TaskStatus


class GitReferences(CamelModel):
    """完成任务时附带的 git 引用"""

    commit_sha: str = Field(description="提交 SHA")
    pull_request: int | None = Field(default=None, description="PR 编号")
    branch: str | None = Field(default=None, description="分支名")
    files_modified: list[str] | None = Field(default=None, description="修改的文件列表")

    @field_validator("files_modified")
    @classmethod
    def _empty_files_as_none(cls, value: list[str] | None) -> list[str] | None:
        # 文件中省略空列表，空列表与未设置等价
        return value or None


class TaskAssociations(CamelModel):
    """任务与 palace 元素的关联"""

    notes: list[str] | None = None
    views: list[str] | None = None
    rooms: list[str] | None = None
    drawings: list[str] | None = None


class TaskMetadata(CamelModel):
    """开放的元数据映射，未声明的键原样保留"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    requester_name: str | None = None
    source: str | None = Field(default=None, description="任务来源，如 mcp_server / cli / web")
    estimated_minutes: int | None = None
    actual_minutes: int | None = None
    error_message: str | None = Field(default=None, description="失败原因")
    associations: TaskAssociations | None = None
    related_task_ids: list[str] | None = None
    parent_task_id: str | None = None
    child_task_ids: list[str] | None = None
    custom: dict[str, Any] | None = None


class Task(CamelModel):
    """Task 数据模型

    时间戳均为 epoch 毫秒；文件中以 ISO-8601 存储，由 codec 负责转换。
    """

    id: str = Field(description="唯一标识，task- 前缀")
    title: str = Field(description="从 content 提取的标题")
    content: str = Field(description="markdown 格式的工作请求")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="当前状态")
    priority: TaskPriority = Field(default=TaskPriority.NORMAL, description="优先级")
    directory_path: str = Field(description="任务作用的目录（相对仓库根）")
    repository_path: str = Field(description="所属仓库根路径")
    file_path: str = Field(description="任务文件相对仓库根的路径")
    tags: list[str] = Field(default_factory=list)
    anchors: list[str] = Field(default_factory=list, description="相关文件/目录")
    sender_id: str = Field(description="发送者 ID")
    ade_id: str | None = Field(default=None, description="确认后分配的 ADE")
    received_at: int
    updated_at: int
    acknowledged_at: int | None = None
    started_at: int | None = None
    completed_at: int | None = None
    failed_at: int | None = None
    git_refs: GitReferences | None = Field(default=None, description="仅完成时设置")
    metadata: TaskMetadata | None = None


class CreateTaskInput(CamelModel):
    """接收新任务的输入"""

    content: str
    directory_path: str = ""
    priority: TaskPriority = TaskPriority.NORMAL
    tags: list[str] = Field(default_factory=list)
    anchors: list[str] = Field(default_factory=list)
    metadata: TaskMetadata | None = None


class CompletedTask(CamelModel):
    """history 目录中的轻量完成记录

    不保留 content / anchors / directory_path。
    """

    id: str
    title: str
    completed_at: int
    tags: list[str] = Field(default_factory=list)
    git_refs: GitReferences
    summary: str | None = None
    details_url: str | None = None
