"""配置模块 -- 持久化布局常量 + 可通过环境变量覆盖的 TaskStoreConfig

环境变量:
    PALACE_REPOSITORY_ROOT: 仓库根路径（CLI 使用，默认当前目录）
    PALACE_WORK_DIR_NAME: 工作目录名（默认 .palace-work）
    PALACE_STRICT_MODE: 严格模式，持久化文件损坏时抛出异常（默认 false）
    PALACE_TASK_ID_PREFIX: 任务 ID 前缀（默认 task）
"""

import os

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()

# 持久化布局
DEFAULT_WORK_DIR_NAME = ".palace-work"
TASKS_DIR = "tasks"
ACTIVE_DIR = "active"
HISTORY_DIR = "history"
INDEX_FILE = "index.json"
EVENTS_FILE = "events.jsonl"

ACTIVE_SUFFIX = ".task.md"
HISTORY_SUFFIX = ".hist.md"

INDEX_VERSION = "1.0.0"

# 无 markdown 标题时，标题截断长度
TITLE_MAX_LENGTH: int = 50

# 统计中 top_tags 返回数量
TOP_TAGS_LIMIT: int = 10

_TRUTHY = {"1", "true", "yes", "on"}


class TaskStoreConfig(BaseModel):
    """TaskStore 配置"""

    work_dir_name: str = Field(
        default=DEFAULT_WORK_DIR_NAME,
        min_length=1,
        description="仓库根下的工作目录名",
    )
    strict: bool = Field(
        default=False,
        description="严格模式：index / 任务文件损坏时抛出 CorruptStateError",
    )
    id_prefix: str = Field(
        default="task",
        min_length=1,
        description="任务 ID 前缀",
    )


def load_task_store_config() -> TaskStoreConfig:
    """从环境变量加载 TaskStore 配置

    环境变量映射:
        PALACE_WORK_DIR_NAME -> work_dir_name (默认 ".palace-work")
        PALACE_STRICT_MODE -> strict (默认 False)
        PALACE_TASK_ID_PREFIX -> id_prefix (默认 "task")

    Returns:
        TaskStoreConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("PALACE_WORK_DIR_NAME"):
        kwargs["work_dir_name"] = val

    if val := os.environ.get("PALACE_STRICT_MODE"):
        kwargs["strict"] = val.strip().lower() in _TRUTHY

    if val := os.environ.get("PALACE_TASK_ID_PREFIX"):
        if val.strip():
            kwargs["id_prefix"] = val.strip()
        else:
            log.warning(
                "invalid_id_prefix_config",
                env_var="PALACE_TASK_ID_PREFIX",
                value=val,
                fallback="task",
            )

    return TaskStoreConfig(**kwargs)


def get_repository_root() -> str:
    """获取仓库根路径"""
    return os.environ.get("PALACE_REPOSITORY_ROOT", os.getcwd())
