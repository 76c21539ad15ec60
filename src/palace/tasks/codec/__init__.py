"""palace.tasks 编解码 -- frontmatter 文本格式"""

from .frontmatter import deserialize, parse, serialize, split_title, stringify
from .task_codec import (
    active_file_path,
    build_completed_task,
    deserialize_completed_task,
    deserialize_task,
    extract_title,
    from_iso,
    history_file_path,
    serialize_completed_task,
    serialize_task,
    to_iso,
)

__all__ = [
    "serialize",
    "deserialize",
    "stringify",
    "parse",
    "split_title",
    "serialize_task",
    "deserialize_task",
    "serialize_completed_task",
    "deserialize_completed_task",
    "build_completed_task",
    "extract_title",
    "active_file_path",
    "history_file_path",
    "to_iso",
    "from_iso",
]
