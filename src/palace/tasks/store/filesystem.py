"""FileSystemAdapter 本地文件系统实现

文本读写统一 UTF-8 且不做换行转换，保证任务文件按字节往返。
"""

import re
from pathlib import Path

_SLASHES_RE = re.compile(r"/+")


def join_paths(*paths: str) -> str:
    """以正斜杠拼接路径，合并重复分隔符并去掉末尾斜杠"""
    joined = _SLASHES_RE.sub("/", "/".join(paths))
    if len(joined) > 1:
        joined = joined.rstrip("/")
    return joined or "/"


def dirname(path: str) -> str:
    """正斜杠路径的父目录"""
    head, _, _ = path.rpartition("/")
    return head or "/"


class LocalFileSystemAdapter:
    """基于 pathlib 的本地文件系统存储"""

    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def read_file(self, path: str) -> str:
        return Path(path).read_bytes().decode("utf-8")

    def write_file(self, path: str, content: str) -> None:
        file_path = Path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(content.encode("utf-8"))

    def delete_file(self, path: str) -> None:
        Path(path).unlink(missing_ok=True)

    def create_dir(self, path: str) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def read_dir(self, path: str) -> list[str]:
        return sorted(child.name for child in Path(path).iterdir())

    def join(self, *paths: str) -> str:
        return join_paths(*paths)
