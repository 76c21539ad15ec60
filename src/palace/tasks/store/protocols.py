"""协作者 Protocol 接口定义

定义存储能力（FileSystemAdapter）与 ID 生成器（IdGenerator）的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
路径统一为正斜杠分隔的字符串；所有操作对 store 而言是同步的。
"""

from typing import Protocol


class FileSystemAdapter(Protocol):
    """文件存储接口"""

    def exists(self, path: str) -> bool:
        """文件或目录是否存在"""
        ...

    def read_file(self, path: str) -> str:
        """读取文本文件，不存在时抛出 FileNotFoundError"""
        ...

    def write_file(self, path: str, content: str) -> None:
        """整体覆盖写入文本文件"""
        ...

    def delete_file(self, path: str) -> None:
        """删除文件"""
        ...

    def create_dir(self, path: str) -> None:
        """创建目录（含父目录）"""
        ...

    def read_dir(self, path: str) -> list[str]:
        """列出目录下的直接子项名称"""
        ...

    def join(self, *paths: str) -> str:
        """拼接路径"""
        ...


class IdGenerator(Protocol):
    """唯一标识生成接口"""

    def generate(self, prefix: str) -> str:
        """生成带前缀的唯一 ID，如 task-01J..."""
        ...
