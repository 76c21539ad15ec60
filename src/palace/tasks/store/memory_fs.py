"""FileSystemAdapter 内存实现 -- 测试与嵌入场景使用，不触碰真实文件系统"""

from .filesystem import dirname, join_paths


class InMemoryFileSystemAdapter:
    """内存文件系统：文件存于 dict，目录显式登记或由文件路径隐含"""

    def __init__(self) -> None:
        self._files: dict[str, str] = {}
        self._dirs: set[str] = set()

    def exists(self, path: str) -> bool:
        return path in self._files or self.is_directory(path)

    def is_directory(self, path: str) -> bool:
        if path in self._dirs:
            return True
        prefix = f"{path.rstrip('/')}/"
        return any(p.startswith(prefix) for p in self._files) or any(
            d.startswith(prefix) for d in self._dirs
        )

    def read_file(self, path: str) -> str:
        try:
            return self._files[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    def write_file(self, path: str, content: str) -> None:
        parent = dirname(path)
        if parent != "/":
            self.create_dir(parent)
        self._files[path] = content

    def delete_file(self, path: str) -> None:
        self._files.pop(path, None)

    def create_dir(self, path: str) -> None:
        if path and path != "/":
            self._dirs.add(path.rstrip("/"))

    def read_dir(self, path: str) -> list[str]:
        if path in self._files:
            raise NotADirectoryError(path)
        if not self.is_directory(path):
            raise FileNotFoundError(path)

        prefix = "" if path == "/" else f"{path.rstrip('/')}/"
        names: set[str] = set()
        for candidate in [*self._files, *self._dirs]:
            if candidate.startswith(prefix) and len(candidate) > len(prefix):
                names.add(candidate[len(prefix):].split("/")[0])
        return sorted(names)

    def join(self, *paths: str) -> str:
        return join_paths(*paths)

    # 测试辅助

    @property
    def files(self) -> dict[str, str]:
        """当前所有文件的快照"""
        return dict(self._files)
