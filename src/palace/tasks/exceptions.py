"""Task Store 异常体系

预期内的业务规则违反（任务不存在、状态不允许）以 None / False 返回，不抛异常。
此处的异常仅用于严格模式下的持久化状态损坏。
"""


class TaskStoreError(Exception):
    """Task Store 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重建索引等方式恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class CorruptStateError(TaskStoreError):
    """持久化文件无法解析（index.json / 任务文件）

    仅在严格模式下抛出；默认宽松模式降级为空索引或 None。
    """

    def __init__(self, path: str, original_error: Exception) -> None:
        """
        Args:
            path: 损坏文件路径
            original_error: 原始异常
        """
        super().__init__(
            f"持久化文件已损坏: {path} -- {original_error}",
            recoverable=True,
        )
        self.path = path
        self.original_error = original_error
