"""ULID ID 生成器 -- 时间有序、可按字典序排序"""

from ulid import ULID


class UlidIdGenerator:
    """以 ULID 生成 ``<prefix>-<ULID>`` 形式的 ID"""

    def generate(self, prefix: str) -> str:
        ulid = str(ULID())
        return f"{prefix}-{ulid}" if prefix else ulid
