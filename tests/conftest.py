"""全局 pytest 配置 -- 内存存储 + 确定性 ID / 时钟 fixture"""

import pytest
from palace.tasks.config import TaskStoreConfig
from palace.tasks.store import InMemoryFileSystemAdapter, TaskStore

REPO_ROOT = "/repo"
START_MS = 1_700_000_000_000


class SequentialIdGenerator:
    """按序生成 <prefix>-0001, <prefix>-0002 ..."""

    def __init__(self) -> None:
        self.counter = 0

    def generate(self, prefix: str) -> str:
        self.counter += 1
        return f"{prefix}-{self.counter:04d}"


class ManualClock:
    """手动推进的时钟（epoch 毫秒）"""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def memory_fs() -> InMemoryFileSystemAdapter:
    return InMemoryFileSystemAdapter()


@pytest.fixture
def id_generator() -> SequentialIdGenerator:
    return SequentialIdGenerator()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def make_store(memory_fs, id_generator, clock):
    """基于同一存储构造 TaskStore（模拟进程重启）"""

    def _make(config: TaskStoreConfig | None = None) -> TaskStore:
        return TaskStore(
            memory_fs,
            REPO_ROOT,
            id_generator=id_generator,
            config=config,
            clock=clock,
        )

    return _make


@pytest.fixture
def store(make_store) -> TaskStore:
    return make_store()
