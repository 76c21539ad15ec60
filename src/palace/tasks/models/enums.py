"""枚举定义 -- 任务状态机、优先级、审计事件类型

包含 TaskStatus 状态机、TaskPriority、TaskEventType 枚举，
以及 VALID_TRANSITIONS 合法流转映射、TERMINAL_STATES 终态集合和 PRIORITY_WEIGHTS 优先级权重。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机"""

    # 活跃状态
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    IN_PROGRESS = "in_progress"

    # 终态
    COMPLETED = "completed"
    FAILED = "failed"


class TaskPriority(StrEnum):
    """任务优先级"""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class TaskEventType(StrEnum):
    """审计事件类型（events.jsonl）"""

    RECEIVED = "received"
    ACKNOWLEDGED = "acknowledged"
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    DELETED = "deleted"
    ASSOCIATION_ADDED = "association_added"


class AssociationKind(StrEnum):
    """任务可关联的 palace 元素类型"""

    NOTES = "notes"
    VIEWS = "views"
    ROOMS = "rooms"
    DRAWINGS = "drawings"


# 合法状态流转
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {
        TaskStatus.ACKNOWLEDGED,
        TaskStatus.IN_PROGRESS,
        TaskStatus.COMPLETED,
        TaskStatus.FAILED,
    },
    TaskStatus.ACKNOWLEDGED: {
        TaskStatus.IN_PROGRESS,
        TaskStatus.COMPLETED,
        TaskStatus.FAILED,
    },
    TaskStatus.IN_PROGRESS: {
        TaskStatus.COMPLETED,
        TaskStatus.FAILED,
    },
    # 终态不可再流转
    TaskStatus.COMPLETED: set(),
    TaskStatus.FAILED: set(),
}

TERMINAL_STATES: set[TaskStatus] = {
    TaskStatus.COMPLETED,
    TaskStatus.FAILED,
}

# 数值越大越优先
PRIORITY_WEIGHTS: dict[TaskPriority, int] = {
    TaskPriority.LOW: 0,
    TaskPriority.NORMAL: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.CRITICAL: 3,
}


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed


def priority_weight(priority: TaskPriority | str) -> int:
    """返回优先级权重，未知值按 0 处理"""
    try:
        return PRIORITY_WEIGHTS[TaskPriority(priority)]
    except ValueError:
        return 0
