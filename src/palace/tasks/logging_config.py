"""structlog 配置 -- palace.tasks 日志输出

日志统一写 stderr，stdout 留给 CLI 的命令输出（JSON / 任务列表）。
渲染模式与级别由调用方传入；未传入时读取环境变量：
    PALACE_LOG_FORMAT: dev（默认，可读输出）/ json
    PALACE_LOG_LEVEL: 日志级别（默认 INFO）

CLI 在执行命令前把 command / repository_root 绑定到 contextvars，
store 内部的每条日志（task_received、task_index_rebuilt ...）都会带上。
"""

import logging
import os
import sys

import structlog

LOG_FORMATS = ("dev", "json")
DEFAULT_LOG_FORMAT = "dev"
DEFAULT_LOG_LEVEL = "INFO"


def _resolve_level(name: str) -> int | None:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else None


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog

    Args:
        log_format: "dev" 或 "json"，默认取 PALACE_LOG_FORMAT
        log_level: 级别名（DEBUG / INFO / WARNING ...），默认取 PALACE_LOG_LEVEL
    """
    log_format = (log_format or os.environ.get("PALACE_LOG_FORMAT") or DEFAULT_LOG_FORMAT).lower()
    log_level = log_level or os.environ.get("PALACE_LOG_LEVEL") or DEFAULT_LOG_LEVEL

    invalid: dict[str, str] = {}
    if log_format not in LOG_FORMATS:
        invalid["log_format"] = log_format
        log_format = DEFAULT_LOG_FORMAT
    level = _resolve_level(log_level)
    if level is None:
        invalid["log_level"] = log_level
        level = logging.INFO

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if log_format == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    # 不缓存 logger：模块级 log 代理每次按当前配置绑定（测试中可反复重配）
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    if invalid:
        structlog.get_logger().warning(
            "invalid_logging_config",
            fallback_format=log_format,
            fallback_level=logging.getLevelName(level),
            **invalid,
        )
