"""Frontmatter 编解码 -- 受限的 YAML 子集 + markdown 正文

文件形态::

    ---
    key: value
    list:
      - item
    ---

    <body>

规则：
- None 字段与空列表省略
- 列表渲染为 ``key:`` 行加逐项 ``  - value`` 行，列表内的对象以内联 JSON 表示
- dict 渲染为内联 JSON；数字 / 布尔渲染为 JSON 字面量
- 字符串默认裸写；含 ``:``、换行、双引号、首尾空白、空串，或会被解析为非字符串 JSON
  值时，渲染为 JSON 字符串字面量
- 解析逐行进行：``key:`` 无值开启列表收集，遇到非 ``  - `` 行结束；
  ``key: value`` 先尝试 JSON 解析，失败则按（去引号的）字符串处理

只保证自身输出可精确往返，不是通用 YAML 解析器。
"""

import json
import re
from collections.abc import Mapping
from typing import Any

__all__ = [
    "stringify",
    "parse",
    "serialize",
    "deserialize",
    "split_title",
]

_DELIMITER = "---"
_ITEM_PREFIX = "  - "

# 开头的 ---，惰性匹配字段块，直到独占一行的 ---；随后的一个空行属于分隔
_FRONTMATTER_RE = re.compile(r"\A---\n(.*?)^---\n\n?", re.DOTALL | re.MULTILINE)
_TITLE_RE = re.compile(r"\A# ([^\n]*)\n\n")


def _needs_quoting(value: str) -> bool:
    if not value or value != value.strip():
        return True
    if ":" in value or "\n" in value or "\r" in value or '"' in value:
        return True
    # 裸写后会被 JSON 解析成数字 / 布尔 / null / 数组 / 对象的字符串
    try:
        json.loads(value)
    except ValueError:
        return False
    return True


def _render_value(value: Any) -> str:
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False) if _needs_quoting(value) else value
    return json.dumps(value, ensure_ascii=False)


def _render_fields(fields: Mapping[str, Any]) -> str:
    lines: list[str] = []
    for key, value in fields.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            if not value:
                continue
            lines.append(f"{key}:")
            lines.extend(f"{_ITEM_PREFIX}{_render_value(item)}" for item in value)
        else:
            lines.append(f"{key}: {_render_value(value)}")
    return "".join(f"{line}\n" for line in lines)


def _decode_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        if len(raw) >= 2 and raw.startswith('"') and raw.endswith('"'):
            return raw[1:-1].replace('\\"', '"')
        return raw


def _parse_fields(block: str) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    current: list[Any] | None = None

    for line in block.split("\n"):
        if not line.strip():
            continue

        if line.startswith(_ITEM_PREFIX):
            if current is not None:
                current.append(_decode_value(line[len(_ITEM_PREFIX):].strip()))
            continue

        if ":" not in line:
            current = None
            continue

        key, _, raw = line.partition(":")
        key = key.strip()
        raw = raw.strip()
        if not raw:
            current = []
            fields[key] = current
        else:
            current = None
            fields[key] = _decode_value(raw)

    return fields


def stringify(body: str, fields: Mapping[str, Any]) -> str:
    """将字段与已组装好的正文渲染为完整文本"""
    return f"{_DELIMITER}\n{_render_fields(fields)}{_DELIMITER}\n\n{body}"


def parse(text: str) -> tuple[dict[str, Any], str]:
    """解析完整文本为 (fields, body)

    没有 frontmatter 块时返回 ({}, text)。
    """
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return {}, text
    return _parse_fields(match.group(1)), text[match.end():]


def serialize(body_title: str, body_content: str, fields: Mapping[str, Any]) -> str:
    """渲染 ``# <title>`` 标题 + 正文内容 + 字段"""
    return stringify(f"# {body_title}\n\n{body_content}", fields)


def deserialize(text: str) -> tuple[dict[str, Any], str]:
    """serialize 的逆操作，正文中保留标题行（使用 split_title 拆分）"""
    return parse(text)


def split_title(body: str) -> tuple[str | None, str]:
    """拆分 ``# <title>\\n\\n<content>`` 形态的正文

    Returns:
        (title, content)；正文不以标题行开头时 title 为 None，content 为原正文
    """
    match = _TITLE_RE.match(body)
    if match is None:
        return None, body
    return match.group(1), body[match.end():]
