"""
输出解析器：渲染文本 → 结构化值 → output_schema 校验 → TodoList

两级失败：
- 结构畸形（YAML / JSON 语法、清单行格式）→ ParseError（带行列位置）
- 结构合法但与 output_schema 不符，或 Todo 字段类型不符 → SchemaMismatch（带字段路径）

TodoItem 严格校验：必填字段从不补齐、类型从不转换；未声明字段原样保留。

lenient=True 仅用于外部产出的文本：去除代码块包裹，json 格式额外走 json-repair 修复。
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError

from pdmt.errors import SchemaMismatch
from pdmt.output.formats import get_formatter
from pdmt.output.json_repairer import JsonRepairer, strip_fences
from pdmt.template.schema_check import first_violation, format_path, json_type_name
from pdmt.template.schemas import OutputSchema
from pdmt.todo.schemas import TodoItem, TodoList

log = structlog.get_logger()


class OutputParser:
    """无状态解析器，所有请求共享"""

    def __init__(self) -> None:
        self.repairer = JsonRepairer()

    def parse(self, text: str, output_schema: OutputSchema, *, lenient: bool = False) -> Any:
        """
        按 output_schema.format 反序列化，再用 output_schema.schema 校验。

        document 形态的 markdown / text 输出不做结构化，原样返回文本。

        Raises:
            ParseError: 文本结构畸形
            SchemaMismatch: 结构与 output_schema.schema 不符
        """
        fmt = output_schema.format
        if lenient:
            text = strip_fences(text)

        if output_schema.shape == "document" and fmt in ("markdown", "text"):
            value: Any = text
        elif lenient and fmt == "json":
            value = self.repairer.repair(text)
        else:
            value = get_formatter(fmt).deserialize(text)

        if output_schema.schema_ is not None:
            violation = first_violation(output_schema.schema_, value)
            if violation is not None:
                log.info(
                    "输出不满足 output_schema",
                    format=fmt,
                    field_path=violation.field_path,
                    expected=violation.expected,
                    actual=violation.actual,
                )
                raise SchemaMismatch(violation.field_path, violation.expected, violation.actual)
        return value

    def parse_item_list(self, text: str, output_schema: OutputSchema, *, lenient: bool = False) -> TodoList:
        """解析并转为 TodoList"""
        return self.to_item_list(self.parse(text, output_schema, lenient=lenient))

    def to_item_list(self, value: Any) -> TodoList:
        """
        结构化值 → TodoList。接受 {"todos": [...]} 或裸数组。

        Raises:
            SchemaMismatch: 缺少 todos 数组、条目不是对象、字段缺失或类型不符
        """
        if isinstance(value, list):
            raw_items, prefix = value, ""
        elif isinstance(value, dict):
            if "todos" not in value:
                raise SchemaMismatch("todos", "array", "missing")
            raw_items, prefix = value["todos"], "todos"
        else:
            raise SchemaMismatch("<root>", "object | array", json_type_name(value))

        # YAML 中 `todos:` 后为空时解析为 None
        if raw_items is None:
            raw_items = []
        if not isinstance(raw_items, list):
            raise SchemaMismatch(prefix or "<root>", "array", json_type_name(raw_items))

        items: list[TodoItem] = []
        for index, raw in enumerate(raw_items):
            base = [prefix, index] if prefix else [index]
            if not isinstance(raw, dict):
                raise SchemaMismatch(format_path(base), "object", json_type_name(raw))
            try:
                items.append(TodoItem.model_validate(raw))
            except ValidationError as e:
                raise _mismatch_from(e, base) from e

        return TodoList(todos=items)


def _mismatch_from(error: ValidationError, base: list[Any]) -> SchemaMismatch:
    """pydantic 首个错误 → SchemaMismatch（字段路径 / 期望 / 实际）"""
    first = error.errors()[0]
    loc = list(first["loc"])
    # Optional 字段的 loc 会带上联合类型分支名（如 estimated_hours.float），只保留字段名和下标
    if loc:
        loc = loc[:1] + [part for part in loc[1:] if isinstance(part, int)]

    if first["type"] == "missing":
        actual = "missing"
    else:
        actual = f"{json_type_name(first['input'])} {_short(first['input'])}"
    expected = first["msg"]
    return SchemaMismatch(format_path(base + loc), expected, actual)


def _short(value: Any, limit: int = 60) -> str:
    text = repr(value)
    return text if len(text) <= limit else text[: limit - 3] + "..."
