"""
JSON Schema 校验工具：渲染层（input_schema）与解析层（output_schema）共用

jsonschema 会返回全部错误，这里按字段路径排序后取第一个，保证同样的输入永远报同一个错误：
- field_path：requirements[1]、todos[0].status 这种人类可读路径，根节点为 <root>
- expected / actual：期望类型 / 枚举 / 约束 与 实际值类型 / 值

DefaultFiller：按 schema 顶层 properties.*.default 填充缺失字段（只填顶层，不做嵌套推断）。
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError as JsonSchemaError

_JSON_TYPE_NAMES: dict[type, str] = {
    bool: "boolean",
    int: "integer",
    float: "number",
    str: "string",
    list: "array",
    tuple: "array",
    dict: "object",
    type(None): "null",
}


@dataclass
class Violation:
    """单个 Schema 违规（已按确定性顺序选出）"""

    field_path: str
    expected: str
    actual: str
    messages: list[str] = field(default_factory=list)


def json_type_name(value: Any) -> str:
    """Python 值 → JSON 类型名"""
    return _JSON_TYPE_NAMES.get(type(value), type(value).__name__)


def format_path(parts: list[Any]) -> str:
    """["todos", 0, "status"] → todos[0].status"""
    text = ""
    for part in parts:
        if isinstance(part, int):
            text += f"[{part}]"
        else:
            text += f".{part}" if text else str(part)
    return text or "<root>"


def first_violation(schema: dict[str, Any], instance: Any) -> Violation | None:
    """返回按路径排序后的第一个违规，无违规返回 None"""
    errors = sorted(
        Draft7Validator(schema).iter_errors(instance),
        key=lambda e: ([str(p) for p in e.absolute_path], e.validator, e.message),
    )
    if not errors:
        return None

    first = errors[0]
    path, expected, actual = _describe(first)
    messages = [f"{format_path(list(e.absolute_path))}: {e.message}" for e in errors]
    return Violation(field_path=path, expected=expected, actual=actual, messages=messages)


def _describe(error: JsonSchemaError) -> tuple[str, str, str]:
    parts = list(error.absolute_path)
    validator = error.validator
    value = error.validator_value

    if validator == "required":
        instance = error.instance if isinstance(error.instance, dict) else {}
        missing = next((name for name in value if name not in instance), str(value))
        declared = error.schema.get("properties", {}).get(missing, {})
        expected = _type_label(declared.get("type")) if declared.get("type") else "必填字段"
        return format_path(parts + [missing]), expected, "missing"

    if validator == "type":
        return format_path(parts), _type_label(value), json_type_name(error.instance)

    if validator == "enum":
        return (
            format_path(parts),
            f"one of {json.dumps(value, ensure_ascii=False)}",
            _preview(error.instance),
        )

    if validator == "additionalProperties":
        return format_path(parts), "no additional properties", error.message

    return format_path(parts), f"{validator}={_preview(value)}", _preview(error.instance)


def _type_label(value: Any) -> str:
    if isinstance(value, list):
        return " | ".join(str(v) for v in value)
    return str(value)


def _preview(value: Any, limit: int = 80) -> str:
    text = json.dumps(value, ensure_ascii=False, default=str)
    return text if len(text) <= limit else text[: limit - 3] + "..."


class DefaultFiller:
    """缺失字段默认值填充（来自 schema 顶层 properties.*.default）"""

    def fill(self, schema: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
        """返回填充后的新字典，不修改调用方传入的 data"""
        filled = dict(data)
        for name, prop in schema.get("properties", {}).items():
            if name not in filled and isinstance(prop, dict) and "default" in prop:
                filled[name] = copy.deepcopy(prop["default"])
        return filled
