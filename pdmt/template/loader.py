"""
模板定义加载器：内存中的 YAML / JSON 文本 → TemplateDefinition

只负责「文本 → 结构」，不读文件、不走网络（读取模板文件由调用方完成）。

文本格式：
    id: todo_list
    version: "1.0.0"
    extends: base
    metadata:
      provider: deterministic
      parameters:
        temperature: 0.0
    input_schema: {...}
    output_schema: {...}
    validation: {...}
    body: |
      todos:
      {% for requirement in requirements %}
      ...

兼容字段名 prompt_template（等价于 body）。
"""

from __future__ import annotations

import structlog
import yaml
from pydantic import ValidationError

from pdmt.config import get_settings
from pdmt.errors import InvalidDefinition, LimitExceeded, ParseError
from pdmt.template.schemas import TemplateDefinition

log = structlog.get_logger()


def parse_template_definition(text: str) -> TemplateDefinition:
    """
    解析模板定义文本（YAML 是 JSON 的超集，两种格式走同一解析器）。

    Raises:
        LimitExceeded: 文本超过 MAX_TEMPLATE_SIZE
        ParseError: YAML 语法错误（带行列位置）或顶层不是映射
        InvalidDefinition: 字段缺失或类型不符
    """
    limit = get_settings().MAX_TEMPLATE_SIZE
    size = len(text.encode("utf-8"))
    if size > limit:
        raise LimitExceeded("模板定义大小（字节）", size, limit)

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        line = mark.line + 1 if mark is not None else None
        column = mark.column + 1 if mark is not None else None
        raise ParseError(str(getattr(e, "problem", None) or e), line=line, column=column, fmt="yaml") from e

    if not isinstance(raw, dict):
        raise ParseError(f"模板定义顶层必须是映射，实际得到 {type(raw).__name__}", fmt="yaml")

    try:
        definition = TemplateDefinition.model_validate(raw)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"]) or "<root>"
        raise InvalidDefinition(str(raw.get("id", "<unknown>")), f"{field}: {first['msg']}") from e

    log.debug("模板定义已解析", template_id=definition.id, version=definition.version)
    return definition
