"""
模板定义 Schema

TemplateDefinition 是模板注册时的数据契约；ResolvedTemplate 是沿 extends 链合并后的不可变结果。

继承合并策略（固定，确定性优先）：
- 从根到叶逐层合并，子模板「显式出现」的顶层字段整体替换父模板的值
- 不做嵌套合并：dict / list 字段同样整体替换（validation.quality_gates 也不会逐项合并）
- 「显式出现」以 pydantic 的 model_fields_set 判定，未写出的字段继承父模板
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

OutputFormat = Literal["yaml", "json", "markdown", "text"]

# 合并时参与「整体替换」的字段
MERGEABLE_FIELDS: tuple[str, ...] = (
    "metadata",
    "input_schema",
    "output_schema",
    "validation",
    "body",
)

_TEMPLATE_ID_RE = re.compile(r"^[A-Za-z0-9_]+$")


class TemplateMetadata(BaseModel):
    """模板元数据"""

    provider: str = "deterministic"  # deterministic | anthropic | ...
    description: str = ""
    parameters: dict[str, Any] = Field(default_factory=lambda: {"temperature": 0.0})
    author: str | None = None
    tags: list[str] = Field(default_factory=list)


class OutputSchema(BaseModel):
    """输出结构声明"""

    format: OutputFormat = "yaml"
    shape: Literal["item_list", "document"] = "item_list"
    structure: str = ""  # 给人看的结构说明
    schema_: dict[str, Any] | None = Field(default=None, alias="schema")
    example: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class QualityGateRules(BaseModel):
    """单条 Todo 的质量门禁"""

    max_complexity_per_task: int | None = 8
    require_time_estimates: bool = True
    require_specific_actions: bool = True
    min_task_detail_chars: int | None = 10
    max_task_detail_chars: int | None = 100
    min_estimated_hours: float | None = 0.5
    max_estimated_hours: float | None = 40.0
    custom_rules: dict[str, Any] = Field(default_factory=dict)


class StructureRules(BaseModel):
    """列表整体结构规则"""

    max_items: int | None = 50
    min_items: int | None = 1
    require_dependency_graph: bool = True
    prevent_circular_dependencies: bool = True
    required_elements: list[str] = Field(default_factory=list)
    forbidden_elements: list[str] = Field(default_factory=list)


class ValidationRules(BaseModel):
    """模板处理的校验规则"""

    deterministic_only: bool = True
    required_fields: list[str] = Field(default_factory=list)
    optional_fields: list[str] = Field(default_factory=list)
    quality_gates: QualityGateRules | None = None
    structure_rules: StructureRules | None = None
    min_length: int | None = 10  # 渲染文本长度下限
    max_length: int | None = 10_000


class TemplateDefinition(BaseModel):
    """模板定义（注册单元）"""

    id: str
    version: str
    extends: str | None = None
    metadata: TemplateMetadata = Field(default_factory=TemplateMetadata)
    input_schema: dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})
    output_schema: OutputSchema = Field(default_factory=OutputSchema)
    validation: ValidationRules = Field(default_factory=ValidationRules)
    body: str = Field(default="", alias="prompt_template")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def key(self) -> tuple[str, str]:
        return (self.id, self.version)

    def is_deterministic(self) -> bool:
        return _is_deterministic(self.metadata)

    def get_parameter(self, key: str, default: Any = None) -> Any:
        return self.metadata.parameters.get(key, default)

    def explicit_fields(self) -> set[str]:
        """显式写出的可合并字段（决定继承时是否覆盖父模板）"""
        return {name for name in MERGEABLE_FIELDS if name in self.model_fields_set}


class ResolvedTemplate(BaseModel):
    """沿继承链合并后的模板，不可变"""

    model_config = ConfigDict(frozen=True)

    id: str
    version: str
    lineage: tuple[str, ...]  # 根 → 叶
    metadata: TemplateMetadata
    input_schema: dict[str, Any]
    output_schema: OutputSchema
    validation: ValidationRules
    body: str

    def is_deterministic(self) -> bool:
        return _is_deterministic(self.metadata)

    def all_tags(self) -> list[str]:
        """元数据标签 + 自动标签（deterministic / strict），排序去重"""
        tags = set(self.metadata.tags)
        if self.is_deterministic():
            tags.add("deterministic")
        if self.validation.deterministic_only:
            tags.add("strict")
        return sorted(tags)


def _is_deterministic(metadata: TemplateMetadata) -> bool:
    """provider 为 deterministic，或 temperature 显式为 0"""
    if metadata.provider == "deterministic":
        return True
    temperature = metadata.parameters.get("temperature")
    return isinstance(temperature, (int, float)) and not isinstance(temperature, bool) and temperature == 0


def check_template_id(template_id: str, max_length: int) -> str | None:
    """校验模板 id 语法，返回错误原因（合法返回 None）"""
    if not template_id:
        return "模板 id 不能为空"
    if len(template_id) > max_length:
        return f"模板 id 过长（最多 {max_length} 个字符）"
    if not _TEMPLATE_ID_RE.match(template_id):
        return "模板 id 只能包含字母、数字和下划线"
    return None
