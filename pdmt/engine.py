"""
引擎门面：注册 → 解析继承 → 渲染 → 质量门禁 → 解析输出 → 校验

对外操作：
- register_template(definition)      TemplateDefinition / YAML·JSON 文本 / dict
- resolve_template(id, version)
- generate(template_id, input)       → GeneratedContent
- validate_item_list(todo_list)      → ValidationResult
- load_builtin_templates() / list_templates()

每次 generate 是同步、线性的一次调用：任何结构性失败（Schema / 渲染 / 解析）立即抛出，
不返回部分结果；校验问题只累积在 GeneratedContent.validation 中，不抛异常。

确定性：rendered content / parsed / todo_list / validation 只由模板与输入决定；
GeneratedContent 的 id 与 generated_at 是每次调用的标识，不参与内容。
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError

from pdmt.config import get_settings
from pdmt.errors import InvalidDefinition, LimitExceeded, SchemaMismatch, ValidationFailed
from pdmt.output.formats import get_formatter
from pdmt.output.parser import OutputParser
from pdmt.quality.gate import EnforcementConfig, QualityDecision, QualityGate
from pdmt.template.builtin import builtin_templates
from pdmt.template.loader import parse_template_definition
from pdmt.template.renderer import TemplateRenderer
from pdmt.template.schemas import OutputFormat, ResolvedTemplate, TemplateDefinition
from pdmt.template.store import TemplateStore
from pdmt.todo.schemas import TodoList
from pdmt.validator.config import ValidationConfig
from pdmt.validator.schemas import ValidationResult
from pdmt.validator.todo_validator import TodoValidator

log = structlog.get_logger()


class GeneratedContent(BaseModel):
    """一次 generate 的完整产物（调用方持有）"""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    template_id: str
    template_version: str
    content: str                                   # 渲染文本（经质量门禁修订后）
    parsed: Any = None                             # 按 output_schema 解析出的结构
    todo_list: TodoList | None = None              # item_list 形态时有值
    validation: ValidationResult | None = None
    quality_decision: QualityDecision | None = None
    is_deterministic: bool = True
    input_data: dict[str, Any] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_valid(self) -> bool:
        return self.validation is None or self.validation.is_valid

    def as_format(self, fmt: OutputFormat) -> str:
        """以指定格式重新输出：优先 todo_list，其次 parsed，都没有时返回原文"""
        formatter = get_formatter(fmt)
        if self.todo_list is not None:
            return formatter.serialize(self.todo_list.to_data())
        if self.parsed is not None and not isinstance(self.parsed, str):
            return formatter.serialize(self.parsed)
        return self.content


class TemplateEngine:
    """
    模板引擎门面。

    store 内的已解析模板缓存是唯一共享可变状态（见 TemplateStore）；
    renderer / parser / validator 均无状态，可被并发调用共享。
    """

    def __init__(
        self,
        store: TemplateStore | None = None,
        validation_config: ValidationConfig | None = None,
        quality_gate: QualityGate | None = None,
        enforcement: EnforcementConfig | None = None,
    ) -> None:
        self.store = store or TemplateStore()
        self.validation_config = validation_config
        self.quality_gate = quality_gate
        self.enforcement = enforcement or EnforcementConfig()
        self.renderer = TemplateRenderer()
        self.parser = OutputParser()

    # ── 模板管理 ──

    def register_template(
        self,
        definition: TemplateDefinition | str | dict,
        replace: bool = False,
    ) -> TemplateDefinition:
        """注册模板，接受 TemplateDefinition / YAML·JSON 文本 / dict"""
        if isinstance(definition, str):
            definition = parse_template_definition(definition)
        elif isinstance(definition, dict):
            try:
                definition = TemplateDefinition.model_validate(definition)
            except ValidationError as e:
                first = e.errors()[0]
                field = ".".join(str(p) for p in first["loc"]) or "<root>"
                raise InvalidDefinition(str(definition.get("id", "<unknown>")), f"{field}: {first['msg']}") from e

        self.store.register(definition, replace=replace)
        return definition

    def resolve_template(self, template_id: str, version: str | None = None) -> ResolvedTemplate:
        return self.store.resolve(template_id, version)

    def load_builtin_templates(self, replace: bool = True) -> int:
        """注册内置模板（父模板在前），返回注册数量"""
        templates = builtin_templates()
        for definition in templates:
            self.store.register(definition, replace=replace)
        log.info("内置模板已加载", count=len(templates))
        return len(templates)

    def list_templates(self) -> list[dict[str, Any]]:
        """所有模板的最新版本摘要（按 id 排序）"""
        summaries = []
        for template_id, version in self.store.list_templates():
            definition = self.store.get(template_id, version)
            summaries.append(
                {
                    "id": template_id,
                    "version": version,
                    "extends": definition.extends,
                    "description": definition.metadata.description,
                    "format": definition.output_schema.format,
                    "tags": list(definition.metadata.tags),
                }
            )
        return summaries

    # ── 生成 ──

    def generate(
        self,
        template_id: str,
        input_data: dict[str, Any],
        version: str | None = None,
        validation_config: ValidationConfig | None = None,
    ) -> GeneratedContent:
        """
        完整流水线：resolve → render → 门禁 → parse → validate。

        Raises:
            TemplateNotFound / InheritanceCycle: 模板解析失败
            SchemaViolation: 输入不满足 input_schema
            RenderError: 模板引用了未定义的符号
            LimitExceeded: 渲染文本长度越界
            ValidationFailed: 质量门禁拒绝
            ParseError / SchemaMismatch: 渲染文本无法解析为声明的结构
        """
        resolved = self.resolve_template(template_id, version)

        with structlog.contextvars.bound_contextvars(template_id=resolved.id, version=resolved.version):
            text = self.renderer.render(resolved, input_data)
            _check_length(text, resolved)

            decision: QualityDecision | None = None
            if self.quality_gate is not None:
                decision = self.quality_gate.review(text, self.enforcement)
                if decision.action == "reject":
                    log.warning("质量门禁拒绝渲染结果", violations=len(decision.violations))
                    raise ValidationFailed(decision.violations, reason="质量门禁拒绝")
                text = decision.apply(text)

            output_schema = resolved.output_schema
            parsed = self.parser.parse(text, output_schema)
            _check_required_fields(parsed, resolved)

            todo_list: TodoList | None = None
            validation: ValidationResult | None = None
            if output_schema.shape == "item_list":
                todo_list = self.parser.to_item_list(parsed)
                config = validation_config or self.validation_config or ValidationConfig.from_rules(resolved.validation)
                validation = TodoValidator(config).validate(todo_list)

            generated = GeneratedContent(
                template_id=resolved.id,
                template_version=resolved.version,
                content=text,
                parsed=parsed,
                todo_list=todo_list,
                validation=validation,
                quality_decision=decision,
                is_deterministic=resolved.is_deterministic(),
                input_data=dict(input_data),
            )

            log.info(
                "内容生成完成",
                generation_id=generated.id,
                chars=len(text),
                items=len(todo_list) if todo_list is not None else None,
                is_valid=generated.is_valid,
            )
        return generated

    # ── 校验 ──

    def validate_item_list(
        self,
        todo_list: TodoList | dict | list,
        config: ValidationConfig | None = None,
    ) -> ValidationResult:
        """
        校验 Todo 列表。dict（{"todos": [...]}）/ list 先按严格规则转换。

        Raises:
            SchemaMismatch: 输入无法转换为 TodoList
        """
        if not isinstance(todo_list, TodoList):
            todo_list = self.parser.to_item_list(todo_list)
        return TodoValidator(config or self.validation_config).validate(todo_list)


def _check_length(text: str, resolved: ResolvedTemplate) -> None:
    rules = resolved.validation
    length = len(text)
    if rules.max_length is not None and length > rules.max_length:
        raise LimitExceeded("渲染文本长度", length, rules.max_length)
    if rules.min_length is not None and length < rules.min_length:
        raise LimitExceeded("渲染文本长度", length, rules.min_length, lower=True)


def _check_required_fields(parsed: Any, resolved: ResolvedTemplate) -> None:
    """validation.required_fields 必须出现在解析结果顶层"""
    if not isinstance(parsed, dict):
        return
    for name in resolved.validation.required_fields:
        if name not in parsed:
            raise SchemaMismatch(name, "必填字段", "missing")


def default_output_format() -> str:
    return get_settings().DEFAULT_OUTPUT_FORMAT
