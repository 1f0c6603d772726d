"""
pdmt：确定性模板引擎

模板注册 + 继承解析 → 确定性渲染 → 输出解析 → Todo 列表结构 / 质量 / 依赖图校验。
同一模板、同一输入，输出逐字节一致。
"""

from pdmt.engine import GeneratedContent, TemplateEngine
from pdmt.errors import (
    DependencyCycle,
    DuplicateIdentifier,
    InheritanceCycle,
    InvalidDefinition,
    LimitExceeded,
    MissingDependency,
    ParseError,
    PdmtError,
    RenderError,
    SchemaMismatch,
    SchemaViolation,
    TemplateNotFound,
    ValidationFailed,
)
from pdmt.todo import TodoItem, TodoList
from pdmt.validator import TodoValidator, ValidationConfig, ValidationResult

__version__ = "0.1.0"

__all__ = [
    "DependencyCycle",
    "DuplicateIdentifier",
    "GeneratedContent",
    "InheritanceCycle",
    "InvalidDefinition",
    "LimitExceeded",
    "MissingDependency",
    "ParseError",
    "PdmtError",
    "RenderError",
    "SchemaMismatch",
    "SchemaViolation",
    "TemplateEngine",
    "TemplateNotFound",
    "TodoItem",
    "TodoList",
    "TodoValidator",
    "ValidationConfig",
    "ValidationFailed",
    "ValidationResult",
]
