"""
Todo 校验器数据结构定义
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from pdmt.errors import ValidationFailed


class IssueCategory(str, Enum):
    """问题分类（封闭集合）"""

    STRUCTURE = "structure"                        # 空列表、禁止元素
    LIMIT_EXCEEDED = "limit_exceeded"              # 条目数超出上下限
    DUPLICATE_IDENTIFIER = "duplicate_identifier"
    DUPLICATE_CONTENT = "duplicate_content"
    MISSING_DEPENDENCY = "missing_dependency"
    DEPENDENCY_CYCLE = "dependency_cycle"          # 含自依赖
    ACTIONABILITY = "actionability"
    LENGTH = "length"
    COMPLEXITY = "complexity"
    TIME_ESTIMATE = "time_estimate"
    TECHNICAL_DEBT = "technical_debt"
    GENERIC_LANGUAGE = "generic_language"


Severity = Literal["error", "warning"]


class ValidationIssue(BaseModel):
    """单个校验问题"""
    category: IssueCategory
    severity: Severity
    message: str                                   # 问题描述
    todo_id: str | None = None                     # 关联的 Todo（列表级问题为 None）
    suggestion: str | None = None                  # 修复建议


class DependencyMetrics(BaseModel):
    """依赖图指标"""
    todos_with_dependencies: int = 0
    total_dependencies: int = 0
    max_depth: int = 0
    has_cycles: bool = False
    has_missing: bool = False
    critical_path: list[str] = Field(default_factory=list)   # 执行顺序
    critical_path_hours: float = 0.0


class ValidationMetrics(BaseModel):
    """列表级质量指标"""
    total_count: int = 0
    actionable_count: int = 0
    proper_length_count: int = 0
    estimated_count: int = 0
    reasonable_complexity_count: int = 0
    violation_free_count: int = 0
    avg_complexity: float = 0.0
    avg_task_length: float = 0.0
    total_estimated_hours: float = 0.0
    dependency_metrics: DependencyMetrics = Field(default_factory=DependencyMetrics)
    quality_score: float = 0.0                     # 0-1，保留 4 位小数


class ValidationResult(BaseModel):
    """校验器输出"""
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    metrics: ValidationMetrics = Field(default_factory=ValidationMetrics)
    suggestions: list[str] = Field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    def by_category(self, category: IssueCategory) -> list[ValidationIssue]:
        return [i for i in self.issues if i.category == category]

    def raise_if_invalid(self) -> None:
        """
        Raises:
            ValidationFailed: 存在 error 级问题
        """
        if not self.is_valid:
            raise ValidationFailed(self.issues)
