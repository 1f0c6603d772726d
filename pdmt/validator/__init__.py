"""Todo 列表校验器：结构 / 质量 / 依赖图检查"""

from pdmt.validator.config import QualityWeights, ValidationConfig
from pdmt.validator.schemas import IssueCategory, ValidationIssue, ValidationMetrics, ValidationResult
from pdmt.validator.todo_validator import TodoValidator

__all__ = [
    "IssueCategory",
    "QualityWeights",
    "TodoValidator",
    "ValidationConfig",
    "ValidationIssue",
    "ValidationMetrics",
    "ValidationResult",
]
