"""
校验配置：不可变、显式默认值

ValidationConfig 决定 TodoValidator 的全部行为，校验过程中不读取任何全局状态。
模板里的 validation.quality_gates / structure_rules 通过 from_rules() 转成配置；
未配置的门禁取下方默认值。

quality_score 权重（QualityWeights，和必须为 1）：
  actionability 0.30  以白名单动词开头的条目占比
  length        0.15  长度在上下限内的条目占比
  complexity    0.15  复杂度不超阈值的条目占比
  estimates     0.20  填写了工时预估的条目占比，上下限由 TIME_ESTIMATE 问题单独体现（不要求工时时为 1）
  violation_free 0.10 没有任何 error 级问题的条目占比
  dependencies  0.10  依赖图健康（无悬空引用、无环）为 1，否则 0
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pdmt.template.schemas import QualityGateRules, StructureRules, ValidationRules

ACTION_VERBS: tuple[str, ...] = (
    "add", "analyze", "build", "configure", "create", "debug", "define", "deploy",
    "design", "develop", "document", "enable", "extract", "fix", "implement",
    "install", "integrate", "migrate", "optimize", "refactor", "remove", "rename",
    "research", "review", "setup", "test", "update", "upgrade", "validate",
    "verify", "write",
)

DEBT_MARKERS: tuple[str, ...] = ("TODO", "FIXME", "HACK", "XXX")

GENERIC_TERMS: tuple[str, ...] = (
    "thing", "things", "stuff", "something", "somehow", "various", "misc", "etc",
    "fix issues", "handle", "deal with", "work on",
)

COMPLEXITY_KEYWORDS: tuple[str, ...] = (
    "integrate", "refactor", "optimize", "migrate", "analyze", "algorithm",
    "performance", "security", "architecture", "database", "api", "system",
)


class QualityWeights(BaseModel):
    """quality_score 各项权重"""

    model_config = ConfigDict(frozen=True)

    actionability: float = 0.3
    length: float = 0.15
    complexity: float = 0.15
    estimates: float = 0.2
    violation_free: float = 0.1
    dependencies: float = 0.1

    @model_validator(mode="after")
    def _check_sum(self) -> "QualityWeights":
        values = list(self.model_dump().values())
        if any(v < 0 for v in values):
            raise ValueError("权重不能为负数")
        if not math.isclose(sum(values), 1.0, abs_tol=1e-9):
            raise ValueError(f"权重之和必须为 1，当前为 {sum(values)}")
        return self


class ValidationConfig(BaseModel):
    """TodoValidator 配置（构造后不可变）"""

    model_config = ConfigDict(frozen=True)

    # 结构
    max_items: int | None = 50
    min_items: int | None = 1
    prevent_circular_dependencies: bool = True
    forbidden_elements: tuple[str, ...] = ()

    # 单条
    require_specific_actions: bool = True
    action_verbs: tuple[str, ...] = ACTION_VERBS
    min_task_detail_chars: int | None = 10
    max_task_detail_chars: int | None = 100
    max_complexity_per_task: int | None = 8
    complexity_keywords: tuple[str, ...] = COMPLEXITY_KEYWORDS
    require_time_estimates: bool = True
    min_estimated_hours: float | None = 0.5
    max_estimated_hours: float | None = 40.0
    debt_markers: tuple[str, ...] = DEBT_MARKERS
    generic_terms: tuple[str, ...] = GENERIC_TERMS

    weights: QualityWeights = Field(default_factory=QualityWeights)

    @classmethod
    def from_rules(cls, rules: ValidationRules | None) -> "ValidationConfig":
        """由模板 validation 规则派生配置（未声明的部分取默认值）"""
        if rules is None:
            return cls()
        gates = rules.quality_gates or QualityGateRules()
        structure = rules.structure_rules or StructureRules()
        overrides: dict = {
            "max_items": structure.max_items,
            "min_items": structure.min_items,
            "prevent_circular_dependencies": structure.prevent_circular_dependencies,
            "forbidden_elements": tuple(structure.forbidden_elements),
            "require_specific_actions": gates.require_specific_actions,
            "min_task_detail_chars": gates.min_task_detail_chars,
            "max_task_detail_chars": gates.max_task_detail_chars,
            "max_complexity_per_task": gates.max_complexity_per_task,
            "require_time_estimates": gates.require_time_estimates,
            "min_estimated_hours": gates.min_estimated_hours,
            "max_estimated_hours": gates.max_estimated_hours,
        }
        # custom_rules 中与配置同名的键直接覆盖（如 debt_markers / action_verbs）
        for key, value in gates.custom_rules.items():
            if key in cls.model_fields and key not in ("weights",):
                overrides[key] = tuple(value) if isinstance(value, list) else value
        return cls(**overrides)
