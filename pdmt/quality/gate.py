"""
质量门禁钩子：渲染之后、解析之前的可选文本变换

契约：review(text, config) → QualityDecision
- accept                     原样放行（可附带 advisory 模式下的问题记录）
- modify(revised_text)       用修订后的文本继续解析
- reject(violations, ...)    引擎抛 ValidationFailed，不产出任何结果

外部质量代理（HTTP 等）只需实现 QualityGate 协议即可接入；
本地实现 DebtMarkerGate 只扫描技术债标记，三种模式：
- strict    有标记即 reject
- advisory  有标记仍 accept，问题记录在 violations 中
- auto_fix  删除标记后 modify
"""

from __future__ import annotations

import re
from typing import Literal, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field

from pdmt.validator.config import DEBT_MARKERS
from pdmt.validator.rules import find_debt_markers
from pdmt.validator.schemas import IssueCategory, ValidationIssue

log = structlog.get_logger()

EnforcementMode = Literal["strict", "advisory", "auto_fix"]


class EnforcementConfig(BaseModel):
    """门禁配置"""

    model_config = ConfigDict(frozen=True)

    mode: EnforcementMode = "strict"
    debt_markers: tuple[str, ...] = DEBT_MARKERS


class QualityDecision(BaseModel):
    """门禁决定"""

    model_config = ConfigDict(frozen=True)

    action: Literal["accept", "modify", "reject"]
    revised_text: str | None = None
    violations: list[ValidationIssue] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    @classmethod
    def accept(cls, violations: list[ValidationIssue] | None = None) -> "QualityDecision":
        return cls(action="accept", violations=violations or [])

    @classmethod
    def modify(cls, revised_text: str, violations: list[ValidationIssue] | None = None) -> "QualityDecision":
        return cls(action="modify", revised_text=revised_text, violations=violations or [])

    @classmethod
    def reject(cls, violations: list[ValidationIssue], suggestions: list[str] | None = None) -> "QualityDecision":
        return cls(action="reject", violations=violations, suggestions=suggestions or [])

    def apply(self, text: str) -> str:
        """accept / reject 返回原文，modify 返回修订文本"""
        return self.revised_text if self.action == "modify" and self.revised_text is not None else text


class QualityGate(Protocol):
    """质量门禁协议（本地实现或外部代理适配器）"""

    def review(self, text: str, config: EnforcementConfig) -> QualityDecision:
        ...


class DebtMarkerGate:
    """本地技术债标记门禁"""

    def review(self, text: str, config: EnforcementConfig) -> QualityDecision:
        violations: list[ValidationIssue] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            for marker in find_debt_markers(line, config.debt_markers):
                violations.append(
                    ValidationIssue(
                        category=IssueCategory.TECHNICAL_DEBT,
                        severity="error" if config.mode == "strict" else "warning",
                        message=f"第 {lineno} 行包含技术债标记: {marker}",
                        suggestion="把标记替换为具体的待办动作",
                    )
                )

        if not violations:
            return QualityDecision.accept()

        log.info("质量门禁发现技术债标记", mode=config.mode, count=len(violations))

        if config.mode == "strict":
            return QualityDecision.reject(violations, ["删除所有技术债标记后重新生成"])
        if config.mode == "advisory":
            return QualityDecision.accept(violations)
        return QualityDecision.modify(_strip_markers(text, config.debt_markers), violations)


def _strip_markers(text: str, markers: tuple[str, ...]) -> str:
    """删除标记及其后的冒号和空白，保留行结构"""
    lines = []
    for line in text.split("\n"):
        for marker in markers:
            line = re.sub(rf"(?<!\w){re.escape(marker)}(?!\w):?[ \t]*", "", line)
        lines.append(line)
    return "\n".join(lines)
