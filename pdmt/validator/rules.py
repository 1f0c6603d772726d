"""
单条 Todo 检查规则（确定性，纯函数）

每个检查只看一条 Todo 和配置，返回 ValidationIssue 列表；指标统计由 TodoValidator 汇总。

匹配策略：
- 动词白名单：取首个单词，大小写不敏感
- 技术债标记：大小写敏感 + 单词边界（TODO 命中，todos / Todo 不命中）
- 空泛用语：大小写不敏感 + 单词边界，每条 Todo 最多报一次
- 复杂度：子句数 + 依赖扇出 + 复杂度关键词命中数，上限 10
"""

from __future__ import annotations

import re

from pdmt.todo.schemas import TodoItem
from pdmt.validator.config import ValidationConfig
from pdmt.validator.schemas import IssueCategory, ValidationIssue

MAX_COMPLEXITY = 10

_FIRST_WORD_RE = re.compile(r"\s*([A-Za-z][A-Za-z-]*)")
# 子句分隔：逗号、分号、and / then
_CLAUSE_SEPARATOR_RE = re.compile(r",|;|\band\b|\bthen\b", re.IGNORECASE)


def first_word(content: str) -> str:
    match = _FIRST_WORD_RE.match(content)
    return match.group(1).lower() if match else ""


def is_actionable(content: str, verbs: tuple[str, ...]) -> bool:
    return first_word(content) in {v.lower() for v in verbs}


def complexity_score(todo: TodoItem, keywords: tuple[str, ...]) -> int:
    """子句数 + 依赖扇出 + 关键词命中数，封顶 MAX_COMPLEXITY"""
    lower = todo.content.lower()
    clauses = len(_CLAUSE_SEPARATOR_RE.findall(lower)) + 1
    fan_out = len(set(todo.dependencies))
    hits = sum(1 for kw in keywords if re.search(rf"\b{re.escape(kw.lower())}\b", lower))
    return min(MAX_COMPLEXITY, clauses + fan_out + hits)


def find_debt_markers(content: str, markers: tuple[str, ...]) -> list[str]:
    """按配置顺序返回命中的技术债标记"""
    return [m for m in markers if re.search(rf"(?<!\w){re.escape(m)}(?!\w)", content)]


def find_generic_term(content: str, terms: tuple[str, ...]) -> str | None:
    """返回首个命中的空泛用语（按配置顺序）"""
    lower = content.lower()
    for term in terms:
        if re.search(rf"(?<!\w){re.escape(term.lower())}(?!\w)", lower):
            return term
    return None


# ── 单项检查 ──


def check_actionability(todo: TodoItem, config: ValidationConfig) -> list[ValidationIssue]:
    if not config.require_specific_actions or is_actionable(todo.content, config.action_verbs):
        return []
    return [
        ValidationIssue(
            category=IssueCategory.ACTIONABILITY,
            severity="error",
            todo_id=todo.id,
            message=f"Todo 不是以动作动词开头: '{first_word(todo.content) or todo.content[:20]}'",
            suggestion="以具体动作开头，例如 Implement / Create / Add / Fix",
        )
    ]


def check_length(todo: TodoItem, config: ValidationConfig) -> list[ValidationIssue]:
    length = len(todo.content)
    if config.min_task_detail_chars is not None and length < config.min_task_detail_chars:
        return [
            ValidationIssue(
                category=IssueCategory.LENGTH,
                severity="warning",
                todo_id=todo.id,
                message=f"Todo 描述过短: {length} < {config.min_task_detail_chars} 个字符",
                suggestion="补充任务细节：做什么、改哪里、完成标准",
            )
        ]
    if config.max_task_detail_chars is not None and length > config.max_task_detail_chars:
        return [
            ValidationIssue(
                category=IssueCategory.LENGTH,
                severity="warning",
                todo_id=todo.id,
                message=f"Todo 描述过长: {length} > {config.max_task_detail_chars} 个字符",
                suggestion="拆分为多条更聚焦的 Todo",
            )
        ]
    return []


def check_complexity(todo: TodoItem, score: int, config: ValidationConfig) -> list[ValidationIssue]:
    limit = config.max_complexity_per_task
    if limit is None or score <= limit:
        return []
    return [
        ValidationIssue(
            category=IssueCategory.COMPLEXITY,
            severity="error",
            todo_id=todo.id,
            message=f"Todo 复杂度过高: {score} > {limit}",
            suggestion="拆分为多个子任务，每条只做一件事",
        )
    ]


def check_estimate(todo: TodoItem, config: ValidationConfig) -> list[ValidationIssue]:
    hours = todo.estimated_hours
    if hours is None:
        if not config.require_time_estimates:
            return []
        return [
            ValidationIssue(
                category=IssueCategory.TIME_ESTIMATE,
                severity="error",
                todo_id=todo.id,
                message="Todo 缺少工时预估",
                suggestion="补充 estimated_hours",
            )
        ]
    if config.min_estimated_hours is not None and hours < config.min_estimated_hours:
        return [
            ValidationIssue(
                category=IssueCategory.TIME_ESTIMATE,
                severity="warning",
                todo_id=todo.id,
                message=f"工时预估过低: {hours}h < {config.min_estimated_hours}h",
                suggestion="确认是否值得单独成为一条 Todo，或与相邻任务合并",
            )
        ]
    if config.max_estimated_hours is not None and hours > config.max_estimated_hours:
        return [
            ValidationIssue(
                category=IssueCategory.TIME_ESTIMATE,
                severity="error",
                todo_id=todo.id,
                message=f"工时预估过高: {hours}h > {config.max_estimated_hours}h",
                suggestion="拆分为多条工时更小的 Todo",
            )
        ]
    return []


def check_debt_markers(todo: TodoItem, config: ValidationConfig) -> list[ValidationIssue]:
    return [
        ValidationIssue(
            category=IssueCategory.TECHNICAL_DEBT,
            severity="error",
            todo_id=todo.id,
            message=f"Todo 中包含技术债标记: {marker}",
            suggestion="把标记替换为具体的待办动作",
        )
        for marker in find_debt_markers(todo.content, config.debt_markers)
    ]


def check_generic_language(todo: TodoItem, config: ValidationConfig) -> list[ValidationIssue]:
    if not config.require_specific_actions:
        return []
    term = find_generic_term(todo.content, config.generic_terms)
    if term is None:
        return []
    return [
        ValidationIssue(
            category=IssueCategory.GENERIC_LANGUAGE,
            severity="warning",
            todo_id=todo.id,
            message=f"Todo 中包含空泛用语: '{term}'",
            suggestion="写明具体对象和动作",
        )
    ]
