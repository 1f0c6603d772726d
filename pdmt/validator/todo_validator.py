"""
Todo 列表校验编排器

执行顺序（全部执行，不短路，问题按此顺序累积）：
  结构：空列表 → 条目数上下限 → 重复 id → 重复内容（warning）
        → 悬空依赖（先于环检测报告）→ 自依赖 → 依赖环 → 禁止元素
  单条：动作动词 → 长度 → 复杂度 → 工时 → 技术债标记 → 空泛用语
  汇总：指标、quality_score、改进建议

is_valid 当且仅当没有 error 级问题；warning 只报告不阻断。
校验是纯函数：同一列表 + 同一配置，结果完全一致，且不修改输入。
"""

from __future__ import annotations

import structlog

from pdmt.graph.dependency_graph import DependencyGraph
from pdmt.todo.schemas import TodoList
from pdmt.validator import rules
from pdmt.validator.config import ValidationConfig
from pdmt.validator.schemas import (
    DependencyMetrics,
    IssueCategory,
    ValidationIssue,
    ValidationMetrics,
    ValidationResult,
)

log = structlog.get_logger()

# 低于该分数时给出整体改进建议
_LOW_QUALITY_THRESHOLD = 0.8


class TodoValidator:
    """
    Todo 列表校验器：配置在构造时固定，无状态，可并发共享。
    """

    def __init__(self, config: ValidationConfig | None = None) -> None:
        self.config = config or ValidationConfig()

    def validate(self, todo_list: TodoList) -> ValidationResult:
        config = self.config
        todos = todo_list.todos
        total = len(todos)
        graph = DependencyGraph(todo_list)

        issues = self._check_structure(todo_list, graph)
        missing = graph.dangling_references()
        cycle = graph.detect_cycles()

        # ── 单条检查 ──
        actionable = proper_length = estimated = reasonable = 0
        complexity_total = length_total = 0
        for todo in todos:
            score = rules.complexity_score(todo, config.complexity_keywords)
            complexity_total += score
            length_total += len(todo.content)

            actionability_issues = rules.check_actionability(todo, config)
            length_issues = rules.check_length(todo, config)
            complexity_issues = rules.check_complexity(todo, score, config)

            issues.extend(actionability_issues)
            issues.extend(length_issues)
            issues.extend(complexity_issues)
            issues.extend(rules.check_estimate(todo, config))
            issues.extend(rules.check_debt_markers(todo, config))
            issues.extend(rules.check_generic_language(todo, config))

            actionable += rules.is_actionable(todo.content, config.action_verbs)
            proper_length += not length_issues
            reasonable += not complexity_issues
            estimated += todo.estimated_hours is not None

        # ── 指标 ──
        error_ids = {i.todo_id for i in issues if i.severity == "error" and i.todo_id is not None}
        dependency_metrics = DependencyMetrics(
            todos_with_dependencies=sum(1 for t in todos if t.dependencies),
            total_dependencies=sum(len(t.dependencies) for t in todos),
            max_depth=graph.max_depth(),
            has_cycles=cycle is not None,
            has_missing=bool(missing),
        )
        if not missing and cycle is None and total:
            path = graph.critical_path()
            dependency_metrics.critical_path = list(path.nodes)
            dependency_metrics.critical_path_hours = path.total_hours

        metrics = ValidationMetrics(
            total_count=total,
            actionable_count=actionable,
            proper_length_count=proper_length,
            estimated_count=estimated,
            reasonable_complexity_count=reasonable,
            violation_free_count=sum(1 for t in todos if t.id not in error_ids),
            avg_complexity=complexity_total / total if total else 0.0,
            avg_task_length=length_total / total if total else 0.0,
            total_estimated_hours=sum(t.estimated_hours or 0.0 for t in todos),
            dependency_metrics=dependency_metrics,
        )
        metrics.quality_score = self._quality_score(metrics)

        is_valid = not any(i.severity == "error" for i in issues)
        result = ValidationResult(
            is_valid=is_valid,
            issues=issues,
            metrics=metrics,
            suggestions=self._suggestions(metrics),
        )

        log.info(
            "Todo 列表校验完成",
            total=total,
            is_valid=is_valid,
            errors=len(result.errors),
            warnings=len(result.warnings),
            quality_score=metrics.quality_score,
        )
        return result

    # ── 结构检查 ──

    def _check_structure(self, todo_list: TodoList, graph: DependencyGraph) -> list[ValidationIssue]:
        config = self.config
        todos = todo_list.todos
        total = len(todos)
        issues: list[ValidationIssue] = []

        if total == 0:
            issues.append(
                ValidationIssue(category=IssueCategory.STRUCTURE, severity="error", message="Todo 列表为空")
            )
        if config.max_items is not None and total > config.max_items:
            issues.append(
                ValidationIssue(
                    category=IssueCategory.LIMIT_EXCEEDED,
                    severity="error",
                    message=f"Todo 数量超出上限: {total} > {config.max_items}",
                    suggestion="合并相近任务或拆成多个列表",
                )
            )
        if config.min_items is not None and 0 < total < config.min_items:
            issues.append(
                ValidationIssue(
                    category=IssueCategory.LIMIT_EXCEEDED,
                    severity="error",
                    message=f"Todo 数量不足: {total} < {config.min_items}",
                )
            )

        seen_ids: set[str] = set()
        seen_content: dict[str, str] = {}
        for todo in todos:
            if todo.id in seen_ids:
                issues.append(
                    ValidationIssue(
                        category=IssueCategory.DUPLICATE_IDENTIFIER,
                        severity="error",
                        todo_id=todo.id,
                        message=f"Todo id 重复: {todo.id}",
                        suggestion="为每条 Todo 分配唯一 id",
                    )
                )
            seen_ids.add(todo.id)

            normalized = " ".join(todo.content.lower().split())
            if normalized in seen_content:
                issues.append(
                    ValidationIssue(
                        category=IssueCategory.DUPLICATE_CONTENT,
                        severity="warning",
                        todo_id=todo.id,
                        message=f"Todo 内容与 {seen_content[normalized]} 重复",
                    )
                )
            else:
                seen_content[normalized] = todo.id

        for todo_id, dep in graph.dangling_references():
            issues.append(
                ValidationIssue(
                    category=IssueCategory.MISSING_DEPENDENCY,
                    severity="error",
                    todo_id=todo_id,
                    message=f"依赖 '{dep}' 不存在",
                    suggestion="删除该依赖或补充对应的 Todo",
                )
            )

        if config.prevent_circular_dependencies:
            self_loops = [t.id for t in todos if t.id in t.dependencies]
            for todo_id in self_loops:
                issues.append(
                    ValidationIssue(
                        category=IssueCategory.DEPENDENCY_CYCLE,
                        severity="error",
                        todo_id=todo_id,
                        message="Todo 依赖自身",
                    )
                )
            cycle = graph.detect_cycles()
            # 自依赖已单独报告
            if cycle is not None and not (len(cycle) == 2 and cycle[0] in self_loops):
                issues.append(
                    ValidationIssue(
                        category=IssueCategory.DEPENDENCY_CYCLE,
                        severity="error",
                        todo_id=cycle[0],
                        message=f"依赖存在环: {' -> '.join(cycle)}",
                        suggestion="移除环上的任意一条依赖以恢复执行顺序",
                    )
                )

        for todo in todos:
            for element in config.forbidden_elements:
                if element in todo.content:
                    issues.append(
                        ValidationIssue(
                            category=IssueCategory.STRUCTURE,
                            severity="error",
                            todo_id=todo.id,
                            message=f"Todo 中包含禁止出现的内容: {element}",
                        )
                    )
        return issues

    # ── 汇总 ──

    def _quality_score(self, metrics: ValidationMetrics) -> float:
        total = metrics.total_count
        if total == 0:
            return 0.0
        weights = self.config.weights
        deps = metrics.dependency_metrics
        estimates_ratio = metrics.estimated_count / total if self.config.require_time_estimates else 1.0
        dependencies_ratio = 0.0 if deps.has_cycles or deps.has_missing else 1.0
        score = (
            weights.actionability * metrics.actionable_count / total
            + weights.length * metrics.proper_length_count / total
            + weights.complexity * metrics.reasonable_complexity_count / total
            + weights.estimates * estimates_ratio
            + weights.violation_free * metrics.violation_free_count / total
            + weights.dependencies * dependencies_ratio
        )
        return round(score, 4)

    def _suggestions(self, metrics: ValidationMetrics) -> list[str]:
        total = metrics.total_count
        deps = metrics.dependency_metrics
        suggestions: list[str] = []
        if metrics.actionable_count < total:
            suggestions.append(
                f"有 {total - metrics.actionable_count} 条 Todo 未以动作动词开头，建议改为 Implement / Create / Add 等开头"
            )
        if metrics.reasonable_complexity_count < total:
            suggestions.append(
                f"拆分复杂度超过 {self.config.max_complexity_per_task} 的任务为更聚焦的子任务"
            )
        if self.config.require_time_estimates and metrics.estimated_count < total:
            suggestions.append(f"为 {total - metrics.estimated_count} 条 Todo 补充工时预估，便于排期")
        if deps.has_cycles:
            suggestions.append("移除循环依赖，恢复可执行的任务顺序")
        if deps.todos_with_dependencies == 0 and total > 1:
            suggestions.append("考虑为相关任务补充依赖关系，明确先后顺序")
        if total and metrics.quality_score < _LOW_QUALITY_THRESHOLD:
            suggestions.append("整体质量偏低：聚焦具体、可执行、工时合理的任务")
        return suggestions
