"""
异常体系：模板解析 → 渲染 → 解析 → 校验 全链路统一的错误类型

设计：
- 所有异常继承 PdmtError，携带 context 字典（字段路径、标识符、期望值/实际值、数值上界）
- 调用方无需回头解析原始输入即可拼出可操作的错误信息
- 结构性失败（Schema / 渲染 / 解析 / 注册）立即抛出，不返回任何部分结果
- 校验问题（ValidationIssue）不抛异常，只有调用方显式要求时才汇总为 ValidationFailed
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pdmt.validator.schemas import ValidationIssue


class PdmtError(Exception):
    """所有 pdmt 异常的基类"""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context

    def to_dict(self) -> dict[str, Any]:
        """序列化为纯数据（供工具层返回给调用方）"""
        return {"error": type(self).__name__, "message": self.message, **self.context}


# ── 模板注册 / 继承 ──


class TemplateNotFound(PdmtError):
    def __init__(self, template_id: str, version: str | None = None) -> None:
        label = f"{template_id}@{version}" if version else template_id
        super().__init__(f"模板不存在: {label}", template_id=template_id, version=version)
        self.template_id = template_id
        self.version = version


class InvalidDefinition(PdmtError):
    def __init__(self, template_id: str, reason: str) -> None:
        super().__init__(f"模板定义非法 [{template_id}]: {reason}", template_id=template_id, reason=reason)
        self.template_id = template_id
        self.reason = reason


class DuplicateIdentifier(PdmtError):
    """重复标识：模板 id+version 重复注册，或 Todo 列表内 id 重复"""

    def __init__(self, identifier: str, version: str | None = None) -> None:
        label = f"{identifier}@{version}" if version else identifier
        super().__init__(f"标识重复: {label}", identifier=identifier, version=version)
        self.identifier = identifier
        self.version = version


class InheritanceCycle(PdmtError):
    def __init__(self, cycle: list[str]) -> None:
        super().__init__(f"模板继承存在环: {' -> '.join(cycle)}", cycle=list(cycle))
        self.cycle = list(cycle)


# ── 渲染 ──


class SchemaViolation(PdmtError):
    """输入不满足模板 input_schema"""

    def __init__(
        self,
        field_path: str,
        expected: str,
        actual: str,
        errors: list[str] | None = None,
    ) -> None:
        super().__init__(
            f"输入校验失败 [{field_path}]: 期望 {expected}，实际 {actual}",
            field_path=field_path,
            expected=expected,
            actual=actual,
            errors=list(errors or []),
        )
        self.field_path = field_path
        self.expected = expected
        self.actual = actual
        self.errors = list(errors or [])


class RenderError(PdmtError):
    """模板中引用了未定义的变量 / helper，或渲染时抛出运行时异常（symbol 为 <runtime>）"""

    def __init__(self, symbol: str, template_id: str | None = None, detail: str = "") -> None:
        super().__init__(
            f"渲染失败: 未解析的符号 '{symbol}'" + (f"（{detail}）" if detail else ""),
            symbol=symbol,
            template_id=template_id,
            detail=detail,
        )
        self.symbol = symbol
        self.template_id = template_id


# ── 解析 ──


class ParseError(PdmtError):
    """渲染文本结构畸形，带行列位置"""

    def __init__(self, reason: str, line: int | None = None, column: int | None = None, fmt: str = "") -> None:
        where = f"（第 {line} 行，第 {column} 列）" if line is not None else ""
        super().__init__(f"解析失败{where}: {reason}", line=line, column=column, format=fmt)
        self.line = line
        self.column = column
        self.reason = reason


class SchemaMismatch(PdmtError):
    """解析结果与 output_schema 声明的结构不一致"""

    def __init__(self, field_path: str, expected: str, actual: str) -> None:
        super().__init__(
            f"输出结构不匹配 [{field_path}]: 期望 {expected}，实际 {actual}",
            field_path=field_path,
            expected=expected,
            actual=actual,
        )
        self.field_path = field_path
        self.expected = expected
        self.actual = actual


# ── 依赖图 ──


class MissingDependency(PdmtError):
    def __init__(self, missing: list[tuple[str, str]]) -> None:
        pairs = ", ".join(f"{todo_id} -> {dep}" for todo_id, dep in missing)
        super().__init__(
            f"依赖引用不存在: {pairs}",
            missing=[{"todo_id": t, "dependency": d} for t, d in missing],
        )
        self.missing = list(missing)


class DependencyCycle(PdmtError):
    def __init__(self, cycle: list[str]) -> None:
        super().__init__(f"依赖存在环: {' -> '.join(cycle)}", cycle=list(cycle))
        self.cycle = list(cycle)


# ── 限额 / 校验汇总 ──


class LimitExceeded(PdmtError):
    """数值超出上限（lower=True 时为低于下限）"""

    def __init__(self, subject: str, actual: int | float, limit: int | float, lower: bool = False) -> None:
        detail = f"低于下限: {actual} < {limit}" if lower else f"超出上限: {actual} > {limit}"
        super().__init__(f"{subject} {detail}", subject=subject, actual=actual, limit=limit, lower=lower)
        self.subject = subject
        self.actual = actual
        self.limit = limit


class ValidationFailed(PdmtError):
    """汇总异常：携带完整问题列表"""

    def __init__(self, issues: list[ValidationIssue], reason: str = "校验未通过") -> None:
        errors = [i for i in issues if i.severity == "error"]
        super().__init__(
            f"{reason}: {len(errors)} 个错误，{len(issues) - len(errors)} 个警告",
            issues=[i.model_dump(mode="json") for i in issues],
        )
        self.issues = list(issues)
