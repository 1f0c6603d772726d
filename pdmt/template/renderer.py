"""
确定性渲染器：input_schema 校验 → 默认值填充 → Jinja2 替换

完整流程：
1. jsonschema 校验输入（必填、类型、枚举、数组元素递归），失败抛 SchemaViolation
2. DefaultFiller 填充 schema 中声明了 default 的缺失字段
3. ImmutableSandboxedEnvironment + StrictUndefined 渲染：
   - 未定义变量 / helper / test → RenderError（携带缺失符号名）
   - 沙箱禁止修改输入对象，模板只能读
   - 移除 lipsum 等非确定性全局函数，模板中无法取到时钟、随机数和环境变量

契约：resolved 与 input 固定时，输出文本逐字节一致。
"""

from __future__ import annotations

import json
import re
from functools import lru_cache
from typing import Any

import structlog
from jinja2 import StrictUndefined, TemplateAssertionError, TemplateRuntimeError, TemplateSyntaxError
from jinja2.sandbox import ImmutableSandboxedEnvironment, SecurityError

from pdmt.errors import RenderError, SchemaViolation
from pdmt.template.schema_check import DefaultFiller, first_violation, json_type_name
from pdmt.template.schemas import ResolvedTemplate

log = structlog.get_logger()

# 匹配 Jinja2 报错信息中的符号名
_UNDEFINED_RE = re.compile(r"'([^']+)' is undefined")
_NO_ATTRIBUTE_RE = re.compile(r"has no attribute '([^']+)'")
_NO_HELPER_RE = re.compile(r"No (?:filter|test) named '([^']+)'")

# 非确定性全局函数
_NON_DETERMINISTIC_GLOBALS = ("lipsum", "cycler", "joiner")


def _capitalize(value: Any) -> str:
    """首字母大写，其余保持不变（区别于 Jinja 内置 capitalize 的全部小写）"""
    text = str(value)
    return text[:1].upper() + text[1:]


def _yaml_str(value: Any) -> str:
    """输出为 YAML 双引号标量（JSON 字符串字面量是合法的 YAML 双引号标量）"""
    return json.dumps(str(value), ensure_ascii=False)


def _json_str(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def _oneline(value: Any) -> str:
    """折叠所有空白为单个空格，防止换行破坏行结构"""
    return " ".join(str(value).split())


def _slug(value: Any) -> str:
    return re.sub(r"[^a-z0-9]+", "_", str(value).lower()).strip("_")


HELPERS: dict[str, Any] = {
    "upper": lambda v: str(v).upper(),
    "lower": lambda v: str(v).lower(),
    "capitalize": _capitalize,
    "yaml_str": _yaml_str,
    "json_str": _json_str,
    "oneline": _oneline,
    "slug": _slug,
}


def _build_environment() -> ImmutableSandboxedEnvironment:
    env = ImmutableSandboxedEnvironment(
        undefined=StrictUndefined,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters.update(HELPERS)
    for name in _NON_DETERMINISTIC_GLOBALS:
        env.globals.pop(name, None)
    return env


_ENV = _build_environment()


@lru_cache(maxsize=256)
def _compile(body: str):
    return _ENV.from_string(body)


class TemplateRenderer:
    """
    确定性渲染器：无状态，所有请求共享一个实例。
    """

    def __init__(self) -> None:
        self.filler = DefaultFiller()

    def validate_input(self, resolved: ResolvedTemplate, data: Any) -> dict[str, Any]:
        """
        按 input_schema 校验输入并填充默认值，返回渲染上下文。

        Raises:
            SchemaViolation: 第一个（按字段路径排序）违规，errors 中保留全部违规信息
        """
        if not isinstance(data, dict):
            raise SchemaViolation("<root>", "object", json_type_name(data))

        violation = first_violation(resolved.input_schema, data)
        if violation is not None:
            log.info(
                "输入不满足 input_schema",
                template_id=resolved.id,
                field_path=violation.field_path,
                expected=violation.expected,
                actual=violation.actual,
            )
            raise SchemaViolation(
                violation.field_path,
                violation.expected,
                violation.actual,
                errors=violation.messages,
            )
        return self.filler.fill(resolved.input_schema, data)

    def render(self, resolved: ResolvedTemplate, data: Any) -> str:
        """
        校验输入并渲染模板正文。

        Raises:
            SchemaViolation: 输入不合法
            RenderError: 模板引用了不存在的变量 / helper、模板语法错误，或渲染时的运行时异常
        """
        context = self.validate_input(resolved, data)

        try:
            template = _compile(resolved.body)
        except TemplateAssertionError as e:
            raise RenderError(_missing_symbol(e), template_id=resolved.id, detail=str(e)) from e
        except TemplateSyntaxError as e:
            raise RenderError("<syntax>", template_id=resolved.id, detail=f"第 {e.lineno} 行: {e.message}") from e

        try:
            text = template.render(context)
        except SecurityError as e:
            raise RenderError("<sandbox>", template_id=resolved.id, detail=str(e)) from e
        except TemplateRuntimeError as e:
            # 未定义变量，或条件分支内延迟到运行时才报错的未知 helper
            raise RenderError(_missing_symbol(e), template_id=resolved.id, detail=str(e)) from e
        except Exception as e:
            # 过滤器 / 运算符在运行时抛出的 Python 异常
            raise RenderError("<runtime>", template_id=resolved.id, detail=f"{type(e).__name__}: {e}") from e

        log.debug("模板渲染完成", template_id=resolved.id, version=resolved.version, chars=len(text))
        return text


def _missing_symbol(error: Exception) -> str:
    message = str(error)
    for pattern in (_NO_HELPER_RE, _UNDEFINED_RE, _NO_ATTRIBUTE_RE):
        match = pattern.search(message)
        if match:
            return match.group(1)
    return message
