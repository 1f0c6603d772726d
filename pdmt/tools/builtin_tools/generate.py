"""
GenerateTool：按模板确定性生成 Todo 列表 / 文档

执行逻辑：template_id + input → TemplateEngine.generate → 渲染文本 + 解析结构 + 校验报告
同一模板、同一输入，content / todos / validation 逐字节一致。
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from pdmt.engine import TemplateEngine, default_output_format
from pdmt.tools.base import BaseTool, ToolResult


class _Params(BaseModel):
    template_id: str = Field(description="模板 id，例如 todo_list")
    input: dict[str, Any] = Field(default_factory=dict, description="模板输入，需满足模板的 input_schema")
    version: str | None = Field(default=None, description="模板版本，留空取最近注册的版本")
    format: Literal["yaml", "json", "markdown", "text"] | None = Field(
        default=None,
        description="额外输出的格式，留空取 DEFAULT_OUTPUT_FORMAT",
    )


class GenerateTool(BaseTool):
    """确定性生成"""

    def __init__(self, engine: TemplateEngine) -> None:
        self._engine = engine

    @property
    def name(self) -> str:
        return "generate"

    @property
    def description(self) -> str:
        return (
            "按已注册模板确定性生成内容（不调用任何语言模型）。\n"
            "返回：content（渲染文本）、todos（item_list 模板）、validation（校验报告）、"
            "rendered（按 format 重新输出的文本）"
        )

    @property
    def params_model(self) -> type[BaseModel]:
        return _Params

    def run(self, params: _Params) -> ToolResult:
        generated = self._engine.generate(params.template_id, params.input, version=params.version)
        fmt = params.format or default_output_format()
        return ToolResult.success(
            id=generated.id,
            template_id=generated.template_id,
            template_version=generated.template_version,
            content=generated.content,
            todos=generated.todo_list.to_data()["todos"] if generated.todo_list is not None else None,
            validation=generated.validation.model_dump(mode="json") if generated.validation is not None else None,
            is_deterministic=generated.is_deterministic,
            format=fmt,
            rendered=generated.as_format(fmt),
            generated_at=generated.generated_at.isoformat(),
        )
