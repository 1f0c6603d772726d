"""
ValidateItemListTool：校验调用方提供的 Todo 列表

接收完整 todos 列表（纯 dict）→ 严格转换为 TodoList → TodoValidator → 返回校验报告。
config 中的键覆盖 ValidationConfig 默认值（例如 max_items、min_task_detail_chars）。
"""

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from pdmt.engine import TemplateEngine
from pdmt.tools.base import BaseTool, ToolResult
from pdmt.validator.config import ValidationConfig


class _Params(BaseModel):
    todos: list[dict[str, Any]] = Field(description="完整的 Todo 列表（id, content, status, priority, ...）")
    config: dict[str, Any] | None = Field(default=None, description="校验配置覆盖项，留空使用默认配置")


class ValidateItemListTool(BaseTool):
    """Todo 列表校验"""

    def __init__(self, engine: TemplateEngine) -> None:
        self._engine = engine

    @property
    def name(self) -> str:
        return "validate_item_list"

    @property
    def description(self) -> str:
        return (
            "校验 Todo 列表：结构（重复 id、悬空依赖、循环依赖）+ 单条质量（动作动词、长度、复杂度、"
            "工时、技术债标记、空泛用语）。返回 is_valid、issues、metrics、suggestions。"
        )

    @property
    def params_model(self) -> type[BaseModel]:
        return _Params

    def run(self, params: _Params) -> ToolResult:
        try:
            config = ValidationConfig.model_validate(params.config) if params.config else None
        except ValidationError as e:
            return ToolResult.fail(f"校验配置非法: {e.errors()[0]['msg']}")
        result = self._engine.validate_item_list({"todos": params.todos}, config)
        return ToolResult.success(**result.model_dump(mode="json"))
