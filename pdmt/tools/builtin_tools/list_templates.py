"""ListTemplatesTool：列出已注册模板（每个 id 的最新版本）"""

from pydantic import BaseModel

from pdmt.engine import TemplateEngine
from pdmt.tools.base import BaseTool, ToolResult


class _EmptyParams(BaseModel):
    """无参数"""


class ListTemplatesTool(BaseTool):

    def __init__(self, engine: TemplateEngine) -> None:
        self._engine = engine

    @property
    def name(self) -> str:
        return "list_templates"

    @property
    def description(self) -> str:
        return "列出所有已注册模板的 id、最新版本、继承关系、输出格式和标签。此工具无需任何参数。"

    @property
    def params_model(self) -> type[BaseModel]:
        return _EmptyParams

    def run(self, params: _EmptyParams) -> ToolResult:
        templates = self._engine.list_templates()
        return ToolResult.success(count=len(templates), templates=templates)
