"""
内置工具集：自动注册所有内置工具到 ToolRegistry

使用方式：
    from pdmt.tools.builtin_tools import create_builtin_registry
    registry = create_builtin_registry()
"""

from pdmt.engine import TemplateEngine
from pdmt.tools.builtin_tools.generate import GenerateTool
from pdmt.tools.builtin_tools.list_templates import ListTemplatesTool
from pdmt.tools.builtin_tools.validate_item_list import ValidateItemListTool
from pdmt.tools.registry import ToolRegistry


def create_builtin_registry(engine: TemplateEngine | None = None) -> ToolRegistry:
    """创建并注册所有内置工具的 Registry 实例（未传 engine 时新建一个并加载内置模板）"""
    if engine is None:
        engine = TemplateEngine()
        engine.load_builtin_templates()

    registry = ToolRegistry()
    registry.register(GenerateTool(engine))
    registry.register(ValidateItemListTool(engine))
    registry.register(ListTemplatesTool(engine))
    return registry
