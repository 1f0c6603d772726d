"""
工具系统：BaseTool 抽象基类 + ToolRegistry 注册中心 + 内置工具集

把 generate / validate_item_list / list_templates 暴露为命名操作，参数与结果都是纯数据。
"""

from pdmt.tools.base import BaseTool, ToolResult
from pdmt.tools.registry import ToolRegistry

__all__ = ["BaseTool", "ToolResult", "ToolRegistry"]
