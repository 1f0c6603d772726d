"""
模板子系统：定义 Schema、注册中心 + 继承解析、文本加载、内置模板、确定性渲染
"""

from pdmt.template.builtin import builtin_templates
from pdmt.template.loader import parse_template_definition
from pdmt.template.renderer import TemplateRenderer
from pdmt.template.schemas import ResolvedTemplate, TemplateDefinition
from pdmt.template.store import TemplateStore

__all__ = [
    "ResolvedTemplate",
    "TemplateDefinition",
    "TemplateRenderer",
    "TemplateStore",
    "builtin_templates",
    "parse_template_definition",
]
