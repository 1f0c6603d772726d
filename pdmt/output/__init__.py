"""输出解析：封闭格式集合 + Schema 校验 + TodoList 转换"""

from pdmt.output.formats import FORMATS, get_formatter
from pdmt.output.parser import OutputParser

__all__ = ["FORMATS", "OutputParser", "get_formatter"]
