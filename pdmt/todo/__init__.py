"""
Todo 模块：结构化任务列表

提供 TodoItem / TodoList 数据契约，供解析层、依赖图分析器和校验层共用。
"""

from pdmt.todo.schemas import TodoItem, TodoList, TodoListSummary

__all__ = ["TodoItem", "TodoList", "TodoListSummary"]
