"""Shared test fixtures."""

from __future__ import annotations

import pytest

from pdmt.config import get_settings
from pdmt.engine import TemplateEngine
from pdmt.template.schemas import TemplateDefinition
from pdmt.template.store import TemplateStore
from pdmt.todo.schemas import TodoList


@pytest.fixture(autouse=True)
def _fresh_settings():
    """环境变量改动在每个用例之间互不影响"""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def store() -> TemplateStore:
    return TemplateStore()


@pytest.fixture()
def engine() -> TemplateEngine:
    engine = TemplateEngine()
    engine.load_builtin_templates()
    return engine


@pytest.fixture()
def make_definition():
    """构造最小合法模板定义，关键字参数覆盖任意字段"""

    def _make(template_id: str = "sample", version: str = "1.0.0", **fields) -> TemplateDefinition:
        body = fields.pop("body", "Hello {{ name }}\n")
        # body=None 表示不写出 body（子模板继承父模板正文）
        if body is not None:
            fields["body"] = body
        return TemplateDefinition(id=template_id, version=version, **fields)

    return _make


@pytest.fixture()
def todo_input() -> dict:
    return {
        "project_name": "Demo",
        "requirements": ["user login form", "password reset email"],
    }


@pytest.fixture()
def make_list():
    """dict 列表 → TodoList，缺省字段补成能通过全部质量检查的值"""

    def _make(*items: dict) -> TodoList:
        todos = []
        for item in items:
            todo = {"content": "Implement the default feature", "estimated_hours": 2.0, **item}
            todos.append(todo)
        return TodoList.from_items(todos)

    return _make


