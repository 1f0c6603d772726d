"""Tests for the todo data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pdmt.template.schemas import TemplateMetadata, TemplateDefinition
from pdmt.todo.schemas import TodoItem, TodoList


@pytest.fixture()
def todo_list() -> TodoList:
    return TodoList.from_items(
        [
            {"id": "a", "content": "Implement login", "status": "completed", "priority": "high", "estimated_hours": 2.0},
            {"id": "b", "content": "Write tests", "status": "in_progress", "estimated_hours": 3.0},
            TodoItem(id="c", content="Deploy service"),
        ]
    )


class TestTodoItem:
    def test_defaults(self):
        item = TodoItem(id="a", content="Implement login")
        assert item.status == "pending"
        assert item.priority == "medium"
        assert item.dependencies == []

    def test_closed_status_set(self):
        with pytest.raises(ValidationError):
            TodoItem(id="a", content="x", status="done")

    def test_frozen(self):
        item = TodoItem(id="a", content="x")
        with pytest.raises(ValidationError):
            item.content = "y"


class TestTodoList:
    def test_lookup(self, todo_list):
        assert todo_list.ids() == ["a", "b", "c"]
        assert todo_list.get("b").content == "Write tests"
        assert todo_list.get("zz") is None
        assert [t.id for t in todo_list.by_status("pending")] == ["c"]
        assert [t.id for t in todo_list.by_priority("medium")] == ["b", "c"]

    def test_summary(self, todo_list):
        summary = todo_list.summary()
        assert summary.total_count == 3
        assert summary.status_counts == {"pending": 1, "in_progress": 1, "completed": 1}
        assert summary.priority_counts == {"low": 0, "medium": 2, "high": 1, "critical": 0}
        assert summary.total_estimated_hours == 5.0
        assert summary.avg_estimated_hours == pytest.approx(5.0 / 3)
        assert summary.completion_ratio == pytest.approx(1 / 3)

    def test_empty_summary(self):
        summary = TodoList().summary()
        assert summary.total_count == 0
        assert summary.completion_ratio == 0.0

    def test_to_data_omits_unset_optionals(self, todo_list):
        assert todo_list.to_data()["todos"][2] == {
            "id": "c",
            "content": "Deploy service",
            "status": "pending",
            "priority": "medium",
            "dependencies": [],
            "tags": [],
        }


def test_template_parameters():
    definition = TemplateDefinition(
        id="t",
        version="1",
        body="x",
        metadata=TemplateMetadata(parameters={"temperature": 0.0, "max_tokens": 200}),
    )
    assert definition.get_parameter("max_tokens") == 200
    assert definition.get_parameter("top_p", 1.0) == 1.0
    assert definition.is_deterministic()
