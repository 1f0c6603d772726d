"""Tests for the tool layer: registry dispatch, schemas and builtin tools."""

from __future__ import annotations

import asyncio
import time

import pytest
from pydantic import BaseModel

from pdmt.errors import DuplicateIdentifier
from pdmt.template.builtin import TODO_LIST
from pdmt.tools import BaseTool, ToolRegistry, ToolResult
from pdmt.tools.builtin_tools import create_builtin_registry
from pdmt.tools.builtin_tools.list_templates import ListTemplatesTool


@pytest.fixture()
def registry(engine) -> ToolRegistry:
    return create_builtin_registry(engine)


def _run(registry: ToolRegistry, name: str, args: dict) -> dict:
    return asyncio.run(registry.execute(name, args))


class _SleepParams(BaseModel):
    seconds: float


class _SleepTool(BaseTool):
    name = "sleep"
    description = "sleep for a while"
    params_model = _SleepParams

    @property
    def timeout_ms(self) -> int:
        return 50

    def run(self, params: _SleepParams) -> ToolResult:
        time.sleep(params.seconds)
        return ToolResult.success(slept=params.seconds)


class TestRegistry:
    def test_builtin_tools(self, registry):
        assert registry.tool_names == ["generate", "validate_item_list", "list_templates"]
        assert registry.tool_count == 3
        assert registry.has_tool("generate")
        assert not registry.has_tool("nope")

    def test_schemas(self, registry):
        schemas = registry.get_all_schemas()
        assert [s["function"]["name"] for s in schemas] == registry.tool_names
        schema = schemas[0]
        function = schema["function"]
        assert schema["type"] == "function"
        assert function["name"] == "generate"
        assert function["parameters"]["required"] == ["template_id"]
        assert "title" not in function["parameters"]["properties"]["template_id"]

    def test_unknown_tool(self, registry):
        result = _run(registry, "nope", {})
        assert result == {"status": "error", "error": "未知工具: nope"}

    def test_timeout(self):
        registry = ToolRegistry()
        registry.register(_SleepTool())
        result = _run(registry, "sleep", {"seconds": 0.5})
        assert result["status"] == "error"
        assert "超时" in result["error"]

    def test_duplicate_name_rejected(self, registry, engine):
        with pytest.raises(DuplicateIdentifier):
            registry.register(ListTemplatesTool(engine))
        registry.register(ListTemplatesTool(engine), replace=True)
        assert registry.tool_count == 3

    def test_invalid_arguments(self, registry):
        result = _run(registry, "generate", {"input": {}})
        assert result["status"] == "error"
        assert result["error"].startswith("参数校验失败")


class TestGenerateTool:
    def test_generate(self, registry, todo_input):
        result = _run(registry, "generate", {"template_id": TODO_LIST, "input": todo_input})
        assert result["status"] == "success"
        assert result["template_version"] == "1.0.0"
        assert [t["id"] for t in result["todos"]] == ["todo_0", "todo_1"]
        assert result["validation"]["is_valid"] is True
        assert result["format"] == "yaml"
        assert result["rendered"].startswith("todos:\n- id: todo_0\n")

    def test_generate_in_requested_format(self, registry, todo_input):
        result = _run(registry, "generate", {"template_id": TODO_LIST, "input": todo_input, "format": "markdown"})
        assert result["rendered"].startswith("- [ ] **todo_0** Implement user login form")

    def test_engine_errors_carry_detail(self, registry):
        result = _run(registry, "generate", {"template_id": TODO_LIST, "input": {"requirements": ["x"]}})
        assert result["status"] == "error"
        assert result["detail"]["error"] == "SchemaViolation"
        assert result["detail"]["field_path"] == "project_name"

    def test_runtime_render_error_is_structured(self, registry, engine, make_definition):
        engine.register_template(make_definition(body="{{ name + 1 }}\n"))
        result = _run(registry, "generate", {"template_id": "sample", "input": {"name": "a"}})
        assert result["status"] == "error"
        assert result["detail"]["error"] == "RenderError"
        assert result["detail"]["symbol"] == "<runtime>"

    def test_unknown_template(self, registry):
        result = _run(registry, "generate", {"template_id": "missing"})
        assert result["detail"]["error"] == "TemplateNotFound"


class TestValidateItemListTool:
    def test_validate(self, registry):
        todos = [
            {"id": "a", "content": "Implement the login form", "estimated_hours": 2.0},
            {"id": "b", "content": "Write login tests", "estimated_hours": 1.0, "dependencies": ["zz"]},
        ]
        result = _run(registry, "validate_item_list", {"todos": todos})
        assert result["status"] == "success"
        assert result["is_valid"] is False
        assert result["issues"][0]["category"] == "missing_dependency"

    def test_config_override(self, registry):
        todos = [{"id": "a", "content": "Implement the login form", "estimated_hours": 2.0}]
        result = _run(registry, "validate_item_list", {"todos": todos, "config": {"max_task_detail_chars": 5}})
        assert [i["category"] for i in result["issues"]] == ["length"]

    def test_invalid_config(self, registry):
        result = _run(registry, "validate_item_list", {"todos": [], "config": {"max_items": "many"}})
        assert result["status"] == "error"
        assert result["error"].startswith("校验配置非法")

    def test_schema_mismatch(self, registry):
        result = _run(registry, "validate_item_list", {"todos": [{"id": "a"}]})
        assert result["detail"]["error"] == "SchemaMismatch"
        assert result["detail"]["field_path"] == "todos[0].content"


class TestListTemplatesTool:
    def test_list(self, registry):
        result = _run(registry, "list_templates", {})
        assert result["status"] == "success"
        assert result["count"] == 3
        assert [t["id"] for t in result["templates"]] == ["base", "todo_checklist", "todo_list"]


def test_tool_result_json():
    assert ToolResult.fail("boom", {"k": 1}).to_json() == '{"status": "error", "error": "boom", "detail": {"k": 1}}'
