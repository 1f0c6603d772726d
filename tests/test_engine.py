"""End-to-end tests for the engine facade."""

from __future__ import annotations

import pytest

from pdmt.config import get_settings
from pdmt.engine import TemplateEngine, default_output_format
from pdmt.errors import InvalidDefinition, LimitExceeded, SchemaMismatch, SchemaViolation, TemplateNotFound
from pdmt.template.builtin import TODO_CHECKLIST, TODO_LIST
from pdmt.template.schemas import OutputSchema, ValidationRules
from pdmt.todo.schemas import TodoList
from pdmt.validator import IssueCategory, ValidationConfig


class TestGenerate:
    def test_builtin_todo_list(self, engine, todo_input):
        generated = engine.generate(TODO_LIST, todo_input)

        assert generated.template_id == TODO_LIST
        assert generated.template_version == "1.0.0"
        assert generated.is_deterministic
        assert generated.todo_list.ids() == ["todo_0", "todo_1"]
        assert generated.todo_list.todos[0].content == "Implement user login form"
        assert generated.validation.is_valid
        assert generated.validation.metrics.quality_score == 1.0
        # 没有依赖关系时给出补充依赖的建议
        assert "考虑为相关任务补充依赖关系，明确先后顺序" in generated.validation.suggestions

    def test_generation_is_deterministic(self, engine, todo_input):
        first = engine.generate(TODO_LIST, todo_input)
        second = engine.generate(TODO_LIST, todo_input)
        assert first.content == second.content
        assert first.todo_list == second.todo_list
        assert first.validation == second.validation
        assert first.id != second.id

    @pytest.mark.parametrize("max_todos", [1, 2, 5])
    def test_item_count_respects_max_todos(self, engine, max_todos):
        requirements = ["user login form", "password reset email", "profile settings page"]
        generated = engine.generate(
            TODO_LIST, {"project_name": "Demo", "requirements": requirements, "max_todos": max_todos}
        )
        assert len(generated.todo_list) == min(len(requirements), max_todos)

    def test_sequential_builds_critical_path(self, engine, todo_input):
        generated = engine.generate(TODO_LIST, {**todo_input, "sequential": True})
        deps = generated.validation.metrics.dependency_metrics
        assert deps.critical_path == ["todo_0", "todo_1"]
        assert deps.critical_path_hours == 4.0

    def test_checklist_matches_yaml_items(self, engine, todo_input):
        yaml_list = engine.generate(TODO_LIST, todo_input).todo_list
        checklist = engine.generate(TODO_CHECKLIST, todo_input)

        assert checklist.content.startswith("# Demo\n")
        assert "- [ ] **todo_0** Implement user login form _(priority: medium; estimate: 2.0h)_" in checklist.content
        assert [(t.id, t.content, t.estimated_hours) for t in checklist.todo_list.todos] == [
            (t.id, t.content, t.estimated_hours) for t in yaml_list.todos
        ]
        assert checklist.validation.is_valid

    def test_multiline_action_verb_rejected(self, engine, todo_input):
        with pytest.raises(SchemaViolation) as exc:
            engine.generate(TODO_CHECKLIST, {**todo_input, "action_verb": "Implement\n- [ ] Injected line"})
        assert exc.value.field_path == "action_verb"

    def test_action_verb_cannot_inject_items(self, engine, todo_input):
        # 放宽 action_verb 约束后，正文仍把换行折叠掉，条目数与需求数一致
        loose_schema = engine.resolve_template(TODO_LIST).input_schema
        del loose_schema["properties"]["action_verb"]["pattern"]
        for template_id, parent in (("loose_list", TODO_LIST), ("loose_checklist", TODO_CHECKLIST)):
            engine.register_template(
                {"id": template_id, "version": "1.0.0", "extends": parent, "input_schema": loose_schema}
            )
        data = {**todo_input, "action_verb": "Implement\n- [ ] Injected line"}

        yaml_list = engine.generate("loose_list", data).todo_list
        checklist = engine.generate("loose_checklist", data).todo_list

        assert yaml_list.ids() == checklist.ids() == ["todo_0", "todo_1"]
        assert yaml_list.todos[0].content == "Implement - [ ] Injected line user login form"
        assert [t.content for t in checklist.todos] == [t.content for t in yaml_list.todos]

    def test_missing_estimates_fail_validation(self, engine, todo_input):
        generated = engine.generate(TODO_LIST, {**todo_input, "include_estimates": False})
        assert not generated.is_valid
        assert len(generated.validation.by_category(IssueCategory.TIME_ESTIMATE)) == 2

    def test_input_is_validated(self, engine):
        with pytest.raises(SchemaViolation):
            engine.generate(TODO_LIST, {"project_name": "Demo"})

    def test_unknown_template(self, engine):
        with pytest.raises(TemplateNotFound):
            engine.generate("missing", {})

    def test_per_call_validation_config(self, engine, todo_input):
        generated = engine.generate(TODO_LIST, todo_input, validation_config=ValidationConfig(max_items=1))
        assert generated.validation.by_category(IssueCategory.LIMIT_EXCEEDED)

    def test_as_format(self, engine, todo_input):
        generated = engine.generate(TODO_LIST, todo_input)
        assert generated.as_format("text") == "Implement user login form\nImplement password reset email\n"
        assert generated.as_format("json").startswith('{\n  "todos": [')

    def test_rendered_length_limits(self, engine, make_definition):
        engine.register_template(
            make_definition(template_id="tiny", output_schema=OutputSchema(format="text"), body="Fix it\n")
        )
        with pytest.raises(LimitExceeded) as exc:
            engine.generate("tiny", {})
        assert exc.value.limit == 10

        engine.register_template(
            make_definition(
                template_id="wordy",
                output_schema=OutputSchema(format="text"),
                validation=ValidationRules(max_length=12),
                body="Implement a rather long feature\n",
            )
        )
        with pytest.raises(LimitExceeded):
            engine.generate("wordy", {})

    def test_required_fields(self, engine, make_definition):
        engine.register_template(
            make_definition(
                template_id="needs_owner",
                output_schema=OutputSchema(format="yaml"),
                validation=ValidationRules(required_fields=["owner", "todos"]),
                body="todos: []\nnote: nothing here\n",
            )
        )
        with pytest.raises(SchemaMismatch) as exc:
            engine.generate("needs_owner", {})
        assert exc.value.field_path == "owner"

    def test_document_shape_skips_validation(self, engine, make_definition):
        engine.register_template(
            make_definition(
                template_id="readme",
                output_schema=OutputSchema(format="markdown", shape="document"),
                body="# {{ name }}\n\nProject overview.\n",
            )
        )
        generated = engine.generate("readme", {"name": "Demo"})
        assert generated.parsed == "# Demo\n\nProject overview.\n"
        assert generated.todo_list is None
        assert generated.validation is None
        assert generated.is_valid


class TestTemplates:
    def test_load_builtin_templates(self):
        engine = TemplateEngine()
        assert engine.load_builtin_templates() == 3
        # 重复加载覆盖，不报重复
        assert engine.load_builtin_templates() == 3

    def test_list_templates(self, engine):
        summaries = engine.list_templates()
        assert [s["id"] for s in summaries] == ["base", "todo_checklist", "todo_list"]
        checklist = summaries[1]
        assert checklist["extends"] == TODO_LIST
        assert checklist["format"] == "markdown"

    def test_register_from_yaml_text(self, engine):
        engine.register_template(
            "id: shout\n"
            'version: "1.0.0"\n'
            "output_schema:\n"
            "  format: text\n"
            "prompt_template: |\n"
            "  Implement {{ feature | upper }}\n"
        )
        generated = engine.generate("shout", {"feature": "search"})
        assert generated.todo_list.todos[0].content == "Implement SEARCH"

    def test_register_from_dict(self, engine):
        definition = engine.register_template(
            {"id": "child", "version": "2.0", "extends": TODO_LIST, "metadata": {"tags": ["custom"]}}
        )
        assert definition.extends == TODO_LIST
        assert engine.resolve_template("child").lineage == ("base", TODO_LIST, "child")

    def test_register_invalid_dict(self, engine):
        with pytest.raises(InvalidDefinition) as exc:
            engine.register_template({"id": "broken"})
        assert exc.value.template_id == "broken"
        assert "version" in exc.value.reason


class TestValidateItemList:
    def test_accepts_plain_data(self, engine):
        result = engine.validate_item_list(
            {"todos": [{"id": "a", "content": "Implement the login form", "estimated_hours": 2.0}]}
        )
        assert result.is_valid

    def test_accepts_bare_list(self, engine):
        result = engine.validate_item_list([{"id": "a", "content": "stuff"}])
        assert not result.is_valid

    def test_strict_conversion(self, engine):
        with pytest.raises(SchemaMismatch):
            engine.validate_item_list({"todos": [{"id": "a"}]})

    def test_accepts_todo_list(self, engine, make_list):
        assert engine.validate_item_list(make_list({"id": "a"})).is_valid
        assert not engine.validate_item_list(TodoList()).is_valid


def test_default_output_format(monkeypatch):
    assert default_output_format() == "yaml"
    monkeypatch.setenv("DEFAULT_OUTPUT_FORMAT", "markdown")
    get_settings.cache_clear()
    assert default_output_format() == "markdown"
