"""
内置模板注册表

硬编码模板定义 (Code-as-Configuration)，随 TemplateEngine.load_builtin_templates() 注册：
- base           根模板：纯文本，每行一条 Todo
- todo_list      extends base：需求列表 → YAML Todo 列表
- todo_checklist extends todo_list：只替换 body 与 output_schema，输出 Markdown 清单，
                 input_schema / validation / metadata 继承自 todo_list
"""

from pdmt.template.schemas import (
    OutputSchema,
    QualityGateRules,
    StructureRules,
    TemplateDefinition,
    TemplateMetadata,
    ValidationRules,
)

BASE = "base"
TODO_LIST = "todo_list"
TODO_CHECKLIST = "todo_checklist"

# 解析后 Todo 列表的 JSON Schema（长度 / 工时上下限交给校验层，这里只约束结构）
TODO_OUTPUT_JSON_SCHEMA: dict = {
    "type": "object",
    "required": ["todos"],
    "properties": {
        "todos": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "content", "status", "priority"],
                "properties": {
                    "id": {"type": "string"},
                    "content": {"type": "string"},
                    "status": {"type": "string", "enum": ["pending", "in_progress", "completed"]},
                    "priority": {"type": "string", "enum": ["low", "medium", "high", "critical"]},
                    "estimated_hours": {"type": "number"},
                    "dependencies": {"type": "array", "items": {"type": "string"}},
                    "tags": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
    },
}

_TODO_INPUT_SCHEMA: dict = {
    "type": "object",
    "required": ["project_name", "requirements"],
    "properties": {
        "project_name": {"type": "string", "minLength": 1, "description": "项目名称"},
        "requirements": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
            "minItems": 1,
            "description": "需求列表，每条需求生成一条 Todo",
        },
        "granularity": {
            "type": "string",
            "enum": ["high", "medium", "low"],
            "default": "high",
            "description": "拆分粒度，决定单条预估工时",
        },
        "max_todos": {"type": "integer", "minimum": 1, "maximum": 50, "default": 20},
        "include_estimates": {"type": "boolean", "default": True},
        "default_priority": {
            "type": "string",
            "enum": ["low", "medium", "high", "critical"],
            "default": "medium",
        },
        "sequential": {"type": "boolean", "default": False, "description": "每条 Todo 依赖上一条"},
        "action_verb": {"type": "string", "pattern": "^\\S+$", "default": "Implement", "description": "单个动词，不含空白"},
    },
}

_TODO_LIST_BODY = """\
project:
  name: {{ project_name | yaml_str }}
  granularity: {{ granularity | yaml_str }}
todos:{{ " []" if not requirements[:max_todos] else "" }}
{% set hours = {"high": 2.0, "medium": 4.0, "low": 8.0}[granularity] %}
{% for requirement in requirements[:max_todos] %}
  - id: "todo_{{ loop.index0 }}"
    content: {{ (action_verb ~ " " ~ requirement) | oneline | yaml_str }}
    status: "pending"
    priority: {{ default_priority | yaml_str }}
{% if include_estimates %}
    estimated_hours: {{ hours }}
{% endif %}
    dependencies: [{% if sequential and not loop.first %}"todo_{{ loop.index0 - 1 }}"{% endif %}]
    tags: ["implementation"]
{% endfor %}
"""

_TODO_CHECKLIST_BODY = """\
# {{ project_name | oneline }}

{% set hours = {"high": 2.0, "medium": 4.0, "low": 8.0}[granularity] %}
{% for requirement in requirements[:max_todos] %}
- [ ] **todo_{{ loop.index0 }}** {{ (action_verb ~ " " ~ requirement) | oneline }} \
_(priority: {{ default_priority }}\
{% if include_estimates %}; estimate: {{ hours }}h{% endif %}\
{% if sequential and not loop.first %}; depends on: todo_{{ loop.index0 - 1 }}{% endif %})_
{% endfor %}
"""


def builtin_templates() -> list[TemplateDefinition]:
    """按依赖顺序返回内置模板（父模板在前）"""
    base = TemplateDefinition(
        id=BASE,
        version="1.0.0",
        metadata=TemplateMetadata(
            provider="deterministic",
            description="根模板：纯文本，每行一条 Todo",
            parameters={"temperature": 0.0},
            tags=["base"],
        ),
        input_schema={
            "type": "object",
            "required": ["content"],
            "properties": {"content": {"type": "string"}},
        },
        output_schema=OutputSchema(format="text", shape="item_list", structure="每行一条 Todo 内容"),
        validation=ValidationRules(
            deterministic_only=True,
            quality_gates=QualityGateRules(),
            structure_rules=StructureRules(),
            min_length=1,
        ),
        body="{{ content }}\n",
    )

    todo_list = TemplateDefinition(
        id=TODO_LIST,
        version="1.0.0",
        extends=BASE,
        metadata=TemplateMetadata(
            provider="deterministic",
            description="需求列表 → 确定性 Todo 列表（YAML）",
            parameters={"temperature": 0.0},
            author="pdmt",
            tags=["todo", "deterministic"],
        ),
        input_schema=_TODO_INPUT_SCHEMA,
        output_schema=OutputSchema(
            format="yaml",
            shape="item_list",
            structure="todos: Todo 对象数组（id, content, status, priority, ...）",
            schema=TODO_OUTPUT_JSON_SCHEMA,
            example=(
                "todos:\n"
                '  - id: "todo_0"\n'
                '    content: "Implement user authentication"\n'
                '    status: "pending"\n'
                '    priority: "high"\n'
                "    estimated_hours: 4.0\n"
            ),
        ),
        validation=ValidationRules(
            deterministic_only=True,
            required_fields=["todos"],
            optional_fields=["project"],
            quality_gates=QualityGateRules(
                max_complexity_per_task=8,
                require_time_estimates=True,
                require_specific_actions=True,
                min_task_detail_chars=10,
                max_task_detail_chars=100,
            ),
            structure_rules=StructureRules(max_items=50, min_items=1, required_elements=["todos"]),
            min_length=10,
            max_length=50_000,
        ),
        body=_TODO_LIST_BODY,
    )

    todo_checklist = TemplateDefinition(
        id=TODO_CHECKLIST,
        version="1.0.0",
        extends=TODO_LIST,
        output_schema=OutputSchema(
            format="markdown",
            shape="item_list",
            structure="Markdown 清单：- [ ] **id** 内容 _(priority: ...; estimate: ...h; depends on: ...)_",
            schema=TODO_OUTPUT_JSON_SCHEMA,
        ),
        body=_TODO_CHECKLIST_BODY,
    )

    return [base, todo_list, todo_checklist]
