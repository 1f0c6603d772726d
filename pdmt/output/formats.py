"""
输出格式：封闭集合 yaml | json | markdown | text

每种格式提供一对 serialize(value) -> str / deserialize(text) -> value：
- yaml      yaml.safe_dump(sort_keys=False) / yaml.safe_load，保留字段顺序
- json      json.dumps(indent=2) / json.loads
- markdown  Todo 清单：- [ ] **id** 内容 _(priority: p; estimate: 4h; depends on: a, b)_
            复选框 [ ] pending，[~] in_progress，[x] completed；非清单行（标题、空行）忽略
- text      每行一条 Todo 内容；反序列化时按顺序分配 id 1..n，status=pending，priority=medium

markdown / text 是有损格式：tags、assignee 等附加字段不会出现在文本中。
语法错误统一抛 ParseError（带行列位置）。
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from typing import Any

import yaml

from pdmt.errors import ParseError

_BOX_TO_STATUS = {" ": "pending", "~": "in_progress", "x": "completed", "X": "completed"}
_STATUS_TO_BOX = {"pending": " ", "in_progress": "~", "completed": "x"}

# - [ ] **todo_0** Implement login _(priority: high; estimate: 2h)_
_CHECKLIST_RE = re.compile(
    r"^(?P<indent>\s*)[-*]\s+\[(?P<box>[ xX~])\]\s+"
    r"(?:\*\*(?P<id>[^*]+)\*\*\s+)?"
    r"(?P<content>.*?)"
    r"(?:\s+_\((?P<meta>[^()]*)\)_)?\s*$"
)
_CHECKBOX_START_RE = re.compile(r"^\s*[-*]\s+\[")


class OutputFormatter(ABC):
    """单种输出格式的序列化 / 反序列化"""

    name: str

    @abstractmethod
    def serialize(self, value: Any) -> str:
        ...

    @abstractmethod
    def deserialize(self, text: str) -> Any:
        ...


class YamlFormatter(OutputFormatter):
    name = "yaml"

    def serialize(self, value: Any) -> str:
        return yaml.safe_dump(value, sort_keys=False, allow_unicode=True)

    def deserialize(self, text: str) -> Any:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            raise ParseError(
                str(getattr(e, "problem", None) or e),
                line=mark.line + 1 if mark is not None else None,
                column=mark.column + 1 if mark is not None else None,
                fmt=self.name,
            ) from e


class JsonFormatter(OutputFormatter):
    name = "json"

    def serialize(self, value: Any) -> str:
        return json.dumps(value, indent=2, ensure_ascii=False) + "\n"

    def deserialize(self, text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(e.msg, line=e.lineno, column=e.colno, fmt=self.name) from e


class MarkdownFormatter(OutputFormatter):
    """Todo 清单格式"""

    name = "markdown"

    def serialize(self, value: Any) -> str:
        if isinstance(value, str):
            return value
        lines = [self._format_item(item) for item in _todo_dicts(value)]
        return "\n".join(lines) + "\n" if lines else ""

    def deserialize(self, text: str) -> Any:
        todos: list[dict[str, Any]] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not _CHECKBOX_START_RE.match(line):
                continue
            match = _CHECKLIST_RE.match(line)
            if match is None:
                column = len(line) - len(line.lstrip()) + 1
                raise ParseError("清单行格式不正确，期望 '- [ ] 内容'", line=lineno, column=column, fmt=self.name)

            item: dict[str, Any] = {
                "id": match.group("id") or str(len(todos) + 1),
                "content": match.group("content").strip(),
                "status": _BOX_TO_STATUS[match.group("box")],
                "priority": "medium",
                "dependencies": [],
            }
            if match.group("meta"):
                self._apply_meta(item, match.group("meta"), lineno, match.start("meta") + 1)
            todos.append(item)
        return {"todos": todos}

    def _format_item(self, item: dict[str, Any]) -> str:
        box = _STATUS_TO_BOX.get(item.get("status", "pending"), " ")
        content = " ".join(str(item.get("content", "")).split())
        meta = [f"priority: {item.get('priority', 'medium')}"]
        if item.get("estimated_hours") is not None:
            meta.append(f"estimate: {item['estimated_hours']:g}h")
        if item.get("dependencies"):
            meta.append(f"depends on: {', '.join(item['dependencies'])}")
        return f"- [{box}] **{item.get('id', '')}** {content} _({'; '.join(meta)})_"

    def _apply_meta(self, item: dict[str, Any], meta: str, lineno: int, column: int) -> None:
        for part in meta.split(";"):
            key, sep, value = part.partition(":")
            key, value = key.strip(), value.strip()
            if not sep:
                raise ParseError(f"元信息缺少 ':' 分隔符: {part.strip()!r}", line=lineno, column=column, fmt=self.name)
            if key == "priority":
                item["priority"] = value
            elif key == "estimate":
                try:
                    item["estimated_hours"] = float(value.removesuffix("h"))
                except ValueError as e:
                    raise ParseError(f"工时不是数字: {value!r}", line=lineno, column=column, fmt=self.name) from e
            elif key == "depends on":
                item["dependencies"] = [d.strip() for d in value.split(",") if d.strip()]
            else:
                # 未识别的元信息原样保留为附加字段
                item[key.replace(" ", "_")] = value


class TextFormatter(OutputFormatter):
    """纯文本：每行一条"""

    name = "text"

    def serialize(self, value: Any) -> str:
        if isinstance(value, str):
            return value
        lines = [" ".join(str(item.get("content", "")).split()) for item in _todo_dicts(value)]
        return "\n".join(lines) + "\n" if lines else ""

    def deserialize(self, text: str) -> Any:
        contents = [line.strip() for line in text.splitlines() if line.strip()]
        return {
            "todos": [
                {"id": str(i), "content": content, "status": "pending", "priority": "medium"}
                for i, content in enumerate(contents, start=1)
            ]
        }


def _todo_dicts(value: Any) -> list[dict[str, Any]]:
    """接受 {"todos": [...]} 或裸列表"""
    if isinstance(value, dict):
        value = value.get("todos", [])
    return [item for item in value or [] if isinstance(item, dict)]


FORMATS: dict[str, OutputFormatter] = {
    formatter.name: formatter
    for formatter in (YamlFormatter(), JsonFormatter(), MarkdownFormatter(), TextFormatter())
}


def get_formatter(name: str) -> OutputFormatter:
    """按名称取格式（封闭集合，未知格式抛 ValueError）"""
    try:
        return FORMATS[name]
    except KeyError:
        raise ValueError(f"不支持的输出格式: {name}（可选: {', '.join(FORMATS)}）") from None
