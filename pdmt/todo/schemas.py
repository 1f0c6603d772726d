"""
Todo 数据模型

TodoItem 是解析层 → 依赖图 → 校验层之间的数据契约。
- status / priority 为封闭集合（Literal），不做任何隐式转换
- 严格模式：id 必须是字符串，estimated_hours 必须是数字，类型不符直接报错
- 未声明的额外字段原样保留（extra="allow"），解析层不会静默丢弃
"""

from collections import Counter
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TodoStatus = Literal["pending", "in_progress", "completed"]
TodoPriority = Literal["low", "medium", "high", "critical"]

STATUSES: tuple[str, ...] = ("pending", "in_progress", "completed")
PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "critical")


class TodoItem(BaseModel):
    """单个 Todo 条目"""

    model_config = ConfigDict(strict=True, extra="allow", frozen=True)

    id: str
    content: str
    status: TodoStatus = "pending"
    priority: TodoPriority = "medium"
    estimated_hours: float | None = Field(default=None, description="预估工时（小时）")
    dependencies: list[str] = Field(default_factory=list, description="前置 Todo 的 id，有序")
    tags: list[str] = Field(default_factory=list)
    assignee: str | None = None


class TodoListSummary(BaseModel):
    """列表级统计"""

    total_count: int
    status_counts: dict[str, int]
    priority_counts: dict[str, int]
    total_estimated_hours: float
    avg_estimated_hours: float
    completion_ratio: float


class TodoList(BaseModel):
    """有序 Todo 列表（调用方持有，校验过程不修改）"""

    model_config = ConfigDict(strict=True, extra="allow", frozen=True)

    todos: list[TodoItem] = Field(default_factory=list)

    @classmethod
    def from_items(cls, items: list) -> "TodoList":
        """从 dict / TodoItem 混合列表构造，dict 走严格校验"""
        return cls(todos=[i if isinstance(i, TodoItem) else TodoItem.model_validate(i) for i in items])

    def __len__(self) -> int:
        return len(self.todos)

    def ids(self) -> list[str]:
        return [t.id for t in self.todos]

    def get(self, todo_id: str) -> TodoItem | None:
        """按 id 查找（重复 id 时返回首个）"""
        for todo in self.todos:
            if todo.id == todo_id:
                return todo
        return None

    def by_status(self, status: str) -> list[TodoItem]:
        return [t for t in self.todos if t.status == status]

    def by_priority(self, priority: str) -> list[TodoItem]:
        return [t for t in self.todos if t.priority == priority]

    def summary(self) -> TodoListSummary:
        """统计状态/优先级分布、总工时、完成率（计数按封闭集合顺序输出，保证确定性）"""
        total = len(self.todos)
        status_counter = Counter(t.status for t in self.todos)
        priority_counter = Counter(t.priority for t in self.todos)
        total_hours = sum(t.estimated_hours or 0.0 for t in self.todos)
        return TodoListSummary(
            total_count=total,
            status_counts={s: status_counter.get(s, 0) for s in STATUSES},
            priority_counts={p: priority_counter.get(p, 0) for p in PRIORITIES},
            total_estimated_hours=total_hours,
            avg_estimated_hours=total_hours / total if total else 0.0,
            completion_ratio=status_counter.get("completed", 0) / total if total else 0.0,
        )

    def to_data(self) -> dict:
        """转为纯数据结构（list/dict/标量），供格式序列化和工具层使用"""
        return {"todos": [t.model_dump(exclude_none=True) for t in self.todos]}
