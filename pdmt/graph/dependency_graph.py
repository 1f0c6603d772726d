"""
依赖图分析器：Todo 依赖引用 → 有向图 → 悬空引用 / 环检测 / 关键路径

图模型：
- 节点：每个 Todo 一个节点，按列表插入顺序编号（重复 id 只保留首次出现的位置，边取并集）
- 边：todo → dependency（"我依赖谁"）

执行顺序（与校验层约定一致）：
1. dangling_references / check_references：悬空引用先于任何遍历报告
2. detect_cycles：三色 DFS（未访问 / 访问中 / 已完成），按插入顺序出发，结果确定
3. critical_path：仅在无悬空引用、无环时计算

find_cycle 是与数据模型无关的通用实现，模板继承链（extends）复用同一算法。
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

import structlog

from pdmt.errors import DependencyCycle, MissingDependency
from pdmt.todo.schemas import TodoList

log = structlog.get_logger()

_WHITE, _GRAY, _BLACK = 0, 1, 2


def find_cycle(order: Sequence[str], edges: Mapping[str, Sequence[str]]) -> list[str] | None:
    """
    三色 DFS 找环（迭代实现，不受递归深度限制）。

    Args:
        order: 出发顺序（决定结果的确定性）
        edges: 邻接表，指向 order 之外节点的边被忽略

    Returns:
        首个被发现的环，从首个被重访的节点开始并以它结束，如 ["1", "3", "2", "1"]；无环返回 None
    """
    known = set(order)
    color: dict[str, int] = dict.fromkeys(order, _WHITE)

    for start in order:
        if color[start] != _WHITE:
            continue
        color[start] = _GRAY
        path: list[str] = [start]
        stack: list[Iterable[str]] = [iter(edges.get(start, ()))]

        while stack:
            advanced = False
            for nxt in stack[-1]:
                if nxt not in known:
                    continue
                if color[nxt] == _GRAY:
                    return path[path.index(nxt):] + [nxt]
                if color[nxt] == _WHITE:
                    color[nxt] = _GRAY
                    path.append(nxt)
                    stack.append(iter(edges.get(nxt, ())))
                    advanced = True
                    break
            if not advanced:
                color[path.pop()] = _BLACK
                stack.pop()
    return None


@dataclass(frozen=True)
class CriticalPath:
    """关键路径：执行顺序（前置在前）的节点序列 + 总工时"""

    nodes: tuple[str, ...]
    total_hours: float

    def __len__(self) -> int:
        return len(self.nodes)


class DependencyGraph:
    """Todo 依赖图（构造后只读）"""

    def __init__(self, todo_list: TodoList) -> None:
        self._order: list[str] = []
        self._edges: dict[str, list[str]] = {}
        self._weights: dict[str, float] = {}

        for todo in todo_list.todos:
            if todo.id not in self._edges:
                self._order.append(todo.id)
                self._edges[todo.id] = []
                self._weights[todo.id] = todo.estimated_hours or 0.0
            targets = self._edges[todo.id]
            for dep in todo.dependencies:
                if dep not in targets:
                    targets.append(dep)

        self._index = {node: i for i, node in enumerate(self._order)}

    @property
    def nodes(self) -> list[str]:
        return list(self._order)

    def dependencies_of(self, node: str) -> list[str]:
        return list(self._edges.get(node, ()))

    # ── 引用检查 ──

    def dangling_references(self) -> list[tuple[str, str]]:
        """按插入顺序返回所有 (todo_id, 不存在的依赖 id)"""
        return [
            (node, dep)
            for node in self._order
            for dep in self._edges[node]
            if dep not in self._index
        ]

    def check_references(self) -> None:
        """
        Raises:
            MissingDependency: 存在悬空依赖引用（一次性列出全部）
        """
        missing = self.dangling_references()
        if missing:
            raise MissingDependency(missing)

    # ── 环检测 ──

    def detect_cycles(self) -> list[str] | None:
        """返回首个环（插入顺序出发），无环返回 None；悬空边忽略"""
        cycle = find_cycle(self._order, self._edges)
        if cycle:
            log.debug("依赖图存在环", cycle=cycle)
        return cycle

    def topological_order(self) -> list[str]:
        """
        拓扑序（前置在前）。同层按插入顺序展开，结果确定。

        Raises:
            DependencyCycle: 图中有环
        """
        cycle = self.detect_cycles()
        if cycle:
            raise DependencyCycle(cycle)

        visited: set[str] = set()
        result: list[str] = []
        for start in self._order:
            if start in visited:
                continue
            visited.add(start)
            stack = [(start, iter(self._resolved_edges(start)))]
            while stack:
                node, it = stack[-1]
                nxt = next((d for d in it if d not in visited), None)
                if nxt is None:
                    stack.pop()
                    result.append(node)
                else:
                    visited.add(nxt)
                    stack.append((nxt, iter(self._resolved_edges(nxt))))
        return result

    # ── 关键路径 ──

    def critical_path(self) -> CriticalPath:
        """
        最大权重路径，节点权重 = estimated_hours（缺省按 0）。

        平局规则（依次比较）：总工时更大 → 首节点插入顺序更早 → 尾节点插入顺序更早。

        Raises:
            MissingDependency: 存在悬空引用
            DependencyCycle: 图中有环
        """
        self.check_references()
        order = self.topological_order()
        if not order:
            return CriticalPath(nodes=(), total_hours=0.0)

        # best[node] = (total, start_index, path)，path 以 node 结尾
        best: dict[str, tuple[float, int, tuple[str, ...]]] = {}
        for node in order:
            weight = self._weights[node]
            chosen: tuple[float, int, tuple[str, ...]] | None = None
            for dep in self._edges[node]:
                cand = best[dep]
                if chosen is None or _better(cand, chosen):
                    chosen = cand
            if chosen is None:
                best[node] = (weight, self._index[node], (node,))
            else:
                total, start, path = chosen
                best[node] = (total + weight, start, path + (node,))

        winner: tuple[float, int, tuple[str, ...]] | None = None
        for node in self._order:
            cand = best[node]
            if winner is None or _better(cand, winner, self._index):
                winner = cand

        total, _, path = winner
        return CriticalPath(nodes=path, total_hours=total)

    def max_depth(self) -> int:
        """最长依赖链的节点数（有环或空图返回 0）"""
        if not self._order or self.detect_cycles():
            return 0
        depth: dict[str, int] = {}
        for node in self.topological_order():
            depth[node] = 1 + max((depth[d] for d in self._resolved_edges(node)), default=0)
        return max(depth.values())

    def _resolved_edges(self, node: str) -> list[str]:
        return [d for d in self._edges[node] if d in self._index]


def _better(
    cand: tuple[float, int, tuple[str, ...]],
    current: tuple[float, int, tuple[str, ...]],
    index: Mapping[str, int] | None = None,
) -> bool:
    """cand 是否严格优于 current（平局规则见 critical_path）"""
    if cand[0] != current[0]:
        return cand[0] > current[0]
    if cand[1] != current[1]:
        return cand[1] < current[1]
    if index is not None:
        return index[cand[2][-1]] < index[current[2][-1]]
    return False
