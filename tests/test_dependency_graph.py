"""Tests for the dependency graph analyzer."""

from __future__ import annotations

import pytest

from pdmt.errors import DependencyCycle, MissingDependency
from pdmt.graph.dependency_graph import DependencyGraph, find_cycle
from pdmt.todo.schemas import TodoList


def _graph(*entries: tuple) -> DependencyGraph:
    """(id, dependencies[, hours]) → DependencyGraph"""
    items = []
    for entry in entries:
        todo_id, deps = entry[0], entry[1]
        item = {"id": todo_id, "content": f"Implement {todo_id}", "dependencies": list(deps)}
        if len(entry) > 2:
            item["estimated_hours"] = entry[2]
        items.append(item)
    return DependencyGraph(TodoList.from_items(items))


class TestFindCycle:
    def test_no_cycle(self):
        assert find_cycle(["a", "b"], {"a": ["b"], "b": []}) is None

    def test_unknown_nodes_are_ignored(self):
        assert find_cycle(["a"], {"a": ["ghost"]}) is None

    def test_deep_chain_does_not_recurse(self):
        order = [str(i) for i in range(5000)]
        edges = {str(i): [str(i + 1)] for i in range(4999)}
        edges["4999"] = ["0"]
        cycle = find_cycle(order, edges)
        assert cycle[0] == cycle[-1] == "0"
        assert len(cycle) == 5001


class TestCycles:
    def test_three_node_cycle_is_reported_in_order(self):
        graph = _graph(("1", ["3"]), ("2", ["1"]), ("3", ["2"]))
        assert graph.detect_cycles() == ["1", "3", "2", "1"]

    def test_self_dependency(self):
        assert _graph(("a", ["a"])).detect_cycles() == ["a", "a"]

    def test_acyclic(self):
        assert _graph(("a", []), ("b", ["a"]), ("c", ["a", "b"])).detect_cycles() is None

    def test_dangling_edges_do_not_create_cycles(self):
        assert _graph(("a", ["zzz"]), ("b", ["a"])).detect_cycles() is None

    def test_topological_order_raises_on_cycle(self):
        with pytest.raises(DependencyCycle) as exc:
            _graph(("1", ["3"]), ("2", ["1"]), ("3", ["2"])).topological_order()
        assert exc.value.cycle == ["1", "3", "2", "1"]

    def test_topological_order_puts_dependencies_first(self):
        order = _graph(("c", ["b"]), ("b", ["a"]), ("a", [])).topological_order()
        assert order == ["a", "b", "c"]


class TestReferences:
    def test_dangling_references_in_insertion_order(self):
        graph = _graph(("1", []), ("2", ["9", "1", "8"]))
        assert graph.dangling_references() == [("2", "9"), ("2", "8")]

    def test_check_references_lists_everything(self):
        with pytest.raises(MissingDependency) as exc:
            _graph(("1", ["x"]), ("2", ["y"])).check_references()
        assert exc.value.missing == [("1", "x"), ("2", "y")]

    def test_duplicate_ids_union_edges(self):
        graph = _graph(("a", []), ("b", []), ("c", ["a"]), ("c", ["b"]))
        assert graph.nodes == ["a", "b", "c"]
        assert graph.dependencies_of("c") == ["a", "b"]


class TestCriticalPath:
    def test_longest_weighted_path_in_execution_order(self):
        graph = _graph(("A", [], 2.0), ("B", ["A"], 3.0), ("C", ["A"], 1.0), ("D", ["B", "C"], 4.0))
        path = graph.critical_path()
        assert path.nodes == ("A", "B", "D")
        assert path.total_hours == 9.0

    def test_missing_hours_weigh_zero(self):
        graph = _graph(("A", []), ("B", ["A"], 1.0))
        assert graph.critical_path().total_hours == 1.0

    def test_tie_ignores_node_count(self):
        # X 单独 3h，Y→Z 合计 3h：按首节点插入顺序，X 胜出
        graph = _graph(("X", [], 3.0), ("Y", [], 1.0), ("Z", ["Y"], 2.0))
        path = graph.critical_path()
        assert path.nodes == ("X",)
        assert path.total_hours == 3.0

    def test_tie_prefers_earliest_start(self):
        graph = _graph(("P", [], 2.0), ("Q", [], 2.0))
        assert graph.critical_path().nodes == ("P",)

    def test_tie_prefers_earliest_end(self):
        # 两条路径 S→E1、S→E2 总工时相同，起点也相同
        graph = _graph(("S", [], 1.0), ("E1", ["S"], 1.0), ("E2", ["S"], 1.0))
        assert graph.critical_path().nodes == ("S", "E1")

    def test_requires_clean_references(self):
        with pytest.raises(MissingDependency):
            _graph(("a", ["nope"])).critical_path()

    def test_requires_acyclic_graph(self):
        with pytest.raises(DependencyCycle):
            _graph(("a", ["b"]), ("b", ["a"])).critical_path()

    def test_empty_graph(self):
        path = DependencyGraph(TodoList()).critical_path()
        assert path.nodes == ()
        assert len(path) == 0

    def test_max_depth(self):
        graph = _graph(("a", []), ("b", ["a"]), ("c", ["b"]), ("d", []))
        assert graph.max_depth() == 3
