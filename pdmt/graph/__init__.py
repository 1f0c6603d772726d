"""Todo 依赖图分析：悬空引用、环检测、拓扑序、关键路径"""

from pdmt.graph.dependency_graph import CriticalPath, DependencyGraph, find_cycle

__all__ = ["CriticalPath", "DependencyGraph", "find_cycle"]
