"""
模板注册中心 + 继承解析器

核心设计：
- 注册单元为 (id, version)，重复注册抛 DuplicateIdentifier（replace=True 视为重新注册）
- resolve(id) 沿 extends 链从根到叶合并，子模板显式出现的字段整体替换父模板（见 template/schemas.py）
- 未指定版本时取该 id 最近注册的版本；extends 引用同样解析到父 id 的最近注册版本
- 继承环与 Todo 依赖环使用同一个三色 DFS（graph.dependency_graph.find_cycle），报告完整环路径

缓存：
- ResolvedTemplate 按 (id, version) 缓存，进程内有效；resolve 返回缓存项的深拷贝，调用方改动 input_schema 等嵌套字段不会污染缓存
- 解析在锁内完成：同一 key 至多计算一次，并发请求读取首个写入的结果
- 注册 / 重新注册某个 id 时，失效该 id 以及 lineage 中包含该 id 的所有缓存项
"""

from __future__ import annotations

import copy
import threading

import structlog
from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError
from pydantic import BaseModel

from pdmt.config import get_settings
from pdmt.errors import (
    DuplicateIdentifier,
    InheritanceCycle,
    InvalidDefinition,
    LimitExceeded,
    TemplateNotFound,
)
from pdmt.graph.dependency_graph import find_cycle
from pdmt.template.schemas import (
    MERGEABLE_FIELDS,
    ResolvedTemplate,
    TemplateDefinition,
    check_template_id,
)

log = structlog.get_logger()


class TemplateStore:
    """模板注册中心（线程安全）"""

    def __init__(self) -> None:
        self._definitions: dict[tuple[str, str], TemplateDefinition] = {}
        # id → 已注册版本（按注册顺序，末尾为最新）
        self._versions: dict[str, list[str]] = {}
        self._cache: dict[tuple[str, str], ResolvedTemplate] = {}
        self._lock = threading.RLock()

    # ── 注册 ──

    def register(self, definition: TemplateDefinition, replace: bool = False) -> None:
        """
        注册模板定义。

        Raises:
            InvalidDefinition: 定义本身不合法
            LimitExceeded: 模板正文超过 MAX_TEMPLATE_SIZE
            DuplicateIdentifier: id+version 已存在且 replace=False
        """
        _check_definition(definition)

        with self._lock:
            key = definition.key
            if key in self._definitions and not replace:
                raise DuplicateIdentifier(definition.id, definition.version)

            self._definitions[key] = definition
            versions = self._versions.setdefault(definition.id, [])
            if definition.version in versions:
                versions.remove(definition.version)
            versions.append(definition.version)
            dropped = self._invalidate(definition.id)

        log.info(
            "模板已注册",
            template_id=definition.id,
            version=definition.version,
            extends=definition.extends,
            replaced=replace,
            invalidated=dropped,
        )

    def _invalidate(self, template_id: str) -> int:
        """失效该 id 及所有以它为祖先的缓存项（调用方持锁）"""
        stale = [key for key, resolved in self._cache.items() if template_id in resolved.lineage]
        for key in stale:
            del self._cache[key]
        return len(stale)

    # ── 查询 ──

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._versions

    def get(self, template_id: str, version: str | None = None) -> TemplateDefinition:
        """获取原始定义（未合并）"""
        with self._lock:
            return self._definitions[self._key(template_id, version)]

    def list_templates(self) -> list[tuple[str, str]]:
        """所有 (id, 最新版本)，按 id 排序"""
        with self._lock:
            return sorted((tid, versions[-1]) for tid, versions in self._versions.items())

    def _key(self, template_id: str, version: str | None) -> tuple[str, str]:
        versions = self._versions.get(template_id)
        if not versions:
            raise TemplateNotFound(template_id, version)
        if version is None:
            return (template_id, versions[-1])
        if version not in versions:
            raise TemplateNotFound(template_id, version)
        return (template_id, version)

    # ── 继承解析 ──

    def resolve(self, template_id: str, version: str | None = None) -> ResolvedTemplate:
        """
        解析模板继承链并合并，结果缓存，每次返回缓存项的深拷贝。

        Raises:
            TemplateNotFound: 模板或其祖先未注册
            InheritanceCycle: extends 链成环（携带完整环路径）
        """
        with self._lock:
            key = self._key(template_id, version)
            cached = self._cache.get(key)
            if cached is not None:
                return cached.model_copy(deep=True)

            chain = self._ancestor_chain(key)
            resolved = _merge(chain)
            if resolved.validation.deterministic_only and not resolved.is_deterministic():
                raise InvalidDefinition(
                    resolved.id,
                    "deterministic_only=True，但合并后的 provider / temperature 不是确定性配置",
                )
            self._cache[key] = resolved
            result = resolved.model_copy(deep=True)

        log.debug(
            "模板继承解析完成",
            template_id=resolved.id,
            version=resolved.version,
            lineage=list(resolved.lineage),
        )
        return result

    def _ancestor_chain(self, key: tuple[str, str]) -> list[TemplateDefinition]:
        """从叶到根收集定义，返回根 → 叶顺序（调用方持锁）"""
        definition = self._definitions[key]
        edges: dict[str, list[str]] = {}
        order: list[str] = []
        chain: list[TemplateDefinition] = []

        current: TemplateDefinition | None = definition
        while current is not None:
            if current.id in edges:
                # 重访同一 id：用与依赖图相同的三色 DFS 还原完整环路径
                cycle = find_cycle(order, edges) or [current.id, current.id]
                raise InheritanceCycle(cycle)

            order.append(current.id)
            chain.append(current)
            parent_id = current.extends
            edges[current.id] = [parent_id] if parent_id else []

            current = self._definitions[self._key(parent_id, None)] if parent_id else None

        chain.reverse()
        return chain


def _merge(chain: list[TemplateDefinition]) -> ResolvedTemplate:
    """根 → 叶逐层合并：显式出现的字段整体替换"""
    root = chain[0]
    merged = {name: getattr(root, name) for name in MERGEABLE_FIELDS}
    for definition in chain[1:]:
        for name in definition.explicit_fields():
            merged[name] = getattr(definition, name)

    leaf = chain[-1]
    return ResolvedTemplate(
        id=leaf.id,
        version=leaf.version,
        lineage=tuple(d.id for d in chain),
        **{name: _copy(value) for name, value in merged.items()},
    )


def _copy(value):
    """深拷贝，切断与原始定义的共享引用"""
    if isinstance(value, BaseModel):
        return value.model_copy(deep=True)
    return copy.deepcopy(value)


def _check_definition(definition: TemplateDefinition) -> None:
    """注册前的定义检查"""
    settings = get_settings()

    reason = check_template_id(definition.id, settings.MAX_TEMPLATE_ID_LENGTH)
    if reason:
        raise InvalidDefinition(definition.id or "<empty>", reason)
    if definition.extends is not None:
        reason = check_template_id(definition.extends, settings.MAX_TEMPLATE_ID_LENGTH)
        if reason:
            raise InvalidDefinition(definition.id, f"extends: {reason}")
    if not definition.version:
        raise InvalidDefinition(definition.id, "版本号不能为空")
    if "body" in definition.model_fields_set or definition.extends is None:
        if not definition.body:
            raise InvalidDefinition(definition.id, "模板正文不能为空")

    size = len(definition.body.encode("utf-8"))
    if size > settings.MAX_TEMPLATE_SIZE:
        raise LimitExceeded("模板正文大小（字节）", size, settings.MAX_TEMPLATE_SIZE)

    if "input_schema" in definition.model_fields_set or definition.extends is None:
        if definition.input_schema.get("type", "object") != "object":
            raise InvalidDefinition(definition.id, "input_schema 顶层必须是 object")
        try:
            Draft7Validator.check_schema(definition.input_schema)
        except SchemaError as e:
            raise InvalidDefinition(definition.id, f"input_schema 非法: {e.message}") from e

    output_schema = definition.output_schema.schema_
    if output_schema is not None:
        try:
            Draft7Validator.check_schema(output_schema)
        except SchemaError as e:
            raise InvalidDefinition(definition.id, f"output_schema.schema 非法: {e.message}") from e
