"""
工具注册中心：按名称分发 generate / validate_item_list / list_templates

- 工具名唯一，重复注册抛 DuplicateIdentifier（replace=True 时覆盖）
- execute 只返回纯数据；未知工具、参数错误、超时、未预期异常都折叠为 status="error"
- 兜底超时用 asyncio.wait_for：超时后丢弃结果，工作线程里的核心调用仍会跑完，但产出不会被观察到
- CancelledError 属于宿主的中断信号，原样向上抛
"""

import asyncio
import time

import structlog

from pdmt.errors import DuplicateIdentifier
from pdmt.tools.base import BaseTool, ToolResult

log = structlog.get_logger()


class ToolRegistry:
    """工具注册中心"""

    def __init__(self):
        self._tools: dict[str, BaseTool] = {}

    def register(self, tool: BaseTool, replace: bool = False) -> None:
        if tool.name in self._tools and not replace:
            raise DuplicateIdentifier(tool.name)
        self._tools[tool.name] = tool
        log.debug("工具已注册", tool=tool.name, timeout_ms=tool.timeout_ms)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def get_all_schemas(self) -> list[dict]:
        """全部工具的 function-calling 描述（按注册顺序）"""
        return [tool.schema() for tool in self._tools.values()]

    async def execute(self, name: str, arguments: dict) -> dict:
        """
        执行工具。

        Returns:
            成功: {"status": "success", ...data}
            失败: {"status": "error", "error": "...", "detail": {...}}
        """
        tool = self._tools.get(name)
        if tool is None:
            return ToolResult.fail(f"未知工具: {name}").to_data()

        started = time.perf_counter()
        with structlog.contextvars.bound_contextvars(tool=name):
            try:
                result = await asyncio.wait_for(tool.execute(arguments), timeout=tool.timeout_ms / 1000)
            except asyncio.TimeoutError:
                log.warning("工具执行超时，结果已丢弃", timeout_ms=tool.timeout_ms)
                return ToolResult.fail(f"工具 {name} 执行超时（{tool.timeout_ms}ms）").to_data()
            except asyncio.CancelledError:
                log.warning("工具执行被取消")
                raise
            except Exception as e:
                log.error("工具执行异常", error=str(e), exc_info=True)
                return ToolResult.fail(f"工具执行异常: {e}").to_data()

            log.info(
                "工具执行完成",
                status=result.status,
                elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
            )
        return result.to_data()

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    @property
    def tool_count(self) -> int:
        return len(self._tools)
