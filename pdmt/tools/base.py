"""
工具抽象基类 + 标准化结果

BaseTool 强制约束：
1. name / description / params_model：定义工具 Schema（Pydantic 生成，杜绝手写 dict 出错）
2. run：同步执行核心操作，参数与返回值都是纯数据（dict / list / 标量）

核心流水线是同步的；execute 把 run 放进工作线程，供异步宿主（远程调用层）使用。

ToolResult 标准化：
- status: "success" | "error"
- data: 工具特定的结果数据
- error / detail: 错误描述与结构化上下文（仅 status="error" 时有值）
"""

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from pdmt.config import get_settings
from pdmt.errors import PdmtError


@dataclass
class ToolResult:
    """工具执行标准化结果"""

    status: str  # "success" | "error"
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    detail: dict[str, Any] | None = None

    def to_data(self) -> dict[str, Any]:
        """转为纯数据"""
        if self.status == "error":
            payload: dict[str, Any] = {"status": "error", "error": self.error}
            if self.detail:
                payload["detail"] = self.detail
            return payload
        return {"status": "success", **self.data}

    def to_json(self) -> str:
        return json.dumps(self.to_data(), ensure_ascii=False, default=str)

    @classmethod
    def success(cls, **data: Any) -> "ToolResult":
        """快捷构造成功结果"""
        return cls(status="success", data=data)

    @classmethod
    def fail(cls, error: str, detail: dict[str, Any] | None = None) -> "ToolResult":
        """快捷构造失败结果"""
        return cls(status="error", error=error, detail=detail)


class BaseTool(ABC):
    """工具抽象基类，所有工具必须继承"""

    @property
    @abstractmethod
    def name(self) -> str:
        """工具唯一名称"""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        ...

    @property
    @abstractmethod
    def params_model(self) -> type[BaseModel]:
        """参数 Pydantic Model，用于自动生成 JSON Schema 和参数校验"""
        ...

    @abstractmethod
    def run(self, params: BaseModel) -> ToolResult:
        """同步执行（参数已校验）"""
        ...

    @property
    def timeout_ms(self) -> int:
        """单次执行超时（毫秒），默认取全局配置"""
        return get_settings().TOOL_TIMEOUT_MS

    def call(self, args: dict) -> ToolResult:
        """
        校验参数并同步执行。pdmt 异常转为失败结果（带结构化上下文），其余异常向上抛出。
        """
        try:
            params = self.params_model.model_validate(args)
        except ValidationError as e:
            return ToolResult.fail(f"参数校验失败: {e.errors()[0]['msg']}", {"errors": e.errors(include_url=False)})
        try:
            return self.run(params)
        except PdmtError as e:
            return ToolResult.fail(e.message, e.to_dict())

    async def execute(self, args: dict) -> ToolResult:
        """在工作线程中执行，调用方只会拿到完整结果"""
        return await asyncio.to_thread(self.call, args)

    def schema(self) -> dict:
        """生成 function calling 格式的 tool schema"""
        json_schema = self.params_model.model_json_schema()

        required = json_schema.get("required", [])

        # 移除 Pydantic 附加的 title 字段
        properties = {}
        for key, prop in json_schema.get("properties", {}).items():
            properties[key] = {k: v for k, v in prop.items() if k != "title"}

        parameters: dict[str, Any] = {"type": "object", "properties": properties, "required": required}
        if "$defs" in json_schema:
            parameters["$defs"] = json_schema["$defs"]

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }
