"""
宽松模式 JSON 修复器：只用于外部（LLM 等）产出的文本，确定性渲染结果不走这里

处理常见问题：
- Markdown 代码块包裹 (```json ... ```)
- 多余文字说明 ("以下是结果：{...}")
- 尾部多余逗号、缺失引号、单引号等（由 json-repair 处理）
"""

import json
import re

import structlog
from json_repair import repair_json

from pdmt.errors import ParseError

log = structlog.get_logger()

# 匹配第一个 JSON 对象 { ... } 或数组 [ ... ]
_JSON_VALUE_RE = re.compile(r"\{.*\}|\[.*\]", re.DOTALL)


def strip_fences(raw: str) -> str:
    """去除 Markdown 代码块标记（```yaml / ```json / ```）"""
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = [line for line in cleaned.split("\n") if not line.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned


class JsonRepairer:
    """修复畸形 JSON"""

    def repair(self, raw: str) -> dict | list:
        """
        修复流程：
        1. 去除 Markdown 代码块标记
        2. 提取第一个 JSON 对象 / 数组
        3. json-repair 修复
        4. json.loads 解析

        Raises:
            ParseError: 修复后仍然无法解析为 JSON 对象或数组
        """
        cleaned = strip_fences(raw)
        match = _JSON_VALUE_RE.search(cleaned)
        if match:
            cleaned = match.group()
        repaired = repair_json(cleaned, return_objects=False)

        try:
            data = json.loads(repaired)
        except json.JSONDecodeError as e:
            log.warning("JSON 修复后仍然解析失败", raw_preview=raw[:200], error=str(e))
            raise ParseError(f"JSON 修复失败: {e.msg}", line=e.lineno, column=e.colno, fmt="json") from e

        if not isinstance(data, (dict, list)):
            raise ParseError(f"期望 JSON 对象或数组，实际得到 {type(data).__name__}", fmt="json")

        if repaired != cleaned:
            log.info("宽松模式修复了畸形 JSON", raw_preview=raw[:200])
        return data
