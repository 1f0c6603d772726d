"""
全局配置模块：通过 pydantic-settings 读取 .env 环境变量
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """运行时配置，从 .env 文件 / 环境变量加载"""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── 应用 ──
    ENV: str = "development"  # development | production
    APP_NAME: str = "pdmt"
    LOG_LEVEL: str = "INFO"

    # ── 模板 ──
    MAX_TEMPLATE_SIZE: int = 10 * 1024 * 1024  # 模板正文上限 10MB
    MAX_TEMPLATE_ID_LENGTH: int = 64
    DEFAULT_OUTPUT_FORMAT: Literal["yaml", "json", "markdown", "text"] = "yaml"

    # ── 工具层 ──
    TOOL_TIMEOUT_MS: int = 30_000  # 工具层兜底超时，核心流水线本身不设超时

    @model_validator(mode="after")
    def _check_limits(self) -> "Settings":
        """上限必须为正数"""
        if self.MAX_TEMPLATE_SIZE <= 0 or self.MAX_TEMPLATE_ID_LENGTH <= 0:
            raise ValueError("MAX_TEMPLATE_SIZE / MAX_TEMPLATE_ID_LENGTH 必须 > 0")
        if self.TOOL_TIMEOUT_MS <= 0:
            raise ValueError("TOOL_TIMEOUT_MS 必须 > 0")
        return self


@lru_cache
def get_settings() -> Settings:
    """单例获取配置（带缓存）"""
    return Settings()
