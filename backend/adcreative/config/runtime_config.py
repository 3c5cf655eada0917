"""
运行期配置 - 读取 config/runtime.yaml

职责：
- 加载渲染/HTML5/导出/并发等运行参数
- 提供环境变量覆盖机制（ADCREATIVE_ 前缀，嵌套用 __）
- 类型安全的配置访问
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DEFAULT_RUNTIME_PATH = Path("config/runtime.yaml")

DEFAULT_BANNED_APIS = [
    "window.open",
    "mraid.open",
    "Enabler.exit",
    "eval(",
    "Function(",
    "location.href",
    "document.write",
]


class RenderConfig(BaseModel):
    """位图渲染配置"""

    jpeg_quality: float = Field(0.9, gt=0, le=1)
    auto_compress: bool = True
    min_jpeg_quality: float = Field(0.3, gt=0, le=1)
    quality_step: float = Field(0.05, gt=0, le=0.5)
    background_color: str = "#1a1a1a"
    debug_safe_zone: bool = False
    font_path: str | None = None
    bold_font_path: str | None = None


class Html5Config(BaseModel):
    """HTML5 生成配置"""

    animation_library_url: str = "https://cdnjs.cloudflare.com/ajax/libs/gsap/3.12.5/gsap.min.js"
    default_animation: str = "fade-in"
    duration: float = Field(1.0, gt=0)
    loop: bool = True
    code_budget_kb: float = Field(200, gt=0)
    banned_apis: list[str] = Field(default_factory=lambda: list(DEFAULT_BANNED_APIS))


class ExportConfig(BaseModel):
    """导出/打包配置"""

    failure_policy: Literal["exclude", "include"] = "exclude"
    write_csv: bool = False
    campaign_name: str = "AdCreative Studio Export"
    ad_group_name: str = "Ad Group 1"
    landing_url: str = ""


class ConcurrencyConfig(BaseModel):
    """并发配置"""

    max_workers: int = Field(1, ge=1)


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    # 基础路径
    storage_dir: Path = Path("storage")
    catalog_path: Path | None = None   # None 时使用包内 format_catalog.yaml

    # 各子配置
    render: RenderConfig = Field(default_factory=RenderConfig)
    html5: Html5Config = Field(default_factory=Html5Config)
    export: ExportConfig = Field(default_factory=ExportConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "ADCREATIVE_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})
        paths = cls._extract(runtime_opts, "paths")

        config = cls(
            render=RenderConfig(**cls._extract(runtime_opts, "render")),
            html5=Html5Config(**cls._extract(runtime_opts, "html5")),
            export=ExportConfig(**cls._extract(runtime_opts, "export")),
            concurrency=ConcurrencyConfig(**cls._extract(runtime_opts, "concurrency")),
            logging=LoggingConfig(**cls._extract(runtime_opts, "logging")),
            **paths,
        )

        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """解析相对路径配置为绝对路径（基于配置文件所在目录）"""
        if not self.storage_dir.is_absolute():
            self.storage_dir = (base_dir / self.storage_dir).resolve()
        if self.catalog_path and not self.catalog_path.is_absolute():
            self.catalog_path = (base_dir / self.catalog_path).resolve()
        for attr in ("font_path", "bold_font_path"):
            value = getattr(self.render, attr)
            if value and not Path(value).is_absolute():
                setattr(self.render, attr, str((base_dir / value).resolve()))

    def get_job_dir(self, job_id: str) -> Path:
        """获取任务工作目录"""
        return self.storage_dir / "jobs" / job_id

    def ensure_dirs(self) -> None:
        """确保必要目录存在"""
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        (self.storage_dir / "jobs").mkdir(exist_ok=True)


# 全局配置实例
_config: RuntimeConfig | None = None


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_yaml(DEFAULT_RUNTIME_PATH)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or DEFAULT_RUNTIME_PATH
    _config = RuntimeConfig.from_yaml(path)
    return _config
