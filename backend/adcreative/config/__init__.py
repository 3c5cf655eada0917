"""
配置层 - 加载格式目录与运行期配置

职责：
- 加载 format_catalog.yaml（平台/分类/格式约束）
- 加载 config/runtime.yaml（运行期参数）
- 提供类型安全的配置访问接口
"""

from .catalog_loader import CatalogLoader, FormatCatalog, load_catalog, make_format_id
from .runtime_config import RuntimeConfig, get_config, reload_config

__all__ = [
    "CatalogLoader",
    "FormatCatalog",
    "load_catalog",
    "make_format_id",
    "RuntimeConfig",
    "get_config",
    "reload_config",
]
