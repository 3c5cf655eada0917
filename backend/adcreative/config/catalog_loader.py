"""
格式目录加载器 - 读取 format_catalog.yaml

职责：
- 解析YAML并提供类型安全访问（平台 → 分类 → 格式）
- 分类级 maxSizeKB / fileTypes 向格式继承
- 校验 (platform, category, width, height) 唯一
- 缓存加载结果（避免重复解析）

使用方式：
    catalog = CatalogLoader.load()
    fmt = catalog.get_format("google-display-300x250")
    formats = catalog.select(["sklik/bannery", "google-display-320x50"])

测试要点：
- test_load_bundled_catalog: 内置目录可加载
- test_category_inheritance: 分类值继承
- test_duplicate_dimensions_rejected: 重复尺寸报错
- test_select: 选择器解析
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterator

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..interfaces import CatalogError
from ..models import CategoryType, FormatCategory, FormatSpec, Platform, SafeZone

logger = logging.getLogger(__name__)

BUNDLED_CATALOG_PATH = Path(__file__).with_name("format_catalog.yaml")


def make_format_id(platform_id: str, category_id: str, width: int, height: int) -> str:
    """格式 id：<platform>-<category>-<W>x<H>"""
    return f"{platform_id}-{category_id}-{width}x{height}"


class FormatCatalog(BaseModel):
    """格式目录（format_catalog.yaml 的结构化表示）"""
    schema_version: str
    platforms: dict[str, Platform] = Field(default_factory=dict)

    model_config = {"frozen": True}

    # === 便捷访问方法 ===

    def iter_formats(self) -> Iterator[FormatSpec]:
        """按目录顺序遍历全部格式"""
        for platform in self.platforms.values():
            for category in platform.categories.values():
                yield from category.formats

    def list_formats(self, renderable_only: bool = False) -> list[FormatSpec]:
        return [f for f in self.iter_formats() if f.is_renderable or not renderable_only]

    def get_platform(self, platform_id: str) -> Platform:
        try:
            return self.platforms[platform_id]
        except KeyError:
            raise CatalogError(f"Unknown platform: {platform_id}") from None

    def get_category(self, platform_id: str, category_id: str) -> FormatCategory:
        platform = self.get_platform(platform_id)
        try:
            return platform.categories[category_id]
        except KeyError:
            raise CatalogError(f"Unknown category: {platform_id}/{category_id}") from None

    def get_format(self, format_id: str) -> FormatSpec:
        """按 id 查找格式"""
        for fmt in self.iter_formats():
            if fmt.id == format_id:
                return fmt
        raise CatalogError(f"Unknown format: {format_id}")

    def find(self, platform_id: str, category_id: str, width: int, height: int) -> FormatSpec | None:
        """按尺寸查找格式"""
        category = self.get_category(platform_id, category_id)
        for fmt in category.formats:
            if fmt.width == width and fmt.height == height:
                return fmt
        return None

    def formats_with_safe_zones(self) -> list[FormatSpec]:
        return [f for f in self.iter_formats() if f.safe_zone is not None]

    def select(self, selectors: list[str]) -> list[FormatSpec]:
        """
        解析格式选择器（保持首次出现顺序，去重）

        支持：
        - 格式 id: google-display-300x250
        - 平台: sklik
        - 分类: sklik/bannery
        """
        selected: dict[str, FormatSpec] = {}
        for selector in selectors:
            selector = selector.strip()
            if not selector:
                continue
            if "/" in selector:
                platform_id, category_id = selector.split("/", 1)
                matches = self.get_category(platform_id, category_id).formats
            elif selector in self.platforms:
                matches = [
                    f for c in self.platforms[selector].categories.values() for f in c.formats
                ]
            else:
                matches = [self.get_format(selector)]
            for fmt in matches:
                selected.setdefault(fmt.id, fmt)
        return list(selected.values())


def _parse_safe_zone(raw: dict[str, Any] | None) -> SafeZone | None:
    if not raw:
        return None
    return SafeZone(
        top=raw.get("top", 0),
        bottom=raw.get("bottom", 0),
        left=raw.get("left", 0),
        right=raw.get("right", 0),
        center_width=raw.get("centerWidth"),
        visible_height=raw.get("visibleHeight"),
        description=raw.get("description", ""),
    )


def _parse_category(platform_id: str, category_id: str, raw: dict[str, Any]) -> FormatCategory:
    category_type = CategoryType(raw.get("type", "image"))
    max_size_kb = raw.get("maxSizeKB")
    file_types = [str(t).lower() for t in raw.get("fileTypes", [])]

    formats: list[FormatSpec] = []
    seen: set[tuple[int, int]] = set()
    for item in raw.get("formats", []):
        width, height = int(item["width"]), int(item["height"])
        if (width, height) in seen:
            raise CatalogError(
                f"Duplicate format {width}x{height} in {platform_id}/{category_id}"
            )
        seen.add((width, height))

        fmt_type = CategoryType(item.get("type", category_type.value))
        formats.append(
            FormatSpec(
                id=make_format_id(platform_id, category_id, width, height),
                platform_id=platform_id,
                category_id=category_id,
                name=item.get("name", f"{width}x{height}"),
                width=width,
                height=height,
                max_size_kb=item.get("maxSizeKB", max_size_kb),
                allowed_file_types=[str(t).lower() for t in item.get("fileTypes", file_types)],
                category_type=fmt_type,
                safe_zone=_parse_safe_zone(item.get("safeZone")),
                is_video=item.get("isVideo", fmt_type == CategoryType.VIDEO),
                ratio=item.get("ratio"),
                notes=item.get("notes"),
            )
        )

    return FormatCategory(
        id=category_id,
        platform_id=platform_id,
        name=raw.get("name", category_id),
        type=category_type,
        max_size_kb=max_size_kb,
        file_types=file_types,
        description=raw.get("description", ""),
        docs_url=raw.get("docsUrl"),
        formats=formats,
    )


def parse_catalog(data: dict[str, Any]) -> FormatCatalog:
    """YAML 字典 -> FormatCatalog"""
    if not isinstance(data, dict) or "platforms" not in data:
        raise CatalogError("Catalog must contain a 'platforms' mapping")

    try:
        platforms: dict[str, Platform] = {}
        for platform_id, raw_platform in (data.get("platforms") or {}).items():
            categories = {
                category_id: _parse_category(platform_id, category_id, raw_category)
                for category_id, raw_category in (raw_platform.get("categories") or {}).items()
            }
            platforms[platform_id] = Platform(
                id=platform_id,
                name=raw_platform.get("name", platform_id),
                categories=categories,
            )
        return FormatCatalog(
            schema_version=str(data.get("schema_version", "1.0")),
            platforms=platforms,
        )
    except (ValidationError, KeyError, TypeError, ValueError) as e:
        raise CatalogError(f"Invalid format catalog: {e}") from e


class CatalogLoader:
    """目录加载器（单例模式+缓存）"""

    _instance: CatalogLoader | None = None

    def __new__(cls) -> CatalogLoader:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    @lru_cache(maxsize=4)
    def load(cls, catalog_path: str | Path | None = None) -> FormatCatalog:
        """加载并缓存目录"""
        path = Path(catalog_path) if catalog_path else BUNDLED_CATALOG_PATH
        if not path.exists():
            raise CatalogError(f"Catalog file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        catalog = parse_catalog(data)
        logger.info(
            "Loaded format catalog %s (%d formats)", path.name, sum(1 for _ in catalog.iter_formats())
        )
        return catalog

    @classmethod
    def reload(cls, catalog_path: str | Path | None = None) -> FormatCatalog:
        """强制重新加载（清除缓存）"""
        cls.load.cache_clear()
        return cls.load(catalog_path)


# 便捷函数
def load_catalog(catalog_path: str | Path | None = None) -> FormatCatalog:
    """加载格式目录"""
    return CatalogLoader.load(catalog_path)
