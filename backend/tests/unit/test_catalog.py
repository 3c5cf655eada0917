"""
格式目录单元测试
"""

import pytest
import yaml

from adcreative.config import CatalogLoader, FormatCatalog, load_catalog, make_format_id
from adcreative.config.catalog_loader import parse_catalog
from adcreative.interfaces import CatalogError
from adcreative.models import CategoryType


class TestBundledCatalog:
    """内置目录测试"""

    def test_load_bundled_catalog(self, catalog: FormatCatalog):
        """测试加载内置目录"""
        assert catalog.schema_version == "1.0"
        assert set(catalog.platforms) == {"sklik", "google"}
        assert len(catalog.list_formats()) > 40

    def test_loader_is_cached(self):
        """重复加载返回同一实例"""
        assert load_catalog() is load_catalog()

    def test_format_ids_unique(self, catalog: FormatCatalog):
        """格式 id 全局唯一"""
        ids = [f.id for f in catalog.iter_formats()]
        assert len(ids) == len(set(ids))

    def test_medium_rectangle(self, catalog: FormatCatalog):
        """Google 300x250 继承分类上限"""
        fmt = catalog.get_format("google-display-300x250")
        assert fmt.name == "Medium Rectangle"
        assert fmt.max_size_kb == 150
        assert fmt.allows("jpg")
        assert fmt.allows("JPEG")
        assert fmt.safe_zone is None

    def test_billboard_safe_zone(self, catalog: FormatCatalog):
        """Sklik 970x310 安全区"""
        fmt = catalog.get_format("sklik-bannery-970x310")
        assert fmt.safe_zone is not None
        assert "1068px" in fmt.safe_zone.description
        visible = fmt.safe_zone.visible_rect(fmt.width, fmt.height)
        assert (visible.x, visible.y, visible.width, visible.height) == (135, 30, 700, 250)

    def test_video_formats_not_renderable(self, catalog: FormatCatalog):
        """视频格式不可渲染，缩略图可渲染"""
        video = catalog.get_format("google-youtube-1920x1080")
        thumbnail = catalog.get_format("google-youtube-1280x720")
        assert video.is_video and not video.is_renderable
        assert thumbnail.is_renderable
        assert thumbnail.category_type == CategoryType.IMAGE
        assert thumbnail.max_size_kb == 2048
        assert all(f.is_renderable for f in catalog.list_formats(renderable_only=True))

    def test_html5_category(self, catalog: FormatCatalog):
        """HTML5 分类格式"""
        formats = catalog.get_category("sklik", "html5").formats
        assert formats
        assert all(f.is_html5 for f in formats)

    def test_find_by_dimensions(self, catalog: FormatCatalog):
        """按尺寸查找"""
        fmt = catalog.find("google", "display", 320, 50)
        assert fmt is not None
        assert fmt.name == "Mobile Leaderboard"
        assert catalog.find("google", "display", 1, 1) is None

    def test_unknown_lookups_raise(self, catalog: FormatCatalog):
        """未知平台/分类/格式报 CatalogError"""
        with pytest.raises(CatalogError):
            catalog.get_platform("meta")
        with pytest.raises(CatalogError):
            catalog.get_category("google", "stories")
        with pytest.raises(CatalogError):
            catalog.get_format("google-display-1x1")

    def test_formats_with_safe_zones(self, catalog: FormatCatalog):
        """带安全区的格式"""
        ids = {f.id for f in catalog.formats_with_safe_zones()}
        assert "sklik-bannery-970x310" in ids


class TestSelect:
    """格式选择器测试"""

    def test_select_by_id(self, catalog: FormatCatalog):
        formats = catalog.select(["google-display-300x250"])
        assert [f.id for f in formats] == ["google-display-300x250"]

    def test_select_category(self, catalog: FormatCatalog):
        formats = catalog.select(["google/display"])
        assert len(formats) == len(catalog.get_category("google", "display").formats)

    def test_select_platform(self, catalog: FormatCatalog):
        formats = catalog.select(["sklik"])
        assert formats
        assert all(f.platform_id == "sklik" for f in formats)

    def test_select_deduplicates(self, catalog: FormatCatalog):
        """重复选择只保留首次出现"""
        formats = catalog.select(["google-display-320x50", "google/display", " "])
        ids = [f.id for f in formats]
        assert ids[0] == "google-display-320x50"
        assert len(ids) == len(set(ids))


class TestParseCatalog:
    """YAML 解析测试"""

    def _raw(self, formats):
        return {
            "schema_version": "1.0",
            "platforms": {
                "demo": {
                    "name": "Demo",
                    "categories": {
                        "banners": {
                            "name": "Banners",
                            "type": "image",
                            "maxSizeKB": 120,
                            "fileTypes": ["JPG", "png"],
                            "formats": formats,
                        }
                    },
                }
            },
        }

    def test_category_inheritance(self):
        """格式继承分类 maxSizeKB / fileTypes（小写化）"""
        catalog = parse_catalog(self._raw([
            {"width": 300, "height": 250},
            {"width": 728, "height": 90, "maxSizeKB": 60, "fileTypes": ["png"]},
        ]))
        first = catalog.get_format(make_format_id("demo", "banners", 300, 250))
        second = catalog.get_format("demo-banners-728x90")
        assert first.max_size_kb == 120
        assert first.allowed_file_types == ["jpg", "png"]
        assert first.name == "300x250"
        assert second.max_size_kb == 60
        assert second.allowed_file_types == ["png"]

    def test_duplicate_dimensions_rejected(self):
        """同一分类内重复尺寸报错"""
        with pytest.raises(CatalogError, match="Duplicate format 300x250"):
            parse_catalog(self._raw([
                {"width": 300, "height": 250},
                {"width": 300, "height": 250, "name": "Again"},
            ]))

    def test_safe_zone_must_fit(self):
        """安全区超出画布时报错"""
        with pytest.raises(CatalogError):
            parse_catalog(self._raw([
                {"width": 300, "height": 250, "safeZone": {"left": 200, "right": 200}},
            ]))

    def test_missing_platforms_rejected(self):
        with pytest.raises(CatalogError):
            parse_catalog({"schema_version": "1.0"})

    def test_invalid_dimensions_rejected(self):
        with pytest.raises(CatalogError):
            parse_catalog(self._raw([{"width": 0, "height": 250}]))

    def test_load_from_path(self, temp_dir):
        """从自定义路径加载"""
        path = temp_dir / "catalog.yaml"
        path.write_text(yaml.safe_dump(self._raw([{"width": 160, "height": 600}])), encoding="utf-8")
        catalog = CatalogLoader.reload(path)
        assert [f.id for f in catalog.iter_formats()] == ["demo-banners-160x600"]
        CatalogLoader.reload()

    def test_missing_file_raises(self, temp_dir):
        with pytest.raises(CatalogError):
            CatalogLoader.load(temp_dir / "nope.yaml")
