"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(catalog, photo_bytes):
        fmt = catalog.get_format("google-display-300x250")
"""

from __future__ import annotations

import io
import tempfile
import uuid
from pathlib import Path
from typing import Generator

import pytest
from PIL import Image, ImageDraw

from adcreative.config import FormatCatalog, RuntimeConfig, load_catalog
from adcreative.layout import FontMeasurer
from adcreative.models import (
    BrandKit,
    ExportJob,
    FormatSpec,
    LogoRules,
    TextOverlaySpec,
)
from adcreative.render import ImageDecoder


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def catalog() -> FormatCatalog:
    """内置格式目录（会话级别缓存）"""
    return load_catalog()


@pytest.fixture
def runtime_config(temp_dir: Path) -> RuntimeConfig:
    """运行期配置（存储目录指向临时目录）"""
    return RuntimeConfig(storage_dir=temp_dir / "storage")


@pytest.fixture(scope="session")
def measurer() -> FontMeasurer:
    """默认字体测量器"""
    return FontMeasurer()


@pytest.fixture(scope="session")
def decoder() -> ImageDecoder:
    return ImageDecoder()


def make_format(
    width: int,
    height: int,
    max_size_kb: float = 150,
    file_types: list[str] | None = None,
    **kwargs,
) -> FormatSpec:
    """构造测试用格式"""
    return FormatSpec(
        id=kwargs.pop("id", f"test-fmt-{width}x{height}"),
        platform_id=kwargs.pop("platform_id", "test"),
        category_id=kwargs.pop("category_id", "fmt"),
        name=kwargs.pop("name", f"{width}x{height}"),
        width=width,
        height=height,
        max_size_kb=max_size_kb,
        allowed_file_types=file_types if file_types is not None else ["jpg", "png"],
        **kwargs,
    )


# ============================================================================
# 图片 Fixtures
# ============================================================================

def make_photo(width: int = 1600, height: int = 1000, fmt: str = "JPEG") -> bytes:
    """生成类照片的渐变图（带若干色块）"""
    image = Image.new("RGB", (width, height))
    draw = ImageDraw.Draw(image)
    for y in range(height):
        shade = int(40 + 160 * y / height)
        draw.line([(0, y), (width, y)], fill=(shade, int(shade * 0.7), 255 - shade))
    draw.ellipse((width * 0.3, height * 0.2, width * 0.7, height * 0.8), fill=(230, 180, 60))
    draw.rectangle((width * 0.05, height * 0.6, width * 0.25, height * 0.95), fill=(20, 120, 40))
    buf = io.BytesIO()
    image.save(buf, format=fmt, quality=90)
    return buf.getvalue()


def make_logo(color: tuple[int, int, int, int], size: tuple[int, int] = (200, 100)) -> bytes:
    """纯色透明 PNG Logo"""
    image = Image.new("RGBA", size, (0, 0, 0, 0))
    ImageDraw.Draw(image).rectangle((10, 10, size[0] - 10, size[1] - 10), fill=color)
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture(scope="session")
def format_factory():
    """格式工厂：format_factory(width, height, max_size_kb=..., file_types=...)"""
    return make_format


@pytest.fixture(scope="session")
def photo_factory():
    """源图工厂：photo_factory(width, height, fmt="JPEG")"""
    return make_photo


@pytest.fixture(scope="session")
def photo_bytes() -> bytes:
    """1600x1000 示例源图"""
    return make_photo()


@pytest.fixture(scope="session")
def corrupted_bytes() -> bytes:
    """无法解码的数据"""
    return b"\xff\xd8\xff\xe0 definitely not a jpeg"


@pytest.fixture
def overlay() -> TextOverlaySpec:
    """示例文案"""
    return TextOverlaySpec(
        headline="Black Friday Sleva 50%",
        subheadline="Jen do neděle na celý sortiment",
        cta="Koupit",
    )


@pytest.fixture
def brand() -> BrandKit:
    """不带 Logo 的品牌套件"""
    return BrandKit(name="Test Brand", primary_color="#ff6600", tagline="Nejlepší ceny")


@pytest.fixture
def brand_with_logos() -> BrandKit:
    """带深/浅色 Logo 且自动应用的品牌套件"""
    return BrandKit(
        name="Logo Brand",
        logo_main=make_logo((255, 102, 0, 255)),
        logo_light=make_logo((255, 255, 255, 255)),
        logo_dark=make_logo((0, 0, 0, 255)),
        logo_rules=LogoRules(auto_apply=True),
    )


# ============================================================================
# Job / 文件 Fixtures
# ============================================================================

@pytest.fixture
def temp_job() -> Generator[ExportJob, None, None]:
    """临时任务（自动清理）"""
    job = ExportJob(job_id=str(uuid.uuid4()))
    with tempfile.TemporaryDirectory() as tmpdir:
        job.work_dir = Path(tmpdir)
        yield job


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
