"""
位图合成单元测试
"""

import io

import pytest
from PIL import Image

from adcreative.config.runtime_config import RenderConfig
from adcreative.interfaces import CropError, IssueCode, UnsupportedOutputError
from adcreative.layout import build_render_commands, place_logo_clear_of
from adcreative.models import (
    Anchor,
    BrandKit,
    DrawImage,
    DrawText,
    FillRect,
    LogoPlacement,
    LogoRules,
    LogoVariant,
    Rect,
    RenderInput,
    TextOverlaySpec,
)
from adcreative.render import ImageDecoder, PillowRenderer, RasterComposer, select_logo
from adcreative.render.raster import logo_overlap_issues, parse_color, relative_luminance


def _solid(color: tuple[int, int, int], size=(800, 600)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def composer() -> RasterComposer:
    return RasterComposer(RenderConfig())


@pytest.fixture
def source(decoder: ImageDecoder, photo_bytes: bytes, overlay: TextOverlaySpec, brand: BrandKit) -> RenderInput:
    return RenderInput(image=decoder.decode(photo_bytes), overlay=overlay, brand=brand)


class TestDecoder:
    """解码测试"""

    def test_decode_photo(self, decoder, photo_bytes):
        image = decoder.decode(photo_bytes)
        assert (image.width, image.height) == (1600, 1000)
        assert image.image.mode == "RGB"
        assert len(image.content_hash) == 64

    def test_decode_corrupted_raises(self, decoder, corrupted_bytes):
        with pytest.raises(CropError):
            decoder.decode(corrupted_bytes)

    def test_decode_empty_raises(self, decoder):
        with pytest.raises(CropError, match="empty"):
            decoder.decode(b"")

    def test_decode_logo_keeps_alpha(self, decoder, brand_with_logos):
        logo = decoder.decode_logo(brand_with_logos.logo_main)
        assert logo.image.mode == "RGBA"


class TestColors:
    """颜色解析测试"""

    def test_parse_hex(self):
        assert parse_color("#ff6600") == (255, 102, 0, 255)

    def test_parse_rgba_float_alpha(self):
        assert parse_color("rgba(0,0,0,0.8)") == (0, 0, 0, 204)

    def test_luminance(self):
        white = Image.new("RGB", (10, 10), (255, 255, 255))
        black = Image.new("RGB", (10, 10), (0, 0, 0))
        rect = Rect(x=0, y=0, width=10, height=10)
        assert relative_luminance(white, rect) == pytest.approx(1.0)
        assert relative_luminance(black, rect) == pytest.approx(0.0)


class TestPillowRenderer:
    """绘制后端测试"""

    def test_fill_rect(self):
        renderer = PillowRenderer(10, 10)
        renderer.execute([FillRect(rect=Rect(x=0, y=0, width=10, height=10), color="#ff0000")])
        assert renderer.canvas.getpixel((5, 5)) == (255, 0, 0, 255)

    def test_draw_text_changes_pixels(self):
        renderer = PillowRenderer(120, 40)
        renderer.execute([DrawText(text="Sale", x=5, y=5, font_size=24, color="#ffffff")])
        assert renderer.canvas.getbbox() is not None
        assert renderer.canvas.convert("L").getextrema()[1] > 128

    def test_missing_image_raises(self):
        renderer = PillowRenderer(10, 10)
        with pytest.raises(KeyError):
            renderer.execute([DrawImage(image_key="nope", dest=Rect(x=0, y=0, width=10, height=10))])

    def test_command_order(self, catalog, overlay, brand, composer):
        """背景 → 源图 → 文字"""
        fmt = catalog.get_format("google-display-300x250")
        layout = composer.layout_engine.layout(300, 250, overlay)
        commands = build_render_commands(fmt, Rect(x=0, y=0, width=100, height=100), layout, overlay, brand)
        ops = [c.op for c in commands]
        assert ops[:2] == ["fillRect", "drawImage"]
        assert "drawText" in ops
        assert ops.index("drawRoundedRect") < len(ops) - 1


class TestRasterComposer:
    """位图合成测试"""

    def test_compose_medium_rectangle(self, catalog, composer, source):
        """300x250 JPEG 且在体积上限内"""
        fmt = catalog.get_format("google-display-300x250")
        artifact = composer.compose(fmt, source)
        assert artifact.kind == "raster"
        assert artifact.extension == "jpg"
        assert artifact.data[:2] == b"\xff\xd8"
        assert artifact.size_bytes == len(artifact.data)
        assert artifact.size_kb <= fmt.max_size_kb
        assert artifact.quality == pytest.approx(0.9)
        assert artifact.layout is not None and artifact.layout.headline.visible
        with Image.open(io.BytesIO(artifact.data)) as img:
            assert img.size == (300, 250)

    def test_png_when_jpeg_not_allowed(self, format_factory, composer, source):
        fmt = format_factory(300, 250, file_types=["png", "gif"])
        artifact = composer.compose(fmt, source)
        assert artifact.extension == "png"
        assert artifact.data[:8] == b"\x89PNG\r\n\x1a\n"
        assert artifact.quality is None

    def test_auto_compress_steps_quality(self, format_factory, composer, source):
        """超限时质量逐步下降（不低于下限）"""
        fmt = format_factory(600, 500, max_size_kb=1)
        artifact = composer.compose(fmt, source)
        assert artifact.quality < 0.9
        assert artifact.quality >= composer.config.min_jpeg_quality - 1e-9

    def test_no_auto_compress(self, format_factory, source):
        composer = RasterComposer(RenderConfig(auto_compress=False))
        artifact = composer.compose(format_factory(600, 500, max_size_kb=1), source)
        assert artifact.quality == pytest.approx(0.9)

    def test_video_format_unsupported(self, catalog, composer, source):
        with pytest.raises(UnsupportedOutputError):
            composer.compose(catalog.get_format("sklik-video-1920x1080"), source)

    def test_overflow_reported_as_issue(self, format_factory, composer, source):
        overlay = TextOverlaySpec(headline="Velmi dlouhý titulek " * 12, subheadline="a " * 40, cta="Koupit")
        artifact = composer.compose(format_factory(300, 250), source.model_copy(update={"overlay": overlay}))
        codes = [i.code for i in artifact.issues]
        assert IssueCode.LAYOUT_OVERFLOW in codes
        assert all(i.severity == "warning" for i in artifact.issues)

    def test_text_drawn_on_canvas(self, catalog, composer, source):
        """文字层改变画布像素"""
        fmt = catalog.get_format("google-display-300x250")
        with_text, _, _, _ = composer.render_canvas(fmt, source)
        without_text, _, _, _ = composer.render_canvas(fmt, source, include_text=False)
        assert list(with_text.getdata()) != list(without_text.getdata())


class TestLogoSelection:
    """Logo 变体选择测试"""

    def test_logo_variant_by_luminance(self, decoder, brand_with_logos):
        """深色背景选浅色 Logo，浅色背景选深色 Logo"""
        dark = Image.new("RGB", (300, 250), (10, 10, 10))
        light = Image.new("RGB", (300, 250), (245, 245, 245))
        placement_dark, _ = select_logo(dark, 300, 250, brand_with_logos, decoder)
        placement_light, _ = select_logo(light, 300, 250, brand_with_logos, decoder)
        assert placement_dark.variant == LogoVariant.LIGHT
        assert placement_light.variant == LogoVariant.DARK

    def test_logo_placement_bottom_right(self, decoder, brand_with_logos):
        placement, logo = select_logo(Image.new("RGB", (300, 250)), 300, 250, brand_with_logos, decoder)
        rect = placement.rect
        assert rect.width == pytest.approx(250 * 0.12)
        assert rect.right == pytest.approx(300 - 20)
        assert rect.bottom == pytest.approx(250 - 20)
        assert placement.opacity == 1.0

    def test_no_logo_without_auto_apply(self, decoder):
        brand = BrandKit(logo_main=_solid((255, 0, 0)))
        assert select_logo(Image.new("RGB", (300, 250)), 300, 250, brand, decoder) is None

    def test_logo_composited(self, format_factory, composer, decoder, brand_with_logos):
        """黑底上合成浅色 Logo"""
        source = RenderInput(image=decoder.decode(_solid((0, 0, 0))), brand=brand_with_logos)
        canvas, _, _, placement = composer.render_canvas(format_factory(300, 250), source)
        assert placement is not None
        center = (round(placement.rect.x + placement.rect.width / 2), round(placement.rect.y + placement.rect.height / 2))
        assert min(canvas.getpixel(center)[:3]) >= 240

    def test_logo_avoids_text(self, catalog, composer, source, brand_with_logos):
        """文字在右下角时 Logo 换到空闲锚点"""
        overlay = TextOverlaySpec(headline="Black Friday Sleva 50%", cta="Koupit", position=Anchor.BOTTOM_RIGHT)
        fmt = catalog.get_format("google-display-300x250")
        branded = source.model_copy(update={"overlay": overlay, "brand": brand_with_logos})
        artifact = composer.compose(fmt, branded)
        _, _, layout, placement = composer.render_canvas(fmt, branded)
        assert not placement.overlaps_text
        assert not any(placement.rect.intersects(r) for r in layout.occupied_rects)
        assert not [i for i in artifact.issues if i.message.startswith("Logo overlaps")]

    def test_html5_uses_same_logo_surface(self, catalog, composer, source, brand_with_logos):
        """位图与 HTML5 在同一无文字背景上选择 Logo 变体"""
        fmt = catalog.get_format("sklik-html5-300x250")
        branded = source.model_copy(update={"brand": brand_with_logos})
        _, _, layout, placement = composer.render_canvas(fmt, branded)
        background, _, _, _ = composer.render_canvas(fmt, branded, include_text=False, include_logo=False)
        expected, _ = select_logo(background, 300, 250, brand_with_logos, composer.decoder, layout)
        assert placement == expected


class TestLogoAnchors:
    """Logo 锚点避让测试"""

    def test_preferred_anchor_when_free(self):
        rect, anchor, overlaps = place_logo_clear_of(300, 250, 200, 100, LogoRules(), [])
        assert anchor == Anchor.BOTTOM_RIGHT
        assert (rect.x, rect.y, rect.width, rect.height) == (250, 215, 30, 15)
        assert not overlaps

    def test_nearest_free_anchor(self):
        """首选位置被占用时取中心距离最近的空闲锚点"""
        occupied = [Rect(x=200, y=180, width=100, height=70)]
        rect, anchor, overlaps = place_logo_clear_of(300, 250, 200, 100, LogoRules(), occupied)
        assert anchor == Anchor.CENTER_RIGHT
        assert rect.y == pytest.approx(117.5)
        assert not overlaps

    def test_custom_position_prefers_bottom_right(self):
        rules = LogoRules(position=Anchor.CUSTOM)
        _, anchor, _ = place_logo_clear_of(300, 250, 200, 100, rules, [])
        assert anchor == Anchor.BOTTOM_RIGHT

    def test_no_free_anchor(self):
        """所有锚点都被占用时保留首选位置并标记重叠"""
        occupied = [Rect(x=0, y=0, width=300, height=250)]
        rect, anchor, overlaps = place_logo_clear_of(300, 250, 200, 100, LogoRules(), occupied)
        assert anchor == Anchor.BOTTOM_RIGHT
        assert rect.right == pytest.approx(280)
        assert overlaps

    def test_overlap_reported_as_layout_overflow(self):
        rect = Rect(x=250, y=215, width=30, height=15)
        issues = logo_overlap_issues(LogoPlacement(variant=LogoVariant.MAIN, rect=rect, overlaps_text=True))
        assert [(i.code, i.severity) for i in issues] == [(IssueCode.LAYOUT_OVERFLOW, "warning")]
        assert logo_overlap_issues(LogoPlacement(variant=LogoVariant.MAIN, rect=rect)) == []
        assert logo_overlap_issues(None) == []
