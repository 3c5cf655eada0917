"""
位图合成器 - 基于 Pillow 执行绘制指令并序列化

职责：
1. PillowRenderer: 顺序执行抽象绘制指令
2. RasterComposer: 裁切 → 排版 → 绘制 → Logo → JPEG/PNG 序列化
3. 超限自动降低 JPEG 质量（auto_compress）
4. 按 Logo 区域亮度（不含文字的背景层）选择深/浅色 Logo 变体
5. Logo 避开文字与 CTA；无空闲锚点时报排版溢出

测试要点：
- test_compose_medium_rectangle: 300x250 JPEG 且在体积上限内
- test_png_when_jpeg_not_allowed: 仅允许 PNG 时输出 PNG
- test_auto_compress_steps_quality: 超限时质量逐步下降
- test_logo_variant_by_luminance: 深色背景选浅色 Logo
- test_logo_avoids_text: 文字与 Logo 同锚点时 Logo 换位
"""

from __future__ import annotations

import io
import logging
import re

from PIL import Image, ImageColor, ImageDraw, ImageFilter, ImageStat

from ..config.runtime_config import RenderConfig
from ..interfaces import IComposer, LayoutOverflow, UnsupportedOutputError
from ..layout.commands import (
    LOGO_IMAGE_KEY,
    SOURCE_IMAGE_KEY,
    build_render_commands,
    build_safe_zone_commands,
    build_text_commands,
)
from ..layout.crop import CropResolver
from ..layout.fonts import FontMeasurer
from ..layout.logo import place_logo_clear_of
from ..layout.text_layout import TextLayoutEngine
from ..models import (
    BrandKit,
    DecodedImage,
    DrawCommand,
    DrawImage,
    DrawRoundedRect,
    DrawText,
    FillRect,
    FormatSpec,
    LogoPlacement,
    LogoVariant,
    Rect,
    RenderArtifact,
    RenderInput,
    StrokeRect,
    TextAlign,
    TextLayout,
    ValidationIssue,
)
from .decoder import ImageDecoder

logger = logging.getLogger(__name__)

_RGBA_RE = re.compile(r"rgba\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*,\s*([\d.]+)\s*\)", re.I)

# 亮度低于该值视为深色背景
DARK_BACKGROUND_THRESHOLD = 0.5


def parse_color(value: str) -> tuple[int, int, int, int]:
    """CSS 颜色 -> RGBA（支持 rgba() 浮点透明度）"""
    match = _RGBA_RE.fullmatch(value.strip())
    if match:
        r, g, b, a = match.groups()
        return int(r), int(g), int(b), round(float(a) * 255)
    rgb = ImageColor.getrgb(value)
    if len(rgb) == 4:
        return rgb  # type: ignore[return-value]
    return rgb[0], rgb[1], rgb[2], 255


def _box(rect: Rect) -> tuple[int, int, int, int]:
    return (
        round(rect.x),
        round(rect.y),
        round(rect.x + rect.width),
        round(rect.y + rect.height),
    )


def relative_luminance(image: Image.Image, rect: Rect) -> float:
    """区域平均相对亮度（0-1）"""
    left, top, right, bottom = _box(rect)
    left, top = max(0, left), max(0, top)
    right, bottom = min(image.width, max(right, left + 1)), min(image.height, max(bottom, top + 1))
    region = image.crop((left, top, right, bottom)).convert("RGB")
    r, g, b = ImageStat.Stat(region).mean
    return (0.2126 * r + 0.7152 * g + 0.0722 * b) / 255


def select_logo(
    canvas: Image.Image,
    width: int,
    height: int,
    brand: BrandKit,
    decoder: ImageDecoder,
    layout: TextLayout | None = None,
) -> tuple[LogoPlacement, DecodedImage] | None:
    """
    计算 Logo 摆放并选择变体

    Logo 避开 layout 中的文字与 CTA 矩形；
    auto_select_variant 时按 Logo 区域亮度选择：深色背景用浅色 Logo，反之用深色 Logo；
    缺失的变体回退到主 Logo。canvas 应为不含文字的背景画布
    """
    if not (brand.has_logo and brand.logo_rules.auto_apply):
        return None

    rules = brand.logo_rules
    occupied = layout.occupied_rects if layout is not None else []
    main_data = brand.get_logo(LogoVariant.MAIN)
    reference = decoder.decode_logo(main_data)
    rect, anchor, overlaps = place_logo_clear_of(
        width, height, reference.width, reference.height, rules, occupied
    )

    variant = LogoVariant.MAIN
    logo = reference
    if rules.auto_select_variant:
        luminance = relative_luminance(canvas, rect)
        variant = LogoVariant.LIGHT if luminance < DARK_BACKGROUND_THRESHOLD else LogoVariant.DARK
        data = brand.get_logo(variant)
        if data != main_data:
            logo = decoder.decode_logo(data)
            rect, anchor, overlaps = place_logo_clear_of(
                width, height, logo.width, logo.height, rules, occupied
            )

    if overlaps:
        logger.debug("Logo overlaps text at every anchor (%dx%d)", width, height)
    placement = LogoPlacement(
        variant=variant,
        rect=rect,
        opacity=rules.opacity_percent / 100,
        anchor=anchor,
        overlaps_text=overlaps,
    )
    return placement, logo


def logo_overlap_issues(placement: LogoPlacement | None) -> list[ValidationIssue]:
    """Logo 无法避开文字时给出排版溢出提示"""
    if placement is None or not placement.overlaps_text:
        return []
    return [ValidationIssue.from_error(LayoutOverflow("Logo overlaps text: no free anchor for the logo"))]


class PillowRenderer:
    """Pillow 绘制后端"""

    def __init__(
        self,
        width: int,
        height: int,
        images: dict[str, Image.Image] | None = None,
        measurer: FontMeasurer | None = None,
    ):
        self.canvas = Image.new("RGBA", (width, height), (0, 0, 0, 255))
        self.images = dict(images or {})
        self.measurer = measurer or FontMeasurer()

    def register_image(self, key: str, image: Image.Image) -> None:
        self.images[key] = image

    def execute(self, commands: list[DrawCommand]) -> None:
        """顺序执行绘制指令"""
        for command in commands:
            if isinstance(command, FillRect):
                self._fill_rect(command)
            elif isinstance(command, DrawImage):
                self._draw_image(command)
            elif isinstance(command, DrawText):
                self._draw_text(command)
            elif isinstance(command, DrawRoundedRect):
                self._draw_rounded_rect(command)
            elif isinstance(command, StrokeRect):
                self._stroke_rect(command)
            else:
                raise TypeError(f"Unsupported draw command: {command!r}")

    # === 绘制实现 ===

    def _new_layer(self) -> tuple[Image.Image, ImageDraw.ImageDraw]:
        layer = Image.new("RGBA", self.canvas.size, (0, 0, 0, 0))
        return layer, ImageDraw.Draw(layer)

    def _fill_rect(self, cmd: FillRect) -> None:
        layer, draw = self._new_layer()
        draw.rectangle(_box(cmd.rect), fill=parse_color(cmd.color))
        self.canvas.alpha_composite(layer)

    def _stroke_rect(self, cmd: StrokeRect) -> None:
        layer, draw = self._new_layer()
        draw.rectangle(_box(cmd.rect), outline=parse_color(cmd.color), width=max(1, round(cmd.line_width)))
        self.canvas.alpha_composite(layer)

    def _draw_rounded_rect(self, cmd: DrawRoundedRect) -> None:
        layer, draw = self._new_layer()
        draw.rounded_rectangle(_box(cmd.rect), radius=cmd.radius, fill=parse_color(cmd.color))
        self.canvas.alpha_composite(layer)

    def _draw_image(self, cmd: DrawImage) -> None:
        source = self.images.get(cmd.image_key)
        if source is None:
            raise KeyError(f"Image '{cmd.image_key}' not registered")

        image = source.convert("RGBA")
        if cmd.src is not None:
            image = image.crop(_box(cmd.src))
        left, top, right, bottom = _box(cmd.dest)
        size = (max(1, right - left), max(1, bottom - top))
        if image.size != size:
            image = image.resize(size, Image.Resampling.LANCZOS)
        if cmd.opacity < 1:
            alpha = image.getchannel("A").point(lambda a: round(a * cmd.opacity))
            image.putalpha(alpha)

        layer = Image.new("RGBA", self.canvas.size, (0, 0, 0, 0))
        layer.paste(image, (left, top))
        self.canvas.alpha_composite(layer)

    def _draw_text(self, cmd: DrawText) -> None:
        font = self.measurer.get_font(cmd.font_size, cmd.bold)
        horizontal = {TextAlign.LEFT: "l", TextAlign.CENTER: "m", TextAlign.RIGHT: "r"}[cmd.align]
        vertical = "t" if cmd.baseline == "top" else "m"
        anchor = horizontal + vertical

        if cmd.shadow is not None and cmd.shadow.enabled:
            shadow_layer, shadow_draw = self._new_layer()
            shadow_draw.text(
                (cmd.x + cmd.shadow.offset_x, cmd.y + cmd.shadow.offset_y),
                cmd.text,
                font=font,
                fill=parse_color(cmd.shadow.color),
                anchor=anchor,
            )
            if cmd.shadow.blur > 0:
                shadow_layer = shadow_layer.filter(ImageFilter.GaussianBlur(cmd.shadow.blur / 2))
            self.canvas.alpha_composite(shadow_layer)

        layer, draw = self._new_layer()
        draw.text((cmd.x, cmd.y), cmd.text, font=font, fill=parse_color(cmd.color), anchor=anchor)
        self.canvas.alpha_composite(layer)


class RasterComposer(IComposer):
    """位图合成器"""

    def __init__(
        self,
        config: RenderConfig | None = None,
        measurer: FontMeasurer | None = None,
        decoder: ImageDecoder | None = None,
    ):
        self.config = config or RenderConfig()
        self.measurer = measurer or FontMeasurer(self.config.font_path, self.config.bold_font_path)
        self.decoder = decoder or ImageDecoder()
        self.crop_resolver = CropResolver()
        self.layout_engine = TextLayoutEngine(self.measurer)

    def compute_layout(self, fmt: FormatSpec, source: RenderInput) -> TextLayout | None:
        """文字排版（无文字内容时返回 None）"""
        overlay = source.overlay
        if not (overlay.enabled and overlay.has_content):
            return None
        return self.layout_engine.layout(
            fmt.width, fmt.height, overlay, source.override, source.brand.font_family
        )

    def render_canvas(
        self,
        fmt: FormatSpec,
        source: RenderInput,
        include_text: bool = True,
        include_logo: bool = True,
    ) -> tuple[Image.Image, Rect, TextLayout | None, LogoPlacement | None]:
        """
        绘制画布（不序列化）

        Returns:
            (画布, 裁切矩形, 文字排版, Logo 摆放)
        """
        if not fmt.is_renderable:
            raise UnsupportedOutputError(f"Unsupported output type for {fmt.id}: video")

        crop_rect = self.crop_resolver.resolve(
            source.image.width, source.image.height,
            fmt.width, fmt.height,
            source.crop, source.focal_point,
        )
        layout = self.compute_layout(fmt, source) if include_text else None

        renderer = PillowRenderer(
            fmt.width, fmt.height,
            images={SOURCE_IMAGE_KEY: source.image.image},
            measurer=self.measurer,
        )
        # 背景与源图（Logo 变体按这一层的亮度选择，与 HTML5 背景一致）
        renderer.execute(
            build_render_commands(
                fmt, crop_rect, None, source.overlay, source.brand,
                background_color=self.config.background_color,
            )
        )

        placement = None
        logo = None
        if include_logo:
            selected = select_logo(
                renderer.canvas, fmt.width, fmt.height, source.brand, self.decoder,
                layout if include_text else self.compute_layout(fmt, source),
            )
            if selected is not None:
                placement, logo = selected

        if self.config.debug_safe_zone and include_text:
            renderer.execute(build_safe_zone_commands(fmt))
        if layout is not None:
            renderer.execute(build_text_commands(layout, source.overlay, source.brand))
        if placement is not None and logo is not None:
            renderer.register_image(LOGO_IMAGE_KEY, logo.image)
            renderer.execute(
                [DrawImage(image_key=LOGO_IMAGE_KEY, dest=placement.rect, opacity=placement.opacity)]
            )

        return renderer.canvas, crop_rect, layout, placement

    def choose_extension(self, fmt: FormatSpec) -> str:
        """默认 JPEG；格式不允许 JPEG 但允许 PNG 时输出 PNG"""
        if not fmt.allowed_file_types or fmt.allows("jpg"):
            return "jpg"
        if fmt.allows("png"):
            return "png"
        return "jpg"

    def encode(self, canvas: Image.Image, extension: str, quality: float | None = None) -> bytes:
        """序列化画布"""
        buf = io.BytesIO()
        if extension == "png":
            canvas.save(buf, format="PNG", optimize=True)
        else:
            q = quality if quality is not None else self.config.jpeg_quality
            canvas.convert("RGB").save(buf, format="JPEG", quality=round(q * 100), optimize=True)
        return buf.getvalue()

    def encode_within_limit(
        self, canvas: Image.Image, extension: str, max_size_kb: float
    ) -> tuple[bytes, float | None]:
        """按质量步进压缩到上限内（或到最低质量为止）"""
        if extension == "png":
            return self.encode(canvas, "png"), None

        quality = self.config.jpeg_quality
        data = self.encode(canvas, "jpg", quality)
        if not self.config.auto_compress:
            return data, quality

        while len(data) / 1024 > max_size_kb and quality - self.config.quality_step >= self.config.min_jpeg_quality - 1e-9:
            quality = round(quality - self.config.quality_step, 4)
            data = self.encode(canvas, "jpg", quality)
            logger.debug("Re-encoded at quality %.2f: %.1f KB", quality, len(data) / 1024)
        return data, quality

    def compose(self, fmt: FormatSpec, source: RenderInput) -> RenderArtifact:
        """为单个格式生成位图产物"""
        canvas, crop_rect, layout, placement = self.render_canvas(fmt, source)

        issues: list[ValidationIssue] = []
        if layout is not None and layout.overflow:
            issues.append(ValidationIssue.from_error(LayoutOverflow("; ".join(layout.overflow_reasons))))
        issues.extend(logo_overlap_issues(placement))

        extension = self.choose_extension(fmt)
        data, quality = self.encode_within_limit(canvas, extension, fmt.max_size_kb)
        logger.debug("Rendered %s: %.1f KB (%s)", fmt.id, len(data) / 1024, extension)

        return RenderArtifact(
            format_id=fmt.id,
            kind="raster",
            extension=extension,
            data=data,
            size_bytes=len(data),
            quality=quality,
            layout=layout,
            crop_rect=crop_rect,
            issues=issues,
        )
