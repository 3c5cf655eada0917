"""
绘制指令生成 - 把排版几何转换为有序的抽象绘制指令

指令由可替换的渲染后端顺序执行（默认 PillowRenderer）
"""

from __future__ import annotations

from ..models import (
    BrandKit,
    DrawCommand,
    DrawImage,
    DrawRoundedRect,
    DrawText,
    FillRect,
    FormatSpec,
    LogoPlacement,
    Rect,
    ShadowSpec,
    StrokeRect,
    TextAlign,
    TextElementLayout,
    TextLayout,
    TextOverlaySpec,
)

SOURCE_IMAGE_KEY = "source"
LOGO_IMAGE_KEY = "logo"
SAFE_ZONE_DEBUG_COLOR = "#00ff88"


def resolve_text_color(overlay: TextOverlaySpec, brand: BrandKit) -> str:
    return overlay.text_color or brand.text_color


def resolve_cta_color(overlay: TextOverlaySpec, brand: BrandKit) -> str:
    return overlay.cta_color or brand.cta_color or brand.primary_color


def resolve_shadow(overlay: TextOverlaySpec, element: TextElementLayout) -> ShadowSpec | None:
    """显式阴影优先，否则使用默认阴影"""
    if overlay.shadow is not None:
        return overlay.shadow if overlay.shadow.enabled else None
    if element.role == "headline":
        return ShadowSpec(
            color="rgba(0,0,0,0.8)",
            blur=max(2.0, element.font_size * 0.08),
            offset_x=1,
            offset_y=1,
        )
    return ShadowSpec(
        color="rgba(0,0,0,0.6)",
        blur=max(1.0, element.font_size * 0.06),
        offset_x=0,
        offset_y=0,
    )


def build_text_commands(
    layout: TextLayout,
    overlay: TextOverlaySpec,
    brand: BrandKit,
) -> list[DrawCommand]:
    """标题、副标题、CTA 的绘制指令"""
    commands: list[DrawCommand] = []
    color = resolve_text_color(overlay, brand)

    for element in (layout.headline, layout.subheadline):
        if not element.visible:
            continue
        shadow = resolve_shadow(overlay, element)
        for i, line in enumerate(element.lines):
            commands.append(
                DrawText(
                    text=line,
                    x=element.x,
                    y=element.y + i * element.line_height,
                    font_size=element.font_size,
                    bold=element.bold,
                    color=color,
                    align=element.align,
                    shadow=shadow,
                )
            )

    cta = layout.cta
    if cta.visible and cta.rect is not None:
        commands.append(
            DrawRoundedRect(rect=cta.rect, radius=cta.radius, color=resolve_cta_color(overlay, brand))
        )
        commands.append(
            DrawText(
                text=cta.text,
                x=cta.rect.x + cta.rect.width / 2,
                y=cta.rect.y + cta.rect.height / 2,
                font_size=cta.font_size,
                bold=True,
                color=overlay.cta_text_color,
                align=TextAlign.CENTER,
                baseline="middle",
            )
        )
    return commands


def build_safe_zone_commands(fmt: FormatSpec) -> list[DrawCommand]:
    """调试用安全区描边"""
    if fmt.safe_zone is None:
        return []
    return [
        StrokeRect(
            rect=fmt.safe_zone.visible_rect(fmt.width, fmt.height),
            color=SAFE_ZONE_DEBUG_COLOR,
            line_width=2,
        )
    ]


def build_render_commands(
    fmt: FormatSpec,
    crop_rect: Rect,
    layout: TextLayout | None,
    overlay: TextOverlaySpec,
    brand: BrandKit,
    logo: LogoPlacement | None = None,
    background_color: str = "#1a1a1a",
    debug_safe_zone: bool = False,
) -> list[DrawCommand]:
    """
    完整绘制序列

    背景 → 裁切后的源图 → （调试）安全区 → 文字 → Logo
    """
    canvas = Rect(x=0, y=0, width=fmt.width, height=fmt.height)
    commands: list[DrawCommand] = [
        FillRect(rect=canvas, color=background_color),
        DrawImage(image_key=SOURCE_IMAGE_KEY, src=crop_rect, dest=canvas),
    ]

    if debug_safe_zone:
        commands.extend(build_safe_zone_commands(fmt))

    if layout is not None:
        commands.extend(build_text_commands(layout, overlay, brand))

    if logo is not None:
        commands.append(DrawImage(image_key=LOGO_IMAGE_KEY, dest=logo.rect, opacity=logo.opacity))

    return commands
