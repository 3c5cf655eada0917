"""
文字排版引擎 - 自适应字号、换行、堆叠与锚点坐标

职责：
1. 按宽高比/最小边分档（verySmall / wide / semiWide / tall / semiTall / normal）
2. 按档位与字号档计算标题/副标题/CTA 字号，再乘逐格式倍率并钳制
3. 贪心换行（超长单词按字符强制断开）
4. 计算文字块高度、锚点原点与 CTA 按钮矩形
5. 标记溢出（不阻断导出）

测试要点：
- test_font_sizes_clamped: 任意倍率下字号都在钳制区间内
- test_band_classification: 分档边界
- test_long_headline_wraps: 超宽标题至少两行且每行不超可用宽度
- test_very_small_hides_subheadline: 320x50 隐藏副标题
- test_cta_shrinks_to_fit: CTA 过宽时缩小（不低于 8px）
- test_anchor_origin: 九宫格原点与钳制
"""

from __future__ import annotations

import logging
from typing import Callable

from ..models import (
    Anchor,
    CtaLayout,
    FontSizeTier,
    LayoutBand,
    PerFormatTextOverride,
    Rect,
    TextAlign,
    TextElementLayout,
    TextLayout,
    TextOverlaySpec,
)
from .anchors import align_for, anchor_x, resolve_anchor
from .fonts import FontMeasurer

logger = logging.getLogger(__name__)

# 字号档位基准倍率 (headline, subheadline, cta)
TIER_MULTIPLIERS: dict[FontSizeTier, tuple[float, float, float]] = {
    FontSizeTier.SMALL: (0.14, 0.10, 0.09),
    FontSizeTier.MEDIUM: (0.18, 0.12, 0.10),
    FontSizeTier.LARGE: (0.22, 0.14, 0.12),
}
REFERENCE_MULTIPLIERS = TIER_MULTIPLIERS[FontSizeTier.MEDIUM]

HEADLINE_RANGE = (10.0, 56.0)
SUBHEADLINE_RANGE = (8.0, 32.0)
CTA_RANGE = (8.0, 24.0)
CTA_MIN_SIZE = CTA_RANGE[0]

LINE_HEIGHT = 1.15
BLOCK_GAP = 4.0
CTA_ALLOWANCE = 2.2
ELLIPSIS = "…"


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def compute_padding(width: float, height: float) -> float:
    """内边距 = max(8, 最小边 5%)"""
    return max(8.0, min(width, height) * 0.05)


def classify_band(width: float, height: float) -> LayoutBand:
    """按宽高比与最小边分档"""
    ratio = width / height
    if width <= 200 or height <= 60:
        return LayoutBand.VERY_SMALL
    if ratio > 3:
        return LayoutBand.WIDE
    if ratio > 2:
        return LayoutBand.SEMI_WIDE
    if ratio < 0.6:
        return LayoutBand.TALL
    if ratio < 0.8:
        return LayoutBand.SEMI_TALL
    return LayoutBand.NORMAL


def base_font_sizes(
    width: float,
    height: float,
    band: LayoutBand,
    tier: FontSizeTier = FontSizeTier.MEDIUM,
) -> tuple[float, float, float]:
    """未钳制的基准字号 (headline, subheadline, cta)"""
    mh, ms, mc = TIER_MULTIPLIERS[tier]
    rh, rs, rc = REFERENCE_MULTIPLIERS
    kh, ks, kc = mh / rh, ms / rs, mc / rc

    if band == LayoutBand.VERY_SMALL:
        return min(height * 0.35, width * 0.08), 0.0, min(height * 0.25, width * 0.06)
    if band == LayoutBand.WIDE:
        return height * 0.32 * kh, height * 0.20 * ks, height * 0.22 * kc
    if band == LayoutBand.SEMI_WIDE:
        return (
            min(height * 0.15, width * 0.035) * kh,
            min(height * 0.10, width * 0.025) * ks,
            min(height * 0.10, width * 0.022) * kc,
        )
    if band == LayoutBand.TALL:
        return width * 0.14 * kh, width * 0.09 * ks, width * 0.10 * kc
    if band == LayoutBand.SEMI_TALL:
        return width * mh, width * ms, width * mc
    base = min(width, height)
    return base * mh, base * ms, base * mc


def clamp_font_sizes(
    headline: float,
    subheadline: float,
    cta: float,
    multiplier: float = 1.0,
) -> tuple[float, float, float]:
    """乘倍率后钳制"""
    return (
        _clamp(headline * multiplier, *HEADLINE_RANGE),
        _clamp(subheadline * multiplier, *SUBHEADLINE_RANGE),
        _clamp(cta * multiplier, *CTA_RANGE),
    )


def _break_word(word: str, max_width: float, measure: Callable[[str], float]) -> list[str]:
    """超长单词按字符断开"""
    pieces: list[str] = []
    current = ""
    for ch in word:
        candidate = current + ch
        if current and measure(candidate) > max_width:
            pieces.append(current)
            current = ch
        else:
            current = candidate
    if current:
        pieces.append(current)
    return pieces


def wrap_text(text: str, max_width: float, measure: Callable[[str], float]) -> list[str]:
    """
    贪心换行

    Args:
        text: 原文（按空格分词）
        max_width: 每行最大宽度
        measure: 文本宽度测量函数

    Returns:
        行列表；单个字符本身超宽时该字符独占一行
    """
    lines: list[str] = []
    line = ""
    for word in text.split():
        if measure(word) > max_width:
            if line:
                lines.append(line)
                line = ""
            pieces = _break_word(word, max_width, measure)
            lines.extend(pieces[:-1])
            line = pieces[-1]
            continue
        candidate = f"{line} {word}" if line else word
        if line and measure(candidate) > max_width:
            lines.append(line)
            line = word
        else:
            line = candidate
    if line:
        lines.append(line)
    return lines


def truncate_to_width(text: str, max_width: float, measure: Callable[[str], float]) -> str:
    """截断并追加省略号"""
    if measure(text) <= max_width:
        return text
    trimmed = text
    while trimmed and measure(trimmed.rstrip() + ELLIPSIS) > max_width:
        trimmed = trimmed[:-1]
    return trimmed.rstrip() + ELLIPSIS if trimmed else ""


class TextLayoutEngine:
    """文字排版引擎（位图与 HTML5 共用）"""

    def __init__(self, measurer: FontMeasurer | None = None):
        self.measurer = measurer or FontMeasurer()

    def layout(
        self,
        width: int,
        height: int,
        overlay: TextOverlaySpec,
        override: PerFormatTextOverride | None = None,
        font_family: str = "Arial, Helvetica, sans-serif",
    ) -> TextLayout:
        """
        计算单个格式的文字排版

        Args:
            width/height: 画布尺寸
            overlay: 全局文字配置
            override: 逐格式覆盖
            font_family: 品牌字体（HTML5 使用）

        Returns:
            TextLayout
        """
        override = override or PerFormatTextOverride()
        band = classify_band(width, height)
        padding = compute_padding(width, height)
        max_text_width = width - padding * 2
        reasons: list[str] = []

        h_size, s_size, c_size = clamp_font_sizes(
            *base_font_sizes(width, height, band, overlay.font_size_tier),
            multiplier=override.font_size_multiplier,
        )

        # === 可见性 ===
        enabled = overlay.enabled
        show_headline = enabled and bool(overlay.headline.strip()) and not override.hide_headline
        show_sub = enabled and bool(overlay.subheadline.strip()) and not override.hide_subheadline
        show_cta = enabled and bool(overlay.cta.strip()) and not override.hide_cta and c_size >= CTA_MIN_SIZE

        if band in (LayoutBand.VERY_SMALL, LayoutBand.WIDE, LayoutBand.SEMI_WIDE):
            show_sub = False
        if band == LayoutBand.VERY_SMALL and show_cta:
            show_headline = False

        # === 锚点 ===
        anchor, point = resolve_anchor(overlay, override)
        align = align_for(anchor)
        if anchor == Anchor.CUSTOM:
            min_width = max_text_width / 2
            origin_x = _clamp(point.x / 100 * width, padding / 2, width - padding - min_width)
            wrap_width = width - padding - origin_x
        else:
            origin_x = anchor_x(align, width, padding)
            wrap_width = max_text_width

        # === 换行 ===
        def measurer_for(size: float, bold: bool) -> Callable[[str], float]:
            return lambda s: self.measurer.measure(s, size, bold)

        headline_lines: list[str] = []
        if show_headline:
            measure_h = measurer_for(h_size, True)
            if band == LayoutBand.VERY_SMALL:
                text = overlay.headline.strip()
                text_width = measure_h(text)
                if text_width > wrap_width:
                    h_size = max(HEADLINE_RANGE[0], h_size * wrap_width / text_width)
                    measure_h = measurer_for(h_size, True)
                    fitted = truncate_to_width(text, wrap_width, measure_h)
                    if fitted != text:
                        reasons.append(f"Headline truncated to fit {width}x{height}")
                    text = fitted
                headline_lines = [text] if text else []
            else:
                headline_lines = wrap_text(overlay.headline, wrap_width, measure_h)
        sub_lines = wrap_text(overlay.subheadline, wrap_width, measurer_for(s_size, False)) if show_sub else []

        block_height = 0.0
        if headline_lines:
            block_height += len(headline_lines) * h_size * LINE_HEIGHT + BLOCK_GAP
        if sub_lines:
            block_height += len(sub_lines) * s_size * LINE_HEIGHT + BLOCK_GAP
        if show_cta:
            block_height += c_size * CTA_ALLOWANCE

        if block_height > height - padding:
            reasons.append(
                f"Text block height {block_height:.0f}px exceeds canvas height {height}px"
            )

        # === 垂直原点 ===
        if anchor == Anchor.CUSTOM:
            start_y = point.y / 100 * height
        elif anchor.row == "top":
            start_y = padding
        elif anchor.row == "bottom":
            start_y = height - padding - block_height
        else:
            start_y = (height - block_height) / 2
        start_y = max(padding / 2, min(start_y, height - block_height - padding / 2))

        # === 逐元素 ===
        current_y = start_y
        headline = TextElementLayout(role="headline", text=overlay.headline)
        if headline_lines:
            headline = TextElementLayout(
                role="headline",
                text=overlay.headline,
                visible=True,
                font_size=h_size,
                bold=True,
                align=align,
                lines=headline_lines,
                line_height=h_size * LINE_HEIGHT,
                x=origin_x,
                y=current_y,
                width=max(self.measurer.measure(line, h_size, True) for line in headline_lines),
            )
            current_y += headline.height + BLOCK_GAP

        subheadline = TextElementLayout(role="subheadline", text=overlay.subheadline)
        if sub_lines:
            subheadline = TextElementLayout(
                role="subheadline",
                text=overlay.subheadline,
                visible=True,
                font_size=s_size,
                bold=False,
                align=align,
                lines=sub_lines,
                line_height=s_size * LINE_HEIGHT,
                x=origin_x,
                y=current_y,
                width=max(self.measurer.measure(line, s_size, False) for line in sub_lines),
            )
            current_y += subheadline.height + BLOCK_GAP

        cta = CtaLayout(text=overlay.cta)
        if show_cta:
            cta = self._layout_cta(
                overlay.cta.strip(), c_size, align, origin_x, current_y,
                width, height, padding, wrap_width, reasons,
            )

        if reasons:
            logger.debug("Layout overflow for %dx%d: %s", width, height, "; ".join(reasons))

        return TextLayout(
            width=width,
            height=height,
            band=band,
            anchor=anchor,
            align=align,
            padding=padding,
            max_text_width=wrap_width,
            origin_x=origin_x,
            origin_y=start_y,
            block_height=block_height,
            font_family=font_family,
            headline=headline,
            subheadline=subheadline,
            cta=cta,
            overflow=bool(reasons),
            overflow_reasons=reasons,
        )

    def _layout_cta(
        self,
        text: str,
        size: float,
        align: TextAlign,
        origin_x: float,
        current_y: float,
        width: int,
        height: int,
        padding: float,
        max_text_width: float,
        reasons: list[str],
    ) -> CtaLayout:
        """CTA 按钮：过宽时等比缩小字号（不低于 8px）"""
        text_width = self.measurer.measure(text, size, True)
        max_cta_text_width = max_text_width - size * 1.2
        if text_width > max_cta_text_width:
            scale = max_cta_text_width / text_width if text_width else 1.0
            size = max(CTA_MIN_SIZE, size * scale)
            text_width = self.measurer.measure(text, size, True)
            if text_width > max_text_width - size * 1.2:
                reasons.append(f"CTA '{text}' does not fit at {size:.0f}px")

        padding_x = max(size * 0.5, 6)
        padding_y = max(size * 0.3, 4)
        cta_width = text_width + padding_x * 2
        cta_height = size + padding_y * 2
        radius = min(cta_height / 2.5, 6)

        if align == TextAlign.CENTER:
            cta_x = origin_x - cta_width / 2
        elif align == TextAlign.RIGHT:
            cta_x = origin_x - cta_width
        else:
            cta_x = origin_x
        cta_x = max(padding / 2, min(cta_x, width - cta_width - padding / 2))
        cta_y = min(current_y, height - cta_height - padding / 2)

        return CtaLayout(
            text=text,
            visible=True,
            font_size=size,
            rect=Rect(x=cta_x, y=cta_y, width=cta_width, height=cta_height),
            radius=radius,
            padding_x=padding_x,
            padding_y=padding_y,
            text_width=text_width,
        )
