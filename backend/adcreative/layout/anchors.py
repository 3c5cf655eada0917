"""
锚点工具 - 九宫格锚点到对齐方式与坐标的换算

文字块与 Logo 共用
"""

from __future__ import annotations

from ..models import Anchor, PercentPoint, PerFormatTextOverride, TextAlign, TextOverlaySpec


def resolve_anchor(
    overlay: TextOverlaySpec,
    override: PerFormatTextOverride | None = None,
) -> tuple[Anchor, PercentPoint | None]:
    """逐格式覆盖优先于全局锚点"""
    anchor = overlay.position
    point = overlay.custom_point
    if override is not None and override.custom_position is not None:
        anchor = override.custom_position
        point = override.custom_point or point
    if anchor == Anchor.CUSTOM and point is None:
        # 没有坐标的自定义位置按居中处理
        point = PercentPoint(x=50, y=50)
    return anchor, point


def align_for(anchor: Anchor) -> TextAlign:
    """锚点列 -> 水平对齐"""
    return TextAlign(anchor.column)


def anchor_x(align: TextAlign, width: float, padding: float) -> float:
    """对齐基准 x"""
    if align == TextAlign.CENTER:
        return width / 2
    if align == TextAlign.RIGHT:
        return width - padding
    return padding


def place_box(
    anchor: Anchor,
    canvas_width: float,
    canvas_height: float,
    box_width: float,
    box_height: float,
    inset: float,
) -> tuple[float, float]:
    """在画布内按锚点放置矩形，返回左上角坐标"""
    column = anchor.column
    row = anchor.row if anchor != Anchor.CUSTOM else "center"

    if column == "left":
        x = inset
    elif column == "right":
        x = canvas_width - box_width - inset
    else:
        x = (canvas_width - box_width) / 2

    if row == "top":
        y = inset
    elif row == "bottom":
        y = canvas_height - box_height - inset
    else:
        y = (canvas_height - box_height) / 2

    return x, y
