"""
Logo 摆放 - 位图与 HTML5 共用的唯一摆放函数

Logo 不得压住标题、副标题或 CTA：首选锚点冲突时改用最近的空闲锚点，
全部冲突时保留首选位置并标记 overlaps_text
"""

from __future__ import annotations

from ..models import Anchor, LogoRules, Rect
from .anchors import place_box

# 可供 Logo 使用的九宫格锚点
LOGO_ANCHORS = [a for a in Anchor if a != Anchor.CUSTOM]


def logo_size(
    canvas_width: float,
    canvas_height: float,
    logo_width: float,
    logo_height: float,
    rules: LogoRules,
) -> tuple[float, float]:
    """较长边 = min(w,h) * size_percent%，保持原始宽高比"""
    max_size = min(canvas_width, canvas_height) * rules.size_percent / 100
    ratio = logo_width / logo_height if logo_height else 1.0
    if ratio > 1:
        return max_size, max_size / ratio
    return max_size * ratio, max_size


def place_logo(
    canvas_width: float,
    canvas_height: float,
    logo_width: float,
    logo_height: float,
    rules: LogoRules,
    anchor: Anchor | None = None,
) -> Rect:
    """按九宫格锚点放置 Logo 并内缩 padding_px（anchor 缺省取 rules.position）"""
    width, height = logo_size(canvas_width, canvas_height, logo_width, logo_height, rules)
    position = anchor or rules.position
    x, y = place_box(position, canvas_width, canvas_height, width, height, rules.padding_px)
    return Rect(x=x, y=y, width=width, height=height)


def place_logo_clear_of(
    canvas_width: float,
    canvas_height: float,
    logo_width: float,
    logo_height: float,
    rules: LogoRules,
    occupied: list[Rect],
) -> tuple[Rect, Anchor, bool]:
    """
    避开已占用区域放置 Logo

    Returns:
        (矩形, 实际锚点, 是否仍与文字重叠)
    """
    preferred_anchor = rules.position if rules.position != Anchor.CUSTOM else Anchor.BOTTOM_RIGHT
    preferred = place_logo(canvas_width, canvas_height, logo_width, logo_height, rules, preferred_anchor)
    if not any(preferred.intersects(r) for r in occupied):
        return preferred, preferred_anchor, False

    cx, cy = preferred.x + preferred.width / 2, preferred.y + preferred.height / 2
    candidates = []
    for anchor in LOGO_ANCHORS:
        if anchor == preferred_anchor:
            continue
        rect = place_logo(canvas_width, canvas_height, logo_width, logo_height, rules, anchor)
        if any(rect.intersects(r) for r in occupied):
            continue
        distance = (rect.x + rect.width / 2 - cx) ** 2 + (rect.y + rect.height / 2 - cy) ** 2
        candidates.append((distance, LOGO_ANCHORS.index(anchor), rect, anchor))

    if not candidates:
        return preferred, preferred_anchor, True
    _, _, rect, anchor = min(candidates)
    return rect, anchor, False
