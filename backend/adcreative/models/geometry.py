"""
排版几何模型 - 位图与 HTML5 两个后端共享的唯一几何来源

TextLayoutEngine 输出 TextLayout，两个合成器都只消费这个结构，
不各自重复计算字号与坐标
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from .brand import LogoVariant
from .content import Anchor, ShadowSpec
from .format import Rect


class LayoutBand(str, Enum):
    """宽高比分档"""
    VERY_SMALL = "verySmall"
    WIDE = "wide"
    SEMI_WIDE = "semiWide"
    TALL = "tall"
    SEMI_TALL = "semiTall"
    NORMAL = "normal"


class TextAlign(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class TextElementLayout(BaseModel):
    """标题/副标题排版结果"""
    role: Literal["headline", "subheadline"]
    text: str = ""
    visible: bool = False
    font_size: float = 0
    bold: bool = False
    align: TextAlign = TextAlign.LEFT
    lines: list[str] = Field(default_factory=list)
    line_height: float = 0
    x: float = 0           # 对齐基准 x（左/中/右）
    y: float = 0           # 首行顶部
    width: float = 0       # 最宽一行的实测宽度

    model_config = {"frozen": True}

    @property
    def height(self) -> float:
        return len(self.lines) * self.line_height

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def rect(self) -> Rect:
        """按对齐方式换算的外接矩形"""
        if self.align == TextAlign.CENTER:
            left = self.x - self.width / 2
        elif self.align == TextAlign.RIGHT:
            left = self.x - self.width
        else:
            left = self.x
        return Rect(x=left, y=self.y, width=self.width, height=self.height)


class CtaLayout(BaseModel):
    """CTA 按钮排版结果"""
    text: str = ""
    visible: bool = False
    font_size: float = 0
    rect: Rect | None = None
    radius: float = 0
    padding_x: float = 0
    padding_y: float = 0
    text_width: float = 0

    model_config = {"frozen": True}


class TextLayout(BaseModel):
    """单个格式的完整文字排版几何"""
    width: int
    height: int
    band: LayoutBand
    anchor: Anchor
    align: TextAlign
    padding: float
    max_text_width: float
    origin_x: float
    origin_y: float
    block_height: float
    font_family: str
    headline: TextElementLayout
    subheadline: TextElementLayout
    cta: CtaLayout
    overflow: bool = False
    overflow_reasons: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        return not (self.headline.visible or self.subheadline.visible or self.cta.visible)

    @property
    def occupied_rects(self) -> list[Rect]:
        """可见文字元素与 CTA 按钮占用的矩形"""
        rects = [e.rect for e in (self.headline, self.subheadline) if e.visible and e.lines]
        if self.cta.visible and self.cta.rect is not None:
            rects.append(self.cta.rect)
        return rects


class LogoPlacement(BaseModel):
    """Logo 摆放结果"""
    variant: LogoVariant
    rect: Rect
    opacity: float = Field(1.0, ge=0, le=1)
    anchor: Anchor | None = None
    overlaps_text: bool = False   # 所有锚点都与文字冲突时为 True

    model_config = {"frozen": True}


# ============================================================================
# 抽象绘制指令
# ============================================================================

class FillRect(BaseModel):
    op: Literal["fillRect"] = "fillRect"
    rect: Rect
    color: str

    model_config = {"frozen": True}


class StrokeRect(BaseModel):
    op: Literal["strokeRect"] = "strokeRect"
    rect: Rect
    color: str
    line_width: float = 2

    model_config = {"frozen": True}


class DrawImage(BaseModel):
    """image_key 由渲染后端在图片注册表中解析（source / logo）"""
    op: Literal["drawImage"] = "drawImage"
    image_key: str
    dest: Rect
    src: Rect | None = None
    opacity: float = 1.0

    model_config = {"frozen": True}


class DrawText(BaseModel):
    op: Literal["drawText"] = "drawText"
    text: str
    x: float
    y: float
    font_size: float
    bold: bool = False
    color: str = "#ffffff"
    align: TextAlign = TextAlign.LEFT
    baseline: Literal["top", "middle"] = "top"
    shadow: ShadowSpec | None = None

    model_config = {"frozen": True}


class DrawRoundedRect(BaseModel):
    op: Literal["drawRoundedRect"] = "drawRoundedRect"
    rect: Rect
    radius: float
    color: str

    model_config = {"frozen": True}


DrawCommand = Annotated[
    Union[FillRect, StrokeRect, DrawImage, DrawText, DrawRoundedRect],
    Field(discriminator="op"),
]
