"""
创意内容模型 - 会话级可编辑状态（文字、裁切、逐格式覆盖）

引擎只读取这些对象，不做修改；持久化与撤销由外部会话层负责
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Anchor(str, Enum):
    """九宫格锚点 + 自定义坐标"""
    TOP_LEFT = "top-left"
    TOP_CENTER = "top-center"
    TOP_RIGHT = "top-right"
    CENTER_LEFT = "center-left"
    CENTER = "center"
    CENTER_RIGHT = "center-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_CENTER = "bottom-center"
    BOTTOM_RIGHT = "bottom-right"
    CUSTOM = "custom"

    @property
    def row(self) -> str:
        """top / center / bottom"""
        if self == Anchor.CUSTOM:
            return "custom"
        return self.value.split("-")[0]

    @property
    def column(self) -> str:
        """left / center / right"""
        if self == Anchor.CUSTOM:
            return "left"
        if self == Anchor.CENTER:
            return "center"
        return self.value.split("-")[1]


class FontSizeTier(str, Enum):
    """字号档位"""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class PercentPoint(BaseModel):
    """百分比坐标（0-100，拖拽交互产生）"""
    x: float = Field(..., ge=0, le=100)
    y: float = Field(..., ge=0, le=100)

    model_config = {"frozen": True}


class ShadowSpec(BaseModel):
    """文字阴影"""
    enabled: bool = True
    color: str = "rgba(0,0,0,0.8)"
    blur: float = 4
    offset_x: float = 1
    offset_y: float = 1

    model_config = {"frozen": True}


class TextOverlaySpec(BaseModel):
    """文字叠加配置（全局）"""
    enabled: bool = True
    headline: str = ""
    subheadline: str = ""
    cta: str = ""
    position: Anchor = Anchor.BOTTOM_LEFT
    custom_point: PercentPoint | None = None
    text_color: str | None = None
    cta_color: str | None = None
    cta_text_color: str = "#ffffff"
    shadow: ShadowSpec | None = None
    font_size_tier: FontSizeTier = FontSizeTier.MEDIUM

    model_config = {"frozen": True}

    @property
    def has_content(self) -> bool:
        return bool(self.headline or self.subheadline or self.cta)


class PerFormatTextOverride(BaseModel):
    """逐格式文字覆盖"""
    font_size_multiplier: float = Field(1.0, ge=0.5, le=2.0)
    hide_headline: bool = False
    hide_subheadline: bool = False
    hide_cta: bool = False
    custom_position: Anchor | None = None
    custom_point: PercentPoint | None = None

    model_config = {"frozen": True}


class CropMode(str, Enum):
    """裁切模式"""
    MANUAL = "manual"
    AUTO = "auto"


class CropSpec(BaseModel):
    """裁切配置 - 缩放窗口内的归一化平移"""
    crop_x: float = Field(0.5, ge=0, le=1)
    crop_y: float = Field(0.5, ge=0, le=1)
    zoom: float = Field(1.0, ge=1)
    mode: CropMode = CropMode.MANUAL

    model_config = {"frozen": True}


class FocalPoint(BaseModel):
    """外部检测器返回的焦点"""
    focus_x: float = Field(..., ge=0, le=1)
    focus_y: float = Field(..., ge=0, le=1)

    model_config = {"frozen": True}
