"""
品牌套件模型 - 跨格式复用的颜色、字体、Logo 变体与摆放规则
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from .content import Anchor


class LogoVariant(str, Enum):
    """Logo 变体"""
    MAIN = "main"
    LIGHT = "light"
    DARK = "dark"


class LogoRules(BaseModel):
    """Logo 摆放规则"""
    auto_apply: bool = False
    position: Anchor = Anchor.BOTTOM_RIGHT
    size_percent: float = Field(12, gt=0, le=100)
    padding_px: float = Field(20, ge=0)
    opacity_percent: float = Field(100, ge=0, le=100)
    auto_select_variant: bool = True

    model_config = {"frozen": True}


class BrandKit(BaseModel):
    """品牌套件"""
    name: str = "Default"

    # 颜色
    primary_color: str = "#ff6600"
    secondary_color: str = "#1a1a1a"
    text_color: str = "#ffffff"
    cta_color: str | None = None

    # 字体
    font_family: str = "Arial, Helvetica, sans-serif"

    # Logo（原始字节，PNG 带透明通道为佳）
    logo_main: bytes | None = None
    logo_light: bytes | None = None    # 深色背景用
    logo_dark: bytes | None = None     # 浅色背景用
    logo_rules: LogoRules = Field(default_factory=LogoRules)

    # 文案
    tagline: str | None = None
    description: str | None = None

    model_config = {"frozen": True}

    @property
    def has_logo(self) -> bool:
        return any((self.logo_main, self.logo_light, self.logo_dark))

    def get_logo(self, variant: LogoVariant) -> bytes | None:
        """按变体取 Logo，缺失时回退到主 Logo"""
        chosen = {
            LogoVariant.MAIN: self.logo_main,
            LogoVariant.LIGHT: self.logo_light,
            LogoVariant.DARK: self.logo_dark,
        }[variant]
        return chosen or self.logo_main or self.logo_light or self.logo_dark
