"""
排版模块 - 裁切、文字排版、Logo 摆放与绘制指令

子模块：
- crop: cover-fit 采样矩形
- text_layout: 自适应文字排版引擎
- anchors: 锚点换算
- logo: Logo 摆放
- fonts: Pillow 字体测量
- commands: 抽象绘制指令生成
"""

from .commands import build_render_commands, build_text_commands
from .crop import CropResolver
from .fonts import FontMeasurer
from .logo import place_logo, place_logo_clear_of
from .text_layout import TextLayoutEngine, classify_band, wrap_text

__all__ = [
    "CropResolver",
    "TextLayoutEngine",
    "FontMeasurer",
    "classify_band",
    "wrap_text",
    "place_logo",
    "place_logo_clear_of",
    "build_text_commands",
    "build_render_commands",
]
