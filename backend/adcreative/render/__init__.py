"""
渲染模块 - 解码、位图合成与 HTML5 合成

子模块：
- decoder: bytes -> DecodedImage（失败抛 CropError）
- raster: PillowRenderer + RasterComposer
- html5: Html5Composer + 合规检查
- timelines: 声明式动画时间线
"""

from .decoder import ImageDecoder
from .html5 import Html5Composer, check_compliance
from .raster import PillowRenderer, RasterComposer, select_logo
from .timelines import ANIMATION_NAMES, build_timeline, compile_timeline

__all__ = [
    "ImageDecoder",
    "PillowRenderer",
    "RasterComposer",
    "select_logo",
    "Html5Composer",
    "check_compliance",
    "ANIMATION_NAMES",
    "build_timeline",
    "compile_timeline",
]
