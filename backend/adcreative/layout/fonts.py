"""
字体测量 - 基于 Pillow 的文字宽度测量

未配置字体文件时使用 Pillow 内置可缩放字体
"""

from __future__ import annotations

from PIL import ImageFont


class FontMeasurer:
    """按字号/粗细缓存字体并测量文字宽度"""

    def __init__(self, font_path: str | None = None, bold_font_path: str | None = None):
        self.font_path = font_path
        self.bold_font_path = bold_font_path or font_path
        self._cache: dict[tuple[int, bool], ImageFont.FreeTypeFont | ImageFont.ImageFont] = {}

    def get_font(self, size: float, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        """获取字体对象（字号取整）"""
        key = (max(1, round(size)), bold)
        if key not in self._cache:
            path = self.bold_font_path if bold else self.font_path
            if path:
                self._cache[key] = ImageFont.truetype(path, key[0])
            else:
                self._cache[key] = ImageFont.load_default(size=key[0])
        return self._cache[key]

    def measure(self, text: str, size: float, bold: bool = False) -> float:
        """文字渲染宽度（像素）"""
        if not text:
            return 0.0
        return float(self.get_font(size, bold).getlength(text))
