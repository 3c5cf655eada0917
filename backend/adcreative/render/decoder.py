"""
图片解码 - bytes -> DecodedImage，失败统一转换为 CropError

测试要点：
- test_decode_jpeg: 正常解码并计算内容哈希
- test_decode_corrupted_raises: 损坏数据抛 CropError
- test_decode_async: asyncio.to_thread 解码
"""

from __future__ import annotations

import asyncio
import hashlib
import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from ..interfaces import CropError
from ..models import DecodedImage

logger = logging.getLogger(__name__)


def content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class ImageDecoder:
    """源图 / Logo 解码器"""

    def decode(self, data: bytes, mode: str = "RGB") -> DecodedImage:
        """
        解码图片

        Args:
            data: 编码后的图片字节
            mode: 目标颜色模式（源图 RGB，Logo RGBA）

        Raises:
            CropError: 数据为空、无法识别或尺寸为 0
        """
        if not data:
            raise CropError("Source image is empty")

        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                image = ImageOps.exif_transpose(img).convert(mode)
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            logger.warning("Image decode failed: %s", e)
            raise CropError(f"Cannot decode image: {e}") from e

        if image.width == 0 or image.height == 0:
            raise CropError(f"Invalid image size {image.width}x{image.height}")

        return DecodedImage(image=image, content_hash=content_hash(data))

    def decode_logo(self, data: bytes) -> DecodedImage:
        """Logo 保留透明通道"""
        return self.decode(data, mode="RGBA")

    async def decode_async(self, data: bytes, mode: str = "RGB") -> DecodedImage:
        """在线程中解码（事件循环唯一挂起点）"""
        return await asyncio.to_thread(self.decode, data, mode)
