"""
裁切解析器 - 计算 cover-fit 采样矩形

职责：
1. 按目标宽高比在源图中取最大采样窗口（除以 zoom）
2. 用 crop_x / crop_y 在剩余空间中平移
3. 自动模式用外部焦点替代平移值

测试要点：
- test_cover_fit_wider_source: 源图更宽时裁左右
- test_zoom_keeps_rect_inside: zoom>=1 时采样矩形不越界
- test_zero_source_raises: 源图尺寸为 0 抛 CropError
- test_auto_mode_uses_focal_point: 自动模式使用焦点
"""

from __future__ import annotations

from ..interfaces import CropError
from ..models import CropMode, CropSpec, FocalPoint, Rect


class CropResolver:
    """cover-fit 采样矩形解析"""

    def resolve(
        self,
        source_width: float,
        source_height: float,
        target_width: float,
        target_height: float,
        crop: CropSpec | None = None,
        focal_point: FocalPoint | None = None,
    ) -> Rect:
        """
        计算源图采样矩形

        Args:
            source_width/source_height: 源图像素尺寸
            target_width/target_height: 目标格式尺寸
            crop: 平移与缩放；None 时居中、zoom=1
            focal_point: 自动模式下的焦点（crop.mode == auto 时生效）

        Returns:
            源图坐标系下的 Rect

        Raises:
            CropError: 源图或目标尺寸无效
        """
        if source_width <= 0 or source_height <= 0:
            raise CropError(f"Invalid source size {source_width}x{source_height}")
        if target_width <= 0 or target_height <= 0:
            raise CropError(f"Invalid target size {target_width}x{target_height}")

        crop = crop or CropSpec()
        pan_x, pan_y = crop.crop_x, crop.crop_y
        if crop.mode == CropMode.AUTO and focal_point is not None:
            pan_x, pan_y = focal_point.focus_x, focal_point.focus_y

        target_aspect = target_width / target_height
        if source_width / source_height > target_aspect:
            sampled_h = source_height / crop.zoom
            sampled_w = sampled_h * target_aspect
        else:
            sampled_w = source_width / crop.zoom
            sampled_h = sampled_w / target_aspect

        # 浮点误差钳制
        sampled_w = min(sampled_w, source_width)
        sampled_h = min(sampled_h, source_height)
        slack_x = source_width - sampled_w
        slack_y = source_height - sampled_h
        src_x = min(max(slack_x * pan_x, 0.0), slack_x)
        src_y = min(max(slack_y * pan_y, 0.0), slack_y)

        return Rect(x=src_x, y=src_y, width=sampled_w, height=sampled_h)
