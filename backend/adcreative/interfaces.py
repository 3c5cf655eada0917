"""
模块接口契约 - 定义各模块的抽象接口与异常体系

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 外部服务（AI生图、智能裁切）只暴露最小契约
3. 每种失败对应一个异常类型，并带有 IssueCode，便于转换为校验结果

使用方式：
    from adcreative.interfaces import IFocalPointProvider

    class SaliencyProvider(IFocalPointProvider):
        def detect(self, image, target_width, target_height) -> FocalPoint:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from PIL import Image

    from .models import (
        DrawCommand,
        ExportManifest,
        FocalPoint,
        FormatSpec,
        PerFormatTextOverride,
        RenderArtifact,
        RenderInput,
        TextOverlaySpec,
        ValidationResult,
    )


class IssueCode(str, Enum):
    """校验问题代码"""
    CROP_ERROR = "crop_error"
    LAYOUT_OVERFLOW = "layout_overflow"
    SIZE_LIMIT_EXCEEDED = "size_limit_exceeded"
    SAFE_ZONE = "safe_zone"
    HTML5_COMPLIANCE = "html5_compliance"
    FOCAL_POINT_FALLBACK = "focal_point_fallback"
    UNSUPPORTED_OUTPUT = "unsupported_output"
    RENDER_ERROR = "render_error"
    SIZE_NEAR_LIMIT = "size_near_limit"
    UNFILLED_PLACEHOLDER = "unfilled_placeholder"
    TEXT_LENGTH = "text_length"


# ============================================================================
# 外部服务契约（AI 生图 / 智能裁切）
# ============================================================================

class IImageProvider(ABC):
    """生图服务接口 - 返回源图字节"""

    @abstractmethod
    def generate(self, prompt: str, width: int, height: int) -> bytes:
        """
        根据提示词生成源图

        Args:
            prompt: 文本提示词
            width: 期望宽度
            height: 期望高度

        Returns:
            编码后的图片字节（JPEG/PNG）
        """
        ...


class IFocalPointProvider(ABC):
    """智能裁切服务接口 - 返回焦点坐标"""

    @abstractmethod
    def detect(self, image: Image.Image, target_width: int, target_height: int) -> FocalPoint:
        """
        检测源图在目标尺寸下的焦点

        Returns:
            FocalPoint，focus_x/focus_y 取值 [0,1]
        """
        ...


# ============================================================================
# 渲染模块接口
# ============================================================================

class IRenderer(Protocol):
    """绘制后端协议 - 顺序执行抽象绘制指令"""

    def execute(self, commands: list[DrawCommand]) -> None:
        """执行绘制指令列表"""
        ...


class IComposer(ABC):
    """合成器接口（位图 / HTML5）"""

    @abstractmethod
    def compose(self, fmt: FormatSpec, source: RenderInput) -> RenderArtifact:
        """为单个格式生成渲染产物"""
        ...


class IConstraintValidator(ABC):
    """约束校验器接口"""

    @abstractmethod
    def validate(
        self,
        fmt: FormatSpec,
        artifact: RenderArtifact,
        overlay: TextOverlaySpec | None = None,
        override: PerFormatTextOverride | None = None,
    ) -> ValidationResult:
        """按格式约束校验渲染产物（overlay 给出时同时检查文案）"""
        ...


class IPackager(ABC):
    """打包器接口"""

    @abstractmethod
    def package(self, manifest: ExportManifest, output_path: Path) -> Path:
        """
        打包交付产物

        Args:
            manifest: 导出清单（含产物）
            output_path: zip 输出路径

        Returns:
            package.zip 路径
        """
        ...

    @abstractmethod
    def generate_manifest(self, manifest: ExportManifest) -> str:
        """生成 manifest.json 内容"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class AdCreativeError(Exception):
    """基础异常"""
    code: IssueCode = IssueCode.RENDER_ERROR
    blocking: bool = True


class CatalogError(AdCreativeError):
    """格式目录加载/查找错误"""
    pass


class CropError(AdCreativeError):
    """源图无效或无法解码"""
    code = IssueCode.CROP_ERROR


class LayoutOverflow(AdCreativeError):
    """换行与字号钳制后文字仍超出画布"""
    code = IssueCode.LAYOUT_OVERFLOW
    blocking = False


class SizeLimitExceeded(AdCreativeError):
    """文件大小超过格式上限"""
    code = IssueCode.SIZE_LIMIT_EXCEEDED


class SafeZoneWarning(AdCreativeError):
    """安全区提示（仅提示，不阻断导出）"""
    code = IssueCode.SAFE_ZONE
    blocking = False


class Html5ComplianceError(AdCreativeError):
    """HTML5 合规问题（禁用API / 禁用标签 / 体积超预算）"""
    code = IssueCode.HTML5_COMPLIANCE


class UnsupportedOutputError(AdCreativeError):
    """输出类型不受支持（如视频格式）"""
    code = IssueCode.UNSUPPORTED_OUTPUT


class FocalPointFallback(AdCreativeError):
    """焦点检测失败，回退到中心（仅提示）"""
    code = IssueCode.FOCAL_POINT_FALLBACK
    blocking = False
