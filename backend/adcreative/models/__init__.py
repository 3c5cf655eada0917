"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- FormatSpec / FormatCategory / Platform: 格式目录
- BrandKit / TextOverlaySpec / CropSpec: 会话级只读配置
- TextLayout / DrawCommand: 两个后端共享的排版几何
- RenderArtifact / ValidationResult / ExportManifest: 渲染与校验结果
- ExportJob: 批量导出任务状态
"""

from .brand import BrandKit, LogoRules, LogoVariant
from .content import (
    Anchor,
    CropMode,
    CropSpec,
    FocalPoint,
    FontSizeTier,
    PercentPoint,
    PerFormatTextOverride,
    ShadowSpec,
    TextOverlaySpec,
)
from .format import CategoryType, FormatCategory, FormatSpec, Platform, Rect, SafeZone
from .geometry import (
    CtaLayout,
    DrawCommand,
    DrawImage,
    DrawRoundedRect,
    DrawText,
    FillRect,
    LayoutBand,
    LogoPlacement,
    StrokeRect,
    TextAlign,
    TextElementLayout,
    TextLayout,
)
from .job import ExportJob, JobArtifacts, JobProgress, JobStatus
from .result import (
    CampaignInfo,
    DecodedImage,
    ExcludedFormat,
    ExportManifest,
    ExportManifestEntry,
    RenderArtifact,
    RenderInput,
    ValidationIssue,
    ValidationResult,
    ValidationSummary,
)

__all__ = [
    "BrandKit",
    "LogoRules",
    "LogoVariant",
    "Anchor",
    "CropMode",
    "CropSpec",
    "FocalPoint",
    "FontSizeTier",
    "PercentPoint",
    "PerFormatTextOverride",
    "ShadowSpec",
    "TextOverlaySpec",
    "CategoryType",
    "FormatCategory",
    "FormatSpec",
    "Platform",
    "Rect",
    "SafeZone",
    "CtaLayout",
    "DrawCommand",
    "DrawImage",
    "DrawRoundedRect",
    "DrawText",
    "FillRect",
    "LayoutBand",
    "LogoPlacement",
    "StrokeRect",
    "TextAlign",
    "TextElementLayout",
    "TextLayout",
    "ExportJob",
    "JobArtifacts",
    "JobProgress",
    "JobStatus",
    "CampaignInfo",
    "DecodedImage",
    "ExcludedFormat",
    "ExportManifest",
    "ExportManifestEntry",
    "RenderArtifact",
    "RenderInput",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSummary",
]
