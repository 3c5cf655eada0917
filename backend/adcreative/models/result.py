"""
渲染产物与校验结果模型

- DecodedImage: 解码后的源图（Pillow Image + 内容哈希）
- RenderInput: 单个格式的完整渲染输入
- RenderArtifact: 位图字节或 HTML5 文件集
- ValidationIssue / ValidationResult / ValidationSummary: 校验结果
- ExportManifest: 交付包清单
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Literal

from PIL import Image
from pydantic import BaseModel, Field

from ..interfaces import IssueCode
from .brand import BrandKit
from .content import CropSpec, FocalPoint, PerFormatTextOverride, TextOverlaySpec
from .format import Rect
from .geometry import TextLayout

if TYPE_CHECKING:
    from ..interfaces import AdCreativeError


Severity = Literal["error", "warning"]


class DecodedImage(BaseModel):
    """解码后的源图"""
    image: Image.Image
    content_hash: str

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


class RenderInput(BaseModel):
    """单个格式的渲染输入（全部为只读快照）"""
    image: DecodedImage
    overlay: TextOverlaySpec = Field(default_factory=TextOverlaySpec)
    brand: BrandKit = Field(default_factory=BrandKit)
    crop: CropSpec = Field(default_factory=CropSpec)
    override: PerFormatTextOverride | None = None
    focal_point: FocalPoint | None = None
    animation: str | None = None

    model_config = {"arbitrary_types_allowed": True, "frozen": True}


class ValidationIssue(BaseModel):
    """单条校验问题"""
    code: IssueCode
    severity: Severity
    message: str

    model_config = {"frozen": True}

    @classmethod
    def from_error(cls, exc: AdCreativeError) -> ValidationIssue:
        """异常 -> 校验问题（blocking 决定严重级别）"""
        return cls(
            code=exc.code,
            severity="error" if exc.blocking else "warning",
            message=str(exc),
        )

    @classmethod
    def error(cls, code: IssueCode, message: str) -> ValidationIssue:
        return cls(code=code, severity="error", message=message)

    @classmethod
    def warning(cls, code: IssueCode, message: str) -> ValidationIssue:
        return cls(code=code, severity="warning", message=message)


class RenderArtifact(BaseModel):
    """渲染产物"""
    format_id: str
    kind: Literal["raster", "html5"]
    extension: str                                   # jpg / png / html5
    data: bytes | None = None                        # 位图字节
    files: dict[str, bytes] = Field(default_factory=dict)  # HTML5 文件集
    size_bytes: int = 0
    quality: float | None = None                     # 实际使用的 JPEG 质量
    layout: TextLayout | None = None
    crop_rect: Rect | None = None
    issues: list[ValidationIssue] = Field(default_factory=list)  # 渲染期发现的问题

    @property
    def size_kb(self) -> float:
        return self.size_bytes / 1024

    @property
    def is_html5(self) -> bool:
        return self.kind == "html5"


class ValidationResult(BaseModel):
    """单个格式的校验结果"""
    format_id: str
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    file_size_kb: float | None = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @classmethod
    def from_issues(
        cls,
        format_id: str,
        issues: list[ValidationIssue],
        file_size_kb: float | None = None,
    ) -> ValidationResult:
        errors = [i.message for i in issues if i.severity == "error"]
        warnings = [i.message for i in issues if i.severity == "warning"]
        return cls(
            format_id=format_id,
            valid=not errors,
            errors=errors,
            warnings=warnings,
            file_size_kb=file_size_kb,
            issues=list(issues),
        )

    @property
    def status(self) -> str:
        """ok / warning / error"""
        if self.errors:
            return "error"
        if self.warnings:
            return "warning"
        return "ok"


class ValidationSummary(BaseModel):
    """批量校验汇总"""
    ok: int = 0
    warning: int = 0
    error: int = 0
    total: int = 0


class ExportManifestEntry(BaseModel):
    """manifest 中的单个已打包格式"""
    format_id: str
    name: str
    width: int
    height: int
    type: str
    platform: str
    category: str
    output_path: str
    status: str
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class ExcludedFormat(BaseModel):
    """未打包的格式及原因"""
    format_id: str
    name: str
    platform: str
    category: str
    reason: str


class CampaignInfo(BaseModel):
    """CSV 导入所需的投放信息"""
    name: str = "AdCreative Studio Export"
    ad_group: str = "Ad Group 1"
    headline: str = ""
    description: str = ""
    cta: str = ""
    landing_url: str = ""


class ExportManifest(BaseModel):
    """导出清单"""
    schema_version: str = "1.0"
    generated_at: datetime = Field(default_factory=datetime.now)
    campaign: CampaignInfo = Field(default_factory=CampaignInfo)
    entries: list[ExportManifestEntry] = Field(default_factory=list)
    excluded: list[ExcludedFormat] = Field(default_factory=list)
    summary: ValidationSummary = Field(default_factory=ValidationSummary)

    # 产物字节不进入 manifest.json
    artifacts: dict[str, RenderArtifact] = Field(default_factory=dict, exclude=True)

    def sorted_entries(self) -> list[ExportManifestEntry]:
        return sorted(self.entries, key=lambda e: e.format_id)

    def entries_for_platform(self, platform: str) -> list[ExportManifestEntry]:
        return [e for e in self.sorted_entries() if e.platform == platform]
