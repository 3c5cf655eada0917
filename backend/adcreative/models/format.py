"""
格式模型 - 格式目录中的单个输出尺寸及其平台约束

对应 format_catalog.yaml 的 platforms.<platform>.categories.<category>.formats
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class CategoryType(str, Enum):
    """分类类型（决定使用哪个合成后端）"""
    IMAGE = "image"
    BRANDING = "branding"
    VIDEO = "video"
    HTML5 = "html5"


class Rect(BaseModel):
    """矩形（像素坐标，左上角为原点）"""
    x: float
    y: float
    width: float
    height: float

    model_config = {"frozen": True}

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, other: Rect, tol: float = 1e-6) -> bool:
        """判断 other 是否完全位于本矩形内"""
        return (
            other.x >= self.x - tol
            and other.y >= self.y - tol
            and other.right <= self.right + tol
            and other.bottom <= self.bottom + tol
        )

    def intersects(self, other: Rect) -> bool:
        """两个矩形是否有面积重叠（仅接触边界不算）"""
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )


class SafeZone(BaseModel):
    """安全区 - 被页面框架遮挡的死区与可见子矩形（仅提示）"""
    top: float = 0
    bottom: float = 0
    left: float = 0
    right: float = 0
    center_width: float | None = None
    visible_height: float | None = None
    description: str = ""

    model_config = {"frozen": True}

    def visible_rect(self, width: float, height: float) -> Rect:
        """可见子矩形"""
        return Rect(
            x=self.left,
            y=self.top,
            width=width - self.left - self.right,
            height=height - self.top - self.bottom,
        )


class FormatSpec(BaseModel):
    """单个输出格式"""
    id: str
    platform_id: str
    category_id: str
    name: str
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    max_size_kb: float = Field(..., gt=0)
    allowed_file_types: list[str] = Field(default_factory=list)
    category_type: CategoryType = CategoryType.IMAGE
    safe_zone: SafeZone | None = None
    is_video: bool = False
    ratio: str | None = None
    notes: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_safe_zone(self) -> FormatSpec:
        if self.safe_zone is not None:
            canvas = Rect(x=0, y=0, width=self.width, height=self.height)
            visible = self.safe_zone.visible_rect(self.width, self.height)
            if visible.width <= 0 or visible.height <= 0 or not canvas.contains(visible):
                raise ValueError(
                    f"safe zone of {self.id} does not fit inside {self.width}x{self.height}"
                )
        return self

    @property
    def dims(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def is_html5(self) -> bool:
        return self.category_type == CategoryType.HTML5

    @property
    def is_renderable(self) -> bool:
        """视频格式不由本引擎渲染"""
        return not self.is_video

    def allows(self, file_type: str) -> bool:
        """是否允许某文件类型（jpg/png/zip...）"""
        aliases = {"jpeg": "jpg"}
        wanted = aliases.get(file_type.lower(), file_type.lower())
        return any(aliases.get(t.lower(), t.lower()) == wanted for t in self.allowed_file_types)


class FormatCategory(BaseModel):
    """格式分类"""
    id: str
    platform_id: str
    name: str
    type: CategoryType = CategoryType.IMAGE
    max_size_kb: float = Field(..., gt=0)
    file_types: list[str] = Field(default_factory=list)
    description: str = ""
    docs_url: str | None = None
    formats: list[FormatSpec] = Field(default_factory=list)

    model_config = {"frozen": True}


class Platform(BaseModel):
    """广告平台"""
    id: str
    name: str
    categories: dict[str, FormatCategory] = Field(default_factory=dict)

    model_config = {"frozen": True}
