"""
数据模型单元测试

每个模块完成后必须运行：pytest tests/unit/test_models.py -v
"""

import pytest
from pydantic import TypeAdapter, ValidationError

from adcreative.interfaces import (
    CropError,
    IssueCode,
    LayoutOverflow,
    SafeZoneWarning,
)
from adcreative.models import (
    Anchor,
    BrandKit,
    CropSpec,
    DrawCommand,
    DrawText,
    ExportJob,
    ExportManifest,
    ExportManifestEntry,
    JobStatus,
    LogoVariant,
    PerFormatTextOverride,
    Rect,
    RenderArtifact,
    SafeZone,
    TextAlign,
    TextElementLayout,
    ValidationIssue,
    ValidationResult,
)
from adcreative.pipeline import StageEnum


class TestRect:
    """矩形测试"""

    def test_right_bottom(self):
        rect = Rect(x=10, y=20, width=100, height=50)
        assert rect.right == 110
        assert rect.bottom == 70

    def test_contains(self):
        outer = Rect(x=0, y=0, width=300, height=250)
        assert outer.contains(Rect(x=10, y=10, width=100, height=100))
        assert not outer.contains(Rect(x=250, y=10, width=100, height=100))

    def test_intersects(self):
        """仅接触边界不算重叠"""
        rect = Rect(x=0, y=0, width=100, height=50)
        assert rect.intersects(Rect(x=90, y=40, width=20, height=20))
        assert not rect.intersects(Rect(x=100, y=0, width=20, height=20))
        assert not rect.intersects(Rect(x=0, y=60, width=100, height=10))


class TestSafeZone:
    """安全区测试"""

    def test_visible_rect(self):
        zone = SafeZone(top=30, bottom=30, left=135, right=135)
        rect = zone.visible_rect(970, 310)
        assert (rect.x, rect.y, rect.width, rect.height) == (135, 30, 700, 250)

    def test_format_rejects_oversized_zone(self, format_factory):
        """安全区不能超出格式画布"""
        with pytest.raises(ValidationError):
            format_factory(300, 250, safe_zone=SafeZone(top=200, bottom=100))


class TestAnchor:
    """锚点测试"""

    @pytest.mark.parametrize(
        "anchor,row,column",
        [
            (Anchor.TOP_LEFT, "top", "left"),
            (Anchor.CENTER, "center", "center"),
            (Anchor.CENTER_RIGHT, "center", "right"),
            (Anchor.BOTTOM_CENTER, "bottom", "center"),
        ],
    )
    def test_row_column(self, anchor, row, column):
        assert anchor.row == row
        assert anchor.column == column


class TestContentModels:
    """会话级配置测试"""

    def test_crop_zoom_at_least_one(self):
        with pytest.raises(ValidationError):
            CropSpec(zoom=0.5)

    def test_crop_pan_range(self):
        with pytest.raises(ValidationError):
            CropSpec(crop_x=1.5)

    def test_override_multiplier_range(self):
        """逐格式倍率 0.5 - 2.0"""
        PerFormatTextOverride(font_size_multiplier=2.0)
        with pytest.raises(ValidationError):
            PerFormatTextOverride(font_size_multiplier=3.0)

    def test_brand_logo_fallback(self):
        """缺失的变体回退到主 Logo"""
        brand = BrandKit(logo_main=b"main", logo_dark=b"dark")
        assert brand.has_logo
        assert brand.get_logo(LogoVariant.DARK) == b"dark"
        assert brand.get_logo(LogoVariant.LIGHT) == b"main"
        assert not BrandKit().has_logo


class TestGeometry:
    """排版几何测试"""

    def test_element_rect_by_alignment(self):
        """外接矩形随对齐方式换算"""
        element = TextElementLayout(
            role="headline", visible=True, font_size=20, align=TextAlign.CENTER,
            lines=["a", "b"], line_height=23, x=150, y=10, width=100,
        )
        rect = element.rect
        assert rect.x == 100
        assert rect.height == 46
        assert element.line_count == 2

    def test_draw_command_discriminator(self):
        """绘制指令按 op 区分"""
        adapter = TypeAdapter(DrawCommand)
        command = adapter.validate_python({"op": "drawText", "text": "Hi", "x": 1, "y": 2, "font_size": 12})
        assert isinstance(command, DrawText)


class TestValidationModels:
    """校验结果测试"""

    def test_issue_from_error(self):
        """blocking 决定严重级别"""
        error = ValidationIssue.from_error(CropError("bad"))
        warning = ValidationIssue.from_error(SafeZoneWarning("zone"))
        assert error.severity == "error"
        assert error.code == IssueCode.CROP_ERROR
        assert warning.severity == "warning"
        assert ValidationIssue.from_error(LayoutOverflow("x")).severity == "warning"

    def test_result_status(self):
        issues = [
            ValidationIssue.warning(IssueCode.SAFE_ZONE, "zone"),
        ]
        result = ValidationResult.from_issues("f", issues)
        assert result.valid
        assert result.status == "warning"
        assert result.warnings == ["zone"]

        issues.append(ValidationIssue.error(IssueCode.SIZE_LIMIT_EXCEEDED, "too big"))
        result = ValidationResult.from_issues("f", issues)
        assert not result.valid
        assert result.status == "error"

        assert ValidationResult.from_issues("f", []).status == "ok"

    def test_artifact_size_kb(self):
        artifact = RenderArtifact(format_id="f", kind="raster", extension="jpg", data=b"x" * 2048, size_bytes=2048)
        assert artifact.size_kb == 2
        assert not artifact.is_html5

    def test_manifest_excludes_artifacts(self):
        """产物字节不进入 manifest 序列化"""
        manifest = ExportManifest()
        manifest.entries.append(
            ExportManifestEntry(
                format_id="b", name="B", width=1, height=1, type="image",
                platform="google", category="display", output_path="google/display/1x1.jpg", status="ok",
            )
        )
        manifest.artifacts["b"] = RenderArtifact(format_id="b", kind="raster", extension="jpg")
        dumped = manifest.model_dump(mode="json")
        assert "artifacts" not in dumped
        assert manifest.entries_for_platform("google")[0].format_id == "b"
        assert manifest.entries_for_platform("sklik") == []


class TestExportJob:
    """任务模型测试"""

    def test_lifecycle(self):
        job = ExportJob(job_id="job-1")
        assert job.status == JobStatus.QUEUED
        job.mark_running("RENDER")
        assert job.status == JobStatus.RUNNING
        assert job.started_at is not None
        job.mark_succeeded()
        assert job.status == JobStatus.SUCCEEDED
        assert job.progress.percent == 100

    def test_mark_running_default_stage(self):
        """默认阶段是流水线的第一个阶段"""
        job = ExportJob(job_id="job-0")
        job.mark_running()
        assert job.progress.stage == StageEnum.RESOLVE_FORMATS.value

    def test_cancel(self):
        job = ExportJob(job_id="job-2")
        job.cancel()
        assert job.is_cancelled
        job.mark_cancelled()
        assert job.status == JobStatus.CANCELLED

    def test_mark_failed(self):
        job = ExportJob(job_id="job-3")
        job.mark_failed("boom")
        assert job.status == JobStatus.FAILED
        assert job.errors == ["boom"]

    def test_add_flag_dedup(self):
        job = ExportJob(job_id="job-4")
        job.add_flag("format_failed:x")
        job.add_flag("format_failed:x")
        assert job.flags == ["format_failed:x"]
