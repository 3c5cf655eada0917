"""
约束校验器 - 按格式约束校验渲染产物

职责：
1. 位图：体积 > max_size_kb 为错误；超过上限 90% 给出提示
2. 有安全区的格式始终给出提示（引用安全区说明）
3. 渲染期问题（文字溢出、焦点回退、HTML5 合规）原样并入
4. HTML5：整包体积对照 max_size_kb
5. 文案检查：未替换的占位符（%DATE% 等）为错误，按格式宽度的建议字数为提示
6. 汇总 ok / warning / error 计数

产物本身的有效性只取决于体积；文案错误以 unfilled_placeholder 单独记入

测试要点：
- test_raster_valid_under_limit: 未超限即有效
- test_raster_error_over_limit: 超限报错且包含实测值与上限
- test_near_limit_warning: 超过上限 90% 提示
- test_safe_zone_always_warns: 安全区提示不依赖错误
- test_placeholder_is_error: 未替换占位符报错
- test_text_length_by_width: 按最接近的宽度档给出字数建议
- test_summarize: 汇总计数
"""

from __future__ import annotations

import re

from ..interfaces import (
    AdCreativeError,
    IConstraintValidator,
    IssueCode,
    SafeZoneWarning,
    SizeLimitExceeded,
)
from ..models import (
    FormatSpec,
    PerFormatTextOverride,
    RenderArtifact,
    TextOverlaySpec,
    ValidationIssue,
    ValidationResult,
    ValidationSummary,
)

# 超过上限该比例时提示
NEAR_LIMIT_RATIO = 0.9

# 未替换的模板占位符，如 %DATE% / %DISCOUNT% / %PRICE%
PLACEHOLDER_RE = re.compile(r"%[A-Z_]+%", re.I)

# 格式宽度档 -> 建议最大字数 (headline, subheadline)
TEXT_LENGTH_LIMITS: dict[int, tuple[int, int]] = {
    300: (25, 40),
    320: (25, 40),
    336: (30, 45),
    480: (35, 50),
    728: (50, 70),
    970: (60, 80),
    1200: (40, 60),
    1920: (50, 70),
}


def check_size_limit(size_kb: float, max_size_kb: float) -> tuple[bool, float, float]:
    """(是否通过, 占上限百分比, 超出 KB)"""
    percentage = size_kb / max_size_kb * 100
    return size_kb <= max_size_kb, percentage, max(0.0, size_kb - max_size_kb)


def text_length_limits(width: float) -> tuple[int, int]:
    """最接近的宽度档（距离相同取较窄档）"""
    closest = min(sorted(TEXT_LENGTH_LIMITS), key=lambda w: abs(w - width))
    return TEXT_LENGTH_LIMITS[closest]


def find_placeholders(text: str) -> list[str]:
    """按出现顺序去重"""
    found: list[str] = []
    for match in PLACEHOLDER_RE.findall(text):
        token = match.upper()
        if token not in found:
            found.append(token)
    return found


class ConstraintValidator(IConstraintValidator):
    """约束校验器实现"""

    def safe_zone_issues(self, fmt: FormatSpec) -> list[ValidationIssue]:
        if fmt.safe_zone is None:
            return []
        description = fmt.safe_zone.description or "keep key content inside the visible area"
        return [ValidationIssue.from_error(SafeZoneWarning(f"Safe zone: {description}"))]

    def size_issues(self, fmt: FormatSpec, artifact: RenderArtifact) -> list[ValidationIssue]:
        label = "HTML5 package size" if artifact.is_html5 else "File size"
        passed, percentage, _ = check_size_limit(artifact.size_kb, fmt.max_size_kb)
        if not passed:
            return [
                ValidationIssue.from_error(
                    SizeLimitExceeded(
                        f"{label} {artifact.size_kb:.1f} KB exceeds limit {fmt.max_size_kb:g} KB"
                    )
                )
            ]
        if percentage > NEAR_LIMIT_RATIO * 100:
            return [
                ValidationIssue.warning(
                    IssueCode.SIZE_NEAR_LIMIT,
                    f"{label} {artifact.size_kb:.1f} KB is close to limit {fmt.max_size_kb:g} KB",
                )
            ]
        return []

    def content_issues(
        self,
        fmt: FormatSpec,
        overlay: TextOverlaySpec,
        override: PerFormatTextOverride | None = None,
    ) -> list[ValidationIssue]:
        """文案检查（隐藏的元素不检查）"""
        if not overlay.enabled:
            return []
        override = override or PerFormatTextOverride()
        fields = [
            ("headline", overlay.headline, override.hide_headline),
            ("subheadline", overlay.subheadline, override.hide_subheadline),
            ("cta", overlay.cta, override.hide_cta),
        ]

        issues: list[ValidationIssue] = []
        for name, text, hidden in fields:
            if hidden:
                continue
            for token in find_placeholders(text):
                issues.append(
                    ValidationIssue.error(IssueCode.UNFILLED_PLACEHOLDER, f"Unfilled placeholder {token} in {name}")
                )

        headline_max, subheadline_max = text_length_limits(fmt.width)
        for name, text, hidden, limit in (
            ("Headline", overlay.headline, override.hide_headline, headline_max),
            ("Subheadline", overlay.subheadline, override.hide_subheadline, subheadline_max),
        ):
            if not hidden and len(text) > limit:
                issues.append(
                    ValidationIssue.warning(
                        IssueCode.TEXT_LENGTH,
                        f"{name} has {len(text)} characters (recommended max {limit} for width {fmt.width})",
                    )
                )
        return issues

    def validate(
        self,
        fmt: FormatSpec,
        artifact: RenderArtifact,
        overlay: TextOverlaySpec | None = None,
        override: PerFormatTextOverride | None = None,
    ) -> ValidationResult:
        """按格式约束校验渲染产物"""
        issues: list[ValidationIssue] = list(artifact.issues)
        issues.extend(self.size_issues(fmt, artifact))
        if overlay is not None:
            issues.extend(self.content_issues(fmt, overlay, override))
        issues.extend(self.safe_zone_issues(fmt))
        return ValidationResult.from_issues(fmt.id, issues, file_size_kb=round(artifact.size_kb, 2))

    def validate_failure(
        self,
        fmt: FormatSpec,
        error: AdCreativeError,
        extra: list[ValidationIssue] | None = None,
    ) -> ValidationResult:
        """渲染失败 -> 校验结果（安全区提示照常给出）"""
        issues = list(extra or [])
        issues.append(ValidationIssue.from_error(error))
        issues.extend(self.safe_zone_issues(fmt))
        return ValidationResult.from_issues(fmt.id, issues)


def summarize(results: list[ValidationResult]) -> ValidationSummary:
    """统计 ok / warning / error"""
    summary = ValidationSummary(total=len(results))
    for result in results:
        status = result.status
        if status == "error":
            summary.error += 1
        elif status == "warning":
            summary.warning += 1
        else:
            summary.ok += 1
    return summary
