"""
HTML5 合成器 - 与位图共用排版几何，输出 index.html / styles.css / script.js

职责：
1. 背景为裁切后的无文字位图（background.jpg），Logo 单独输出（logo.png）
2. 文字块用绝对定位 + flex 对齐表达锚点，字号/换行/CTA 矩形取自 TextLayout
3. clickTag 作为唯一跳转方式（设置到外层链接的 href）
4. 生成期合规检查：禁用 API、<video> 标签、代码体积

测试要点：
- test_html5_triad: 生成三件套 + 背景
- test_ad_size_meta: meta ad.size 声明尺寸
- test_click_tag_only_navigation: 不含 window.open
- test_compliance_flags_banned_api: 禁用 API 报错
- test_ad_copy_not_scanned_for_apis: 文案中的同名字样不算违规
- test_geometry_matches_layout: CSS 字号与 TextLayout 一致
"""

from __future__ import annotations

import html
import io
import logging
import re

from ..config.runtime_config import Html5Config, RenderConfig
from ..interfaces import Html5ComplianceError, IComposer, LayoutOverflow, UnsupportedOutputError
from ..layout.commands import resolve_cta_color, resolve_shadow, resolve_text_color
from ..models import (
    FormatSpec,
    LogoPlacement,
    RenderArtifact,
    RenderInput,
    TextAlign,
    TextElementLayout,
    TextLayout,
    TextOverlaySpec,
    ValidationIssue,
)
from .raster import RasterComposer, logo_overlap_issues, parse_color, select_logo
from .timelines import build_timeline, compile_timeline

logger = logging.getLogger(__name__)


def _px(value: float) -> str:
    return f"{round(value, 2):g}px"


def _css_color(value: str) -> str:
    r, g, b, a = parse_color(value)
    if a == 255:
        return f"#{r:02x}{g:02x}{b:02x}"
    return f"rgba({r},{g},{b},{round(a / 255, 2):g})"


_INLINE_SCRIPT_RE = re.compile(r"<script\b[^>]*>(.*?)</script\s*>", re.I | re.S)
_EVENT_ATTR_RE = re.compile(r"""\son[a-z]+\s*=\s*("[^"]*"|'[^']*'|[^\s>]+)""", re.I)


def executable_code(files: dict[str, bytes]) -> str:
    """可执行代码：.js 文件 + HTML 内联 <script> 与 on* 事件属性（不含正文文字）"""
    parts: list[str] = []
    for name, data in files.items():
        text = data.decode("utf-8", errors="replace")
        if name.endswith(".js"):
            parts.append(text)
        elif name.endswith(".html"):
            parts.extend(_INLINE_SCRIPT_RE.findall(text))
            parts.extend(html.unescape(value) for value in _EVENT_ATTR_RE.findall(text))
    return "\n".join(parts)


def check_compliance(
    files: dict[str, bytes],
    banned_apis: list[str],
    code_budget_kb: float,
) -> list[ValidationIssue]:
    """
    HTML5 合规检查（仅检查代码文件）

    禁用 API 只在可执行代码中查找，广告文案中出现同样的字样不算违规

    Returns:
        禁用 API / <video> 为 error，代码体积超预算为 warning
    """
    issues: list[ValidationIssue] = []
    code = {name: data for name, data in files.items() if name.endswith((".html", ".css", ".js"))}
    script = executable_code(code)

    for api in banned_apis:
        if api in script:
            issues.append(ValidationIssue.from_error(Html5ComplianceError(f"Banned API used: {api}")))

    markup = "\n".join(data.decode("utf-8", errors="replace") for name, data in code.items() if name.endswith(".html"))
    if re.search(r"<video\b", markup, re.I):
        issues.append(ValidationIssue.from_error(Html5ComplianceError("Tag <video> is not allowed")))

    code_kb = sum(len(data) for data in code.values()) / 1024
    if code_kb > code_budget_kb:
        issues.append(
            ValidationIssue.warning(
                Html5ComplianceError.code,
                f"HTML5 code payload {code_kb:.1f} KB exceeds budget {code_budget_kb:g} KB",
            )
        )
    return issues


class Html5Composer(IComposer):
    """HTML5 合成器"""

    def __init__(
        self,
        config: Html5Config | None = None,
        render_config: RenderConfig | None = None,
        raster: RasterComposer | None = None,
    ):
        self.config = config or Html5Config()
        self.raster = raster or RasterComposer(render_config)

    def compose(self, fmt: FormatSpec, source: RenderInput) -> RenderArtifact:
        """为单个格式生成 HTML5 文件集"""
        if not fmt.is_renderable:
            raise UnsupportedOutputError(f"Unsupported output type for {fmt.id}: video")

        canvas, crop_rect, _, _ = self.raster.render_canvas(
            fmt, source, include_text=False, include_logo=False
        )
        layout = self.raster.compute_layout(fmt, source)
        selected = select_logo(canvas, fmt.width, fmt.height, source.brand, self.raster.decoder, layout)

        files: dict[str, bytes] = {
            "background.jpg": self.raster.encode(canvas, "jpg"),
        }
        placement: LogoPlacement | None = None
        if selected is not None:
            placement, logo = selected
            buf = io.BytesIO()
            logo.image.save(buf, format="PNG", optimize=True)
            files["logo.png"] = buf.getvalue()

        animation = source.animation or self.config.default_animation
        files["index.html"] = self.build_html(fmt, layout, placement).encode("utf-8")
        files["styles.css"] = self.build_css(fmt, layout, source, placement).encode("utf-8")
        files["script.js"] = self.build_script(fmt, layout, animation).encode("utf-8")

        issues: list[ValidationIssue] = []
        if layout is not None and layout.overflow:
            issues.append(ValidationIssue.from_error(LayoutOverflow("; ".join(layout.overflow_reasons))))
        issues.extend(logo_overlap_issues(placement))
        issues.extend(check_compliance(files, self.config.banned_apis, self.config.code_budget_kb))

        size_bytes = sum(len(data) for data in files.values())
        logger.debug("Generated HTML5 %s: %.1f KB", fmt.id, size_bytes / 1024)

        return RenderArtifact(
            format_id=fmt.id,
            kind="html5",
            extension="html5",
            files=files,
            size_bytes=size_bytes,
            quality=self.raster.config.jpeg_quality,
            layout=layout,
            crop_rect=crop_rect,
            issues=issues,
        )

    # === index.html ===

    def build_html(
        self,
        fmt: FormatSpec,
        layout: TextLayout | None,
        logo: LogoPlacement | None,
    ) -> str:
        def text_block(element: TextElementLayout) -> str:
            lines = "<br>".join(html.escape(line) for line in element.lines)
            return f'      <div class="{element.role}" id="{element.role}">{lines}</div>\n'

        content = ""
        cta = ""
        if layout is not None:
            for element in (layout.headline, layout.subheadline):
                if element.visible:
                    content += text_block(element)
            if layout.cta.visible:
                cta = f'    <div class="cta" id="cta">{html.escape(layout.cta.text)}</div>\n'

        logo_tag = '    <img src="logo.png" alt="" class="logo" id="logo">\n' if logo else ""

        return (
            "<!DOCTYPE html>\n"
            '<html lang="cs">\n'
            "<head>\n"
            '  <meta charset="UTF-8">\n'
            f'  <meta name="ad.size" content="width={fmt.width},height={fmt.height}">\n'
            f"  <title>Banner {fmt.dims}</title>\n"
            '  <link rel="stylesheet" href="styles.css">\n'
            "</head>\n"
            "<body>\n"
            '  <a class="banner" id="banner" target="_blank">\n'
            '    <img src="background.jpg" alt="" class="background" id="background">\n'
            '    <div class="content" id="content">\n'
            f"{content}"
            "    </div>\n"
            f"{cta}"
            f"{logo_tag}"
            "  </a>\n"
            f'  <script src="{self.config.animation_library_url}"></script>\n'
            '  <script src="script.js"></script>\n'
            "</body>\n"
            "</html>\n"
        )

    # === styles.css ===

    def build_css(
        self,
        fmt: FormatSpec,
        layout: TextLayout | None,
        source: RenderInput,
        logo: LogoPlacement | None,
    ) -> str:
        overlay: TextOverlaySpec = source.overlay
        brand = source.brand
        font_family = layout.font_family if layout else brand.font_family

        rules = [
            f"/* Banner {fmt.dims} */",
            "* {\n  margin: 0;\n  padding: 0;\n  box-sizing: border-box;\n}",
            "body {\n  overflow: hidden;\n}",
            (
                ".banner {\n"
                "  display: block;\n"
                f"  width: {fmt.width}px;\n"
                f"  height: {fmt.height}px;\n"
                "  position: relative;\n"
                "  overflow: hidden;\n"
                "  cursor: pointer;\n"
                "  text-decoration: none;\n"
                f"  font-family: {font_family};\n"
                "}"
            ),
            (
                ".background {\n"
                "  position: absolute;\n"
                "  top: 0;\n"
                "  left: 0;\n"
                "  width: 100%;\n"
                "  height: 100%;\n"
                "  transform-origin: center center;\n"
                "}"
            ),
        ]

        if layout is not None:
            rules.append(self._content_css(layout))
            color = _css_color(resolve_text_color(overlay, brand))
            for element in (layout.headline, layout.subheadline):
                if element.visible:
                    rules.append(self._element_css(element, color, overlay))
            if layout.cta.visible and layout.cta.rect is not None:
                rect = layout.cta.rect
                rules.append(
                    ".cta {\n"
                    "  position: absolute;\n"
                    f"  left: {_px(rect.x)};\n"
                    f"  top: {_px(rect.y)};\n"
                    f"  width: {_px(rect.width)};\n"
                    f"  height: {_px(rect.height)};\n"
                    f"  line-height: {_px(rect.height)};\n"
                    f"  border-radius: {_px(layout.cta.radius)};\n"
                    f"  background: {_css_color(resolve_cta_color(overlay, brand))};\n"
                    f"  color: {_css_color(overlay.cta_text_color)};\n"
                    f"  font-size: {_px(layout.cta.font_size)};\n"
                    "  font-weight: bold;\n"
                    "  text-align: center;\n"
                    "  white-space: nowrap;\n"
                    "}"
                )
            rules.append("/* Initial states for animation */\n.headline,\n.subheadline,\n.cta {\n  opacity: 0;\n}")

        if logo is not None:
            rules.append(
                ".logo {\n"
                "  position: absolute;\n"
                f"  left: {_px(logo.rect.x)};\n"
                f"  top: {_px(logo.rect.y)};\n"
                f"  width: {_px(logo.rect.width)};\n"
                f"  height: {_px(logo.rect.height)};\n"
                f"  opacity: {round(logo.opacity, 2):g};\n"
                "}"
            )

        return "\n\n".join(rules) + "\n"

    @staticmethod
    def _content_css(layout: TextLayout) -> str:
        width = layout.max_text_width
        if layout.align == TextAlign.CENTER:
            left = layout.origin_x - width / 2
            align_items = "center"
        elif layout.align == TextAlign.RIGHT:
            left = layout.origin_x - width
            align_items = "flex-end"
        else:
            left = layout.origin_x
            align_items = "flex-start"
        return (
            ".content {\n"
            "  position: absolute;\n"
            f"  left: {_px(left)};\n"
            f"  top: {_px(layout.origin_y)};\n"
            f"  width: {_px(width)};\n"
            "  display: flex;\n"
            "  flex-direction: column;\n"
            f"  align-items: {align_items};\n"
            f"  text-align: {layout.align.value};\n"
            "}"
        )

    @staticmethod
    def _element_css(element: TextElementLayout, color: str, overlay: TextOverlaySpec) -> str:
        shadow = resolve_shadow(overlay, element)
        shadow_css = ""
        if shadow is not None:
            shadow_css = (
                f"  text-shadow: {_px(shadow.offset_x)} {_px(shadow.offset_y)} "
                f"{_px(shadow.blur)} {_css_color(shadow.color)};\n"
            )
        return (
            f".{element.role} {{\n"
            f"  color: {color};\n"
            f"  font-size: {_px(element.font_size)};\n"
            f"  line-height: {_px(element.line_height)};\n"
            f"  font-weight: {'bold' if element.bold else 'normal'};\n"
            "  margin-bottom: 4px;\n"
            "  white-space: nowrap;\n"
            f"{shadow_css}"
            "}"
        )

    # === script.js ===

    def build_script(self, fmt: FormatSpec, layout: TextLayout | None, animation: str) -> str:
        timeline = build_timeline(animation, self.config.duration, self.config.loop)
        present = {"#background"}
        if layout is not None:
            if layout.headline.visible:
                present.add("#headline")
            if layout.subheadline.visible:
                present.add("#subheadline")
            if layout.cta.visible:
                present.add("#cta")
        body = compile_timeline(timeline, present)

        return (
            f"// Banner {fmt.dims}\n"
            "var clickTag = \"\";\n"
            "\n"
            "// clickTag is the only navigation: the banner link points at it\n"
            "document.getElementById(\"banner\").setAttribute(\"href\", clickTag);\n"
            "\n"
            "// Wait for the animation library\n"
            "function initAnimation() {\n"
            "  if (typeof gsap === \"undefined\") {\n"
            "    setTimeout(initAnimation, 100);\n"
            "    return;\n"
            "  }\n"
            f"{body}\n"
            "}\n"
            "\n"
            "if (document.readyState === \"loading\") {\n"
            "  document.addEventListener(\"DOMContentLoaded\", initAnimation);\n"
            "} else {\n"
            "  initAnimation();\n"
            "}\n"
        )
