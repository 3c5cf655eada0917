"""
打包器 - 生成交付包和manifest

职责：
1. 按 {platform}/{category}/{W}x{H}.{ext} 组织产物（HTML5 为同名目录）
2. 按失败策略决定包含/排除，未打包格式列入 excluded 并注明原因
3. 生成manifest.json（按格式 id 排序）
4. 可选输出 Sklik / Google Ads 导入 CSV
5. 输出 package.zip（写盘或内存字节）

测试要点：
- test_output_paths: 路径规则
- test_manifest_structure: manifest结构
- test_failure_policy_exclude: 失败格式进入 excluded
- test_failure_policy_include: include 策略附带错误打包
- test_csv_rows: CSV 行数与平台对应
"""

from __future__ import annotations

import io
import json
import logging
import zipfile
from pathlib import Path

from pydantic import BaseModel

from ..config.runtime_config import ExportConfig
from ..interfaces import IPackager
from ..models import (
    CampaignInfo,
    ExcludedFormat,
    ExportManifest,
    ExportManifestEntry,
    FormatSpec,
    RenderArtifact,
    ValidationResult,
)
from ..validation import summarize
from .csv_export import build_platform_csvs

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


class FormatOutcome(BaseModel):
    """单个格式的渲染 + 校验结果"""
    format: FormatSpec
    artifact: RenderArtifact | None = None
    result: ValidationResult


def output_path_for(fmt: FormatSpec, artifact: RenderArtifact) -> str:
    """包内路径；HTML5 返回目录"""
    base = f"{fmt.platform_id}/{fmt.category_id}/{fmt.dims}"
    if artifact.is_html5:
        return f"{base}/"
    return f"{base}.{artifact.extension}"


class ExportPackager(IPackager):
    """打包器实现"""

    def __init__(self, config: ExportConfig | None = None):
        self.config = config or ExportConfig()

    def build_manifest(
        self,
        outcomes: list[FormatOutcome],
        campaign: CampaignInfo | None = None,
        failure_policy: str | None = None,
    ) -> ExportManifest:
        """
        汇总渲染结果为清单

        Args:
            outcomes: 各格式结果（顺序无关）
            campaign: CSV 投放信息
            failure_policy: exclude / include，None 时取配置
        """
        policy = failure_policy or self.config.failure_policy
        manifest = ExportManifest(
            campaign=campaign or CampaignInfo(
                name=self.config.campaign_name,
                ad_group=self.config.ad_group_name,
                landing_url=self.config.landing_url,
            ),
            summary=summarize([o.result for o in outcomes]),
        )

        for outcome in sorted(outcomes, key=lambda o: o.format.id):
            fmt, artifact, result = outcome.format, outcome.artifact, outcome.result

            if artifact is None:
                reason = "; ".join(result.errors) or "Render failed"
                manifest.excluded.append(self._excluded(fmt, f"Render failed: {reason}"))
                continue

            if result.errors and policy == "exclude":
                manifest.excluded.append(
                    self._excluded(fmt, "Validation failed: " + "; ".join(result.errors))
                )
                continue

            manifest.entries.append(
                ExportManifestEntry(
                    format_id=fmt.id,
                    name=fmt.name,
                    width=fmt.width,
                    height=fmt.height,
                    type=fmt.category_type.value,
                    platform=fmt.platform_id,
                    category=fmt.category_id,
                    output_path=output_path_for(fmt, artifact),
                    status=result.status,
                    warnings=list(result.warnings),
                    errors=list(result.errors),
                )
            )
            manifest.artifacts[fmt.id] = artifact

        return manifest

    @staticmethod
    def _excluded(fmt: FormatSpec, reason: str) -> ExcludedFormat:
        return ExcludedFormat(
            format_id=fmt.id,
            name=fmt.name,
            platform=fmt.platform_id,
            category=fmt.category_id,
            reason=reason,
        )

    def generate_manifest(self, manifest: ExportManifest) -> str:
        """生成manifest.json内容"""
        return json.dumps(manifest.model_dump(mode="json"), ensure_ascii=False, indent=2)

    def package_bytes(self, manifest: ExportManifest, write_csv: bool | None = None) -> bytes:
        """在内存中生成 zip"""
        write_csv = self.config.write_csv if write_csv is None else write_csv
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
            for entry in manifest.sorted_entries():
                artifact = manifest.artifacts.get(entry.format_id)
                if artifact is None:
                    logger.warning("Missing artifact for %s, skipped", entry.format_id)
                    continue
                if artifact.is_html5:
                    for name, data in sorted(artifact.files.items()):
                        zf.writestr(f"{entry.output_path}{name}", data)
                elif artifact.data is not None:
                    zf.writestr(entry.output_path, artifact.data)

            zf.writestr(MANIFEST_NAME, self.generate_manifest(manifest))

            if write_csv:
                for name, content in build_platform_csvs(manifest).items():
                    zf.writestr(name, content)

        return buf.getvalue()

    def package(self, manifest: ExportManifest, output_path: Path, write_csv: bool | None = None) -> Path:
        """打包交付产物并写盘"""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(self.package_bytes(manifest, write_csv))
        logger.info(
            "Packaged %d formats (%d excluded) -> %s",
            len(manifest.entries), len(manifest.excluded), output_path,
        )
        return output_path
