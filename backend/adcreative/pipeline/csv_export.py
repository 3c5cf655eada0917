"""
平台导入 CSV - Sklik（; 分隔）与 Google Ads Editor（, 分隔）

每个已打包格式一行；平台没有已打包格式时不生成对应文件
"""

from __future__ import annotations

import csv
import io

from ..models import ExportManifest, ExportManifestEntry

SKLIK_CSV_NAME = "sklik-import.csv"
GOOGLE_ADS_CSV_NAME = "google-ads-import.csv"
SUMMARY_CSV_NAME = "creatives-summary.csv"

SKLIK_HEADER = ["Campaign", "AdGroup", "Headline", "Description", "Image", "URL"]
GOOGLE_ADS_HEADER = ["Campaign", "AdGroup", "Headlines", "Descriptions", "URL", "Image"]
SUMMARY_HEADER = [
    "Platform", "Category", "Format Name", "Width", "Height", "Type", "Filename", "Headline", "CTA",
]


def _render(header: list[str], rows: list[list[str]], delimiter: str) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buf.getvalue()


def build_sklik_csv(manifest: ExportManifest) -> str:
    """sklik-import.csv 内容（无 Sklik 格式时返回空串）"""
    entries = manifest.entries_for_platform("sklik")
    if not entries:
        return ""
    c = manifest.campaign
    rows = [
        [c.name, c.ad_group, c.headline, c.description, e.output_path, c.landing_url]
        for e in entries
    ]
    return _render(SKLIK_HEADER, rows, ";")


def build_google_ads_csv(manifest: ExportManifest) -> str:
    """google-ads-import.csv 内容（无 Google 格式时返回空串）"""
    entries = manifest.entries_for_platform("google")
    if not entries:
        return ""
    c = manifest.campaign
    rows = [
        [c.name, c.ad_group, c.headline, c.description, c.landing_url, e.output_path]
        for e in entries
    ]
    return _render(GOOGLE_ADS_HEADER, rows, ",")


def build_summary_csv(manifest: ExportManifest) -> str:
    """全部已打包格式的概览"""
    c = manifest.campaign

    def row(e: ExportManifestEntry) -> list[str]:
        return [e.platform, e.category, e.name, str(e.width), str(e.height), e.type, e.output_path, c.headline, c.cta]

    return _render(SUMMARY_HEADER, [row(e) for e in manifest.sorted_entries()], ",")


def build_platform_csvs(manifest: ExportManifest) -> dict[str, str]:
    """文件名 -> CSV 内容（只包含非空文件）"""
    files = {
        SKLIK_CSV_NAME: build_sklik_csv(manifest),
        GOOGLE_ADS_CSV_NAME: build_google_ads_csv(manifest),
    }
    if manifest.entries:
        files[SUMMARY_CSV_NAME] = build_summary_csv(manifest)
    return {name: content for name, content in files.items() if content}
