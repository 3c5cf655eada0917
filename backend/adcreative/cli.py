"""
命令行入口 - adcreative export

示例：
    adcreative export photo.jpg -f google/display -f sklik-bannery-970x310 \\
        --headline "Black Friday Sleva 50%" --cta "Koupit" -o out/package.zip --csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import RuntimeConfig, get_config, load_catalog
from .interfaces import AdCreativeError
from .models import Anchor, CropMode, CropSpec, FontSizeTier, TextOverlaySpec
from .pipeline import ExportExecutor, ExportRequest
from .render import ANIMATION_NAMES

logger = logging.getLogger(__name__)


def setup_logging(config: RuntimeConfig) -> None:
    """按配置初始化根日志"""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.logging.log_to_file:
        config.ensure_dirs()
        handlers.append(logging.FileHandler(config.storage_dir / "adcreative.log", encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, config.logging.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adcreative",
        description="Render one source image into many ad formats and package the results.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="导出格式包")
    export.add_argument("source", help="源图路径")
    export.add_argument(
        "-f", "--format",
        dest="formats",
        action="append",
        default=[],
        help="格式 id、平台或 平台/分类（可重复）",
    )
    export.add_argument("--headline", default="")
    export.add_argument("--subheadline", default="")
    export.add_argument("--cta", default="")
    export.add_argument("--anchor", choices=[a.value for a in Anchor if a != Anchor.CUSTOM],
                        default=Anchor.BOTTOM_LEFT.value)
    export.add_argument("--tier", choices=[t.value for t in FontSizeTier], default=FontSizeTier.MEDIUM.value)
    export.add_argument("--animation", choices=ANIMATION_NAMES, default=None)
    export.add_argument("--auto-crop", action="store_true", help="使用焦点自动裁切")
    export.add_argument("-o", "--output", default="package.zip", help="输出 zip 路径（默认：package.zip）")
    export.add_argument("--csv", action="store_true", help="附带平台导入 CSV")
    export.add_argument("--config", default="", help="可选：runtime.yaml 路径")

    formats = sub.add_parser("formats", help="列出格式目录")
    formats.add_argument("--config", default="", help="可选：runtime.yaml 路径")
    return parser


def _run_export(args: argparse.Namespace, config: RuntimeConfig) -> int:
    source = Path(args.source)
    if not source.exists():
        print(f"Source image not found: {source}", file=sys.stderr)
        return 2
    if not args.formats:
        print("At least one --format is required", file=sys.stderr)
        return 2

    request = ExportRequest(
        source=source.read_bytes(),
        formats=args.formats,
        overlay=TextOverlaySpec(
            headline=args.headline,
            subheadline=args.subheadline,
            cta=args.cta,
            position=Anchor(args.anchor),
            font_size_tier=FontSizeTier(args.tier),
        ),
        crop=CropSpec(mode=CropMode.AUTO if args.auto_crop else CropMode.MANUAL),
        animation=args.animation,
        write_csv=args.csv,
    )

    def on_progress(current: int, total: int, format_id: str) -> None:
        logger.info("[%d/%d] %s", current, total, format_id)

    executor = ExportExecutor(config=config, progress_callback=on_progress)
    try:
        result = executor.run(request, output_path=Path(args.output))
    except AdCreativeError as e:
        print(f"Export failed: {e}", file=sys.stderr)
        return 1

    for item in result.results:
        print(f"{item.status.upper():8} {item.format_id}")
        for message in item.errors:
            print(f"         error: {message}")
        for message in item.warnings:
            print(f"         warning: {message}")

    s = result.summary
    print(f"\n{s.total} formats: {s.ok} ok, {s.warning} warning, {s.error} error")
    if result.package_path:
        print(f"Package: {result.package_path}")
    return 0 if s.error == 0 else 1


def _list_formats(config: RuntimeConfig) -> int:
    catalog = load_catalog(config.catalog_path)
    for fmt in catalog.list_formats():
        marker = " (video)" if fmt.is_video else ""
        print(f"{fmt.id:40} {fmt.name} {fmt.max_size_kb:g} KB{marker}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = RuntimeConfig.from_yaml(args.config) if args.config else get_config()
    setup_logging(config)

    if args.command == "export":
        return _run_export(args, config)
    return _list_formats(config)


if __name__ == "__main__":
    raise SystemExit(main())
