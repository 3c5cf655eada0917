import argparse
import sys
from pathlib import Path


def _add_backend_to_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    backend_root = repo_root / "backend"
    if str(backend_root) not in sys.path:
        sys.path.insert(0, str(backend_root))


def _collect_inputs(src_dir: Path) -> list[Path]:
    patterns = ("*.jpg", "*.jpeg", "*.png", "*.webp")
    return sorted(p for pattern in patterns for p in src_dir.glob(pattern))


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Export every sample image in a folder into a format package."
    )
    parser.add_argument(
        "--src-dir",
        default="test/images",
        help="源图目录（默认：test/images）",
    )
    parser.add_argument(
        "--out-dir",
        default="test/images/_export_out",
        help="输出目录（默认：test/images/_export_out）",
    )
    parser.add_argument(
        "--format",
        dest="formats",
        action="append",
        default=[],
        help="格式选择器（可重复，默认：google/display）",
    )
    parser.add_argument("--headline", default="Black Friday Sleva 50%")
    parser.add_argument("--cta", default="Koupit")
    args = parser.parse_args()

    _add_backend_to_path()
    from adcreative.models import TextOverlaySpec  # type: ignore
    from adcreative.pipeline import ExportExecutor, ExportRequest  # type: ignore

    src_dir = Path(args.src_dir)
    out_dir = Path(args.out_dir)
    formats = args.formats or ["google/display"]

    inputs = _collect_inputs(src_dir)
    if not inputs:
        print("未找到可处理文件")
        return 1

    executor = ExportExecutor()
    overlay = TextOverlaySpec(headline=args.headline, cta=args.cta)
    for path in inputs:
        try:
            request = ExportRequest(source=path.read_bytes(), formats=formats, overlay=overlay, write_csv=True)
            result = executor.run(request, output_path=out_dir / f"{path.stem}.zip")
            s = result.summary
            print(f"{path.name}: ok={s.ok} warning={s.warning} error={s.error}")
        except Exception as exc:  # noqa: BLE001
            print(f"{path.name}: ERROR {exc}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
