"""
导出执行器 - 编排批量导出

职责：
1. 解析格式选择器
2. 逐格式解码 → 裁切/排版 → 合成 → 校验（失败隔离）
3. 更新任务进度、响应取消（在格式之间检查）
4. 汇总 manifest 并打包
5. asyncio 版本：解码在线程中执行，信号量限制并发

测试要点：
- test_run_single_format: 单格式导出
- test_failure_isolation: 损坏源图只影响对应格式
- test_progress_callback: 进度回调 current/total
- test_cancel_between_formats: 取消后不再渲染后续格式
- test_arun_matches_run: 异步版本结果与同步一致
- test_video_format_unsupported: 视频格式记为错误
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
import uuid
from pathlib import Path
from typing import Callable, Literal

from pydantic import BaseModel, Field

from ..config import FormatCatalog, RuntimeConfig, get_config, load_catalog
from ..config.runtime_config import ExportConfig
from ..interfaces import (
    AdCreativeError,
    CropError,
    FocalPointFallback,
    IFocalPointProvider,
    UnsupportedOutputError,
)
from ..models import (
    BrandKit,
    CampaignInfo,
    CropMode,
    CropSpec,
    DecodedImage,
    ExportJob,
    ExportManifest,
    FocalPoint,
    FormatSpec,
    PerFormatTextOverride,
    RenderInput,
    TextOverlaySpec,
    ValidationIssue,
    ValidationResult,
    ValidationSummary,
)
from ..render import Html5Composer, ImageDecoder, RasterComposer
from ..render.decoder import content_hash
from ..validation import ConstraintValidator, summarize
from .packager import MANIFEST_NAME, ExportPackager, FormatOutcome
from .stages import EXPORT_STAGES, StageEnum

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


class ExportRequest(BaseModel):
    """一次批量导出的全部输入（只读）"""
    source: bytes
    formats: list[str] = Field(..., description="格式 id / 平台 / 平台/分类")
    overlay: TextOverlaySpec = Field(default_factory=TextOverlaySpec)
    brand: BrandKit = Field(default_factory=BrandKit)
    crop: CropSpec = Field(default_factory=CropSpec)

    # 逐格式覆盖
    crops: dict[str, CropSpec] = Field(default_factory=dict)
    overrides: dict[str, PerFormatTextOverride] = Field(default_factory=dict)
    source_overrides: dict[str, bytes] = Field(default_factory=dict)

    animation: str | None = None
    campaign: CampaignInfo | None = None
    write_csv: bool | None = None
    failure_policy: Literal["exclude", "include"] | None = None

    model_config = {"frozen": True}

    def source_for(self, format_id: str) -> bytes:
        return self.source_overrides.get(format_id, self.source)

    def crop_for(self, format_id: str) -> CropSpec:
        return self.crops.get(format_id, self.crop)

    def campaign_info(self, config: ExportConfig) -> CampaignInfo:
        """CSV 投放信息（描述优先取副标题，其次品牌描述/标语）"""
        if self.campaign is not None:
            return self.campaign
        return CampaignInfo(
            name=config.campaign_name,
            ad_group=config.ad_group_name,
            headline=self.overlay.headline,
            description=self.overlay.subheadline or self.brand.description or self.brand.tagline or "",
            cta=self.overlay.cta,
            landing_url=config.landing_url,
        )

    def settings_hash(self, format_id: str) -> str:
        """影响单个格式渲染结果的设置摘要"""
        override = self.overrides.get(format_id)
        payload = {
            "overlay": self.overlay.model_dump(mode="json"),
            "brand": self.brand.model_dump(mode="json", exclude={"logo_main", "logo_light", "logo_dark"}),
            "logos": [
                content_hash(logo) if logo else None
                for logo in (self.brand.logo_main, self.brand.logo_light, self.brand.logo_dark)
            ],
            "crop": self.crop_for(format_id).model_dump(mode="json"),
            "override": override.model_dump(mode="json") if override else None,
            "animation": self.animation,
        }
        return hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()


class ExportResult(BaseModel):
    """批量导出结果"""
    job: ExportJob
    manifest: ExportManifest | None = None
    results: list[ValidationResult] = Field(default_factory=list)
    summary: ValidationSummary = Field(default_factory=ValidationSummary)
    package: bytes | None = None
    package_path: Path | None = None


class ExportExecutor:
    """导出执行器"""

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        catalog: FormatCatalog | None = None,
        focal_point_provider: IFocalPointProvider | None = None,
        progress_callback: ProgressCallback | None = None,
        persist_jobs: bool = False,
        memoize: bool = True,
    ):
        self.config = config or get_config()
        self.catalog = catalog or load_catalog(self.config.catalog_path)
        self.focal_point_provider = focal_point_provider
        self.progress_callback = progress_callback
        self.persist_jobs = persist_jobs
        self.memoize = memoize

        self._last_progress_write = 0.0
        self._progress_interval_sec = 2.0
        self._memo: dict[tuple[str, str], FormatOutcome] = {}

        self.decoder = ImageDecoder()
        self.raster = RasterComposer(self.config.render, decoder=self.decoder)
        self.html5 = Html5Composer(self.config.html5, raster=self.raster)
        self.validator = ConstraintValidator()
        self.packager = ExportPackager(self.config.export)

    # === 入口 ===

    def run(
        self,
        request: ExportRequest,
        job: ExportJob | None = None,
        output_path: Path | None = None,
    ) -> ExportResult:
        """同步执行（逐格式顺序处理）"""
        job = job or self._new_job(request)
        self._start(job)
        try:
            formats = self._stage_resolve(job, request)
            outcomes = self._stage_render(job, request, formats)
            return self._stage_package(job, request, outcomes, output_path)
        except Exception as e:
            self._fail(job, e)
            raise

    async def arun(
        self,
        request: ExportRequest,
        job: ExportJob | None = None,
        output_path: Path | None = None,
    ) -> ExportResult:
        """异步执行（解码为唯一挂起点）"""
        job = job or self._new_job(request)
        self._start(job)
        try:
            formats = self._stage_resolve(job, request)
            outcomes = await self._astage_render(job, request, formats)
            return self._stage_package(job, request, outcomes, output_path)
        except Exception as e:
            self._fail(job, e)
            raise

    # === 单格式 ===

    def render_format(
        self,
        fmt: FormatSpec,
        request: ExportRequest,
        image: DecodedImage | CropError,
    ) -> FormatOutcome:
        """渲染并校验单个格式；任何失败都转换为校验结果"""
        extra: list[ValidationIssue] = []
        try:
            if not fmt.is_renderable:
                raise UnsupportedOutputError(f"Unsupported output type for {fmt.id}: video")
            if isinstance(image, CropError):
                raise image

            crop = request.crop_for(fmt.id)
            focal_point, extra = self._focal_point(fmt, crop, image)
            render_input = RenderInput(
                image=image,
                overlay=request.overlay,
                brand=request.brand,
                crop=crop,
                override=request.overrides.get(fmt.id),
                focal_point=focal_point,
                animation=request.animation,
            )
            composer = self.html5 if fmt.is_html5 else self.raster
            artifact = composer.compose(fmt, render_input)
            artifact.issues[:0] = extra
            result = self.validator.validate(fmt, artifact, request.overlay, request.overrides.get(fmt.id))
            return FormatOutcome(format=fmt, artifact=artifact, result=result)

        except AdCreativeError as e:
            logger.warning("Format %s failed: %s", fmt.id, e)
            return FormatOutcome(format=fmt, result=self.validator.validate_failure(fmt, e, extra))
        except Exception as e:
            logger.warning("Format %s render error: %s", fmt.id, e)
            error = AdCreativeError(f"{type(e).__name__}: {e}")
            return FormatOutcome(format=fmt, result=self.validator.validate_failure(fmt, error, extra))

    def _focal_point(
        self,
        fmt: FormatSpec,
        crop: CropSpec,
        image: DecodedImage,
    ) -> tuple[FocalPoint | None, list[ValidationIssue]]:
        """自动裁切：调用焦点服务，失败回退到中心"""
        if crop.mode != CropMode.AUTO:
            return None, []

        center = FocalPoint(focus_x=0.5, focus_y=0.5)
        if self.focal_point_provider is None:
            warning = FocalPointFallback("No focal point provider configured, using image centre")
            return center, [ValidationIssue.from_error(warning)]
        try:
            return self.focal_point_provider.detect(image.image, fmt.width, fmt.height), []
        except Exception as e:
            logger.warning("Focal point detection failed for %s: %s", fmt.id, e)
            warning = FocalPointFallback(f"Focal point detection failed ({e}), using image centre")
            return center, [ValidationIssue.from_error(warning)]

    def _memo_key(self, fmt: FormatSpec, request: ExportRequest, data: bytes) -> tuple[str, str]:
        digest = hashlib.sha256(
            (content_hash(data) + request.settings_hash(fmt.id)).encode("utf-8")
        ).hexdigest()
        return fmt.id, digest

    # === 阶段 ===

    def _stage_resolve(self, job: ExportJob, request: ExportRequest) -> list[FormatSpec]:
        """解析格式选择器"""
        self._enter_stage(job, StageEnum.RESOLVE_FORMATS)
        formats = self.catalog.select(request.formats)
        job.format_ids = [f.id for f in formats]
        logger.info("[%s] %d formats selected", job.job_id, len(formats))
        return formats

    def _stage_render(
        self,
        job: ExportJob,
        request: ExportRequest,
        formats: list[FormatSpec],
    ) -> list[FormatOutcome]:
        """逐格式渲染（失败隔离）"""
        self._enter_stage(job, StageEnum.RENDER)
        decoded: dict[str, DecodedImage | CropError] = {}
        outcomes: list[FormatOutcome] = []
        total = len(formats)

        for index, fmt in enumerate(formats):
            if job.cancel_requested:
                logger.info("[%s] Cancelled after %d/%d formats", job.job_id, index, total)
                break

            self._update_progress(job, current_format=fmt.id, message=f"Rendering {fmt.id}")
            data = request.source_for(fmt.id)
            key = self._memo_key(fmt, request, data)
            outcome = self._memo.get(key) if self.memoize else None
            if outcome is None:
                outcome = self.render_format(fmt, request, self._decode_cached(data, decoded))
                if self.memoize:
                    self._memo[key] = outcome

            self._record(job, outcome)
            outcomes.append(outcome)
            self._update_progress(job, current=index + 1, total=total, current_format=fmt.id,
                                  message=f"Rendered {fmt.id}")

        return outcomes

    async def _astage_render(
        self,
        job: ExportJob,
        request: ExportRequest,
        formats: list[FormatSpec],
    ) -> list[FormatOutcome]:
        """异步逐格式渲染；manifest 顺序与完成顺序无关"""
        self._enter_stage(job, StageEnum.RENDER)
        semaphore = asyncio.Semaphore(self.config.concurrency.max_workers)
        decode_tasks: dict[str, asyncio.Future] = {}
        total = len(formats)
        done = 0

        async def decode(data: bytes) -> DecodedImage | CropError:
            digest = content_hash(data)
            if digest not in decode_tasks:
                decode_tasks[digest] = asyncio.ensure_future(self.decoder.decode_async(data))
            try:
                return await decode_tasks[digest]
            except CropError as e:
                return e

        async def process(fmt: FormatSpec) -> FormatOutcome | None:
            nonlocal done
            async with semaphore:
                if job.cancel_requested:
                    return None
                data = request.source_for(fmt.id)
                key = self._memo_key(fmt, request, data)
                outcome = self._memo.get(key) if self.memoize else None
                if outcome is None:
                    image = await decode(data)
                    outcome = self.render_format(fmt, request, image)
                    if self.memoize:
                        self._memo[key] = outcome
                self._record(job, outcome)
                done += 1
                self._update_progress(job, current=done, total=total, current_format=fmt.id,
                                      message=f"Rendered {fmt.id}")
                return outcome

        results = await asyncio.gather(*(process(fmt) for fmt in formats))
        return [outcome for outcome in results if outcome is not None]

    def _stage_package(
        self,
        job: ExportJob,
        request: ExportRequest,
        outcomes: list[FormatOutcome],
        output_path: Path | None,
    ) -> ExportResult:
        """汇总 manifest 并打包"""
        results = sorted((o.result for o in outcomes), key=lambda r: r.format_id)
        summary = summarize(results)

        if job.cancel_requested:
            job.mark_cancelled()
            self._update_progress(job, message="Export cancelled", force=True)
            return ExportResult(job=job, results=results, summary=summary)

        self._enter_stage(job, StageEnum.PACKAGE)
        manifest = self.packager.build_manifest(
            outcomes,
            campaign=request.campaign_info(self.config.export),
            failure_policy=request.failure_policy,
        )
        package = self.packager.package_bytes(manifest, request.write_csv)

        target = output_path or (job.work_dir / "package.zip" if job.work_dir else None)
        package_path: Path | None = None
        if target is not None:
            package_path = Path(target)
            package_path.parent.mkdir(parents=True, exist_ok=True)
            package_path.write_bytes(package)
            job.artifacts.package_zip = package_path
        if job.work_dir is not None:
            manifest_path = job.work_dir / MANIFEST_NAME
            manifest_path.write_text(self.packager.generate_manifest(manifest), encoding="utf-8")
            job.artifacts.manifest_json = manifest_path

        job.mark_succeeded()
        self._update_progress(
            job,
            message=f"Export finished: {summary.ok} ok, {summary.warning} warning, {summary.error} error",
            force=True,
        )
        logger.info(
            "[%s] Export finished: %d packaged, %d excluded", job.job_id,
            len(manifest.entries), len(manifest.excluded),
        )
        return ExportResult(
            job=job,
            manifest=manifest,
            results=results,
            summary=summary,
            package=package,
            package_path=package_path,
        )

    # === 辅助 ===

    def _new_job(self, request: ExportRequest) -> ExportJob:
        return ExportJob(job_id=str(uuid.uuid4()), format_ids=list(request.formats))

    def _start(self, job: ExportJob) -> None:
        job.mark_running(StageEnum.RESOLVE_FORMATS.value)
        if self.persist_jobs and job.work_dir is None:
            job.work_dir = self.config.get_job_dir(job.job_id)
            job.work_dir.mkdir(parents=True, exist_ok=True)
        self._update_progress(job, message="Export started", force=True)

    def _fail(self, job: ExportJob, error: Exception) -> None:
        logger.exception("Export failed: %s", job.job_id)
        job.mark_failed(str(error))
        self._update_progress(job, message=f"Export failed: {error}", force=True)

    def _decode_cached(
        self, data: bytes, cache: dict[str, DecodedImage | CropError]
    ) -> DecodedImage | CropError:
        digest = content_hash(data)
        if digest not in cache:
            try:
                cache[digest] = self.decoder.decode(data)
            except CropError as e:
                cache[digest] = e
        return cache[digest]

    @staticmethod
    def _record(job: ExportJob, outcome: FormatOutcome) -> None:
        if outcome.result.errors:
            job.add_flag(f"format_failed:{outcome.format.id}")
        elif outcome.result.warnings:
            job.add_flag(f"format_warning:{outcome.format.id}")

    def _enter_stage(self, job: ExportJob, stage: StageEnum) -> None:
        job.progress.stage = stage.value
        job.progress.percent = EXPORT_STAGES[stage].progress_start
        logger.info("[%s] Stage started: %s", job.job_id, stage.value)
        self._update_progress(job, message=f"Stage started: {stage.value}", force=True)

    def _update_progress(
        self,
        job: ExportJob,
        *,
        message: str | None = None,
        current: int | None = None,
        total: int | None = None,
        current_format: str | None = None,
        force: bool = False,
    ) -> None:
        if message is not None:
            job.progress.message = message
        if current_format is not None:
            job.progress.current_format = current_format
        if current is not None and total is not None:
            job.progress.current = current
            job.progress.total = total
            stage = EXPORT_STAGES.get(StageEnum(job.progress.stage))
            if stage is not None:
                job.progress.percent = stage.percent_at(current, total)
            if self.progress_callback is not None:
                self.progress_callback(current, total, current_format or "")

        now = time.time()
        if force or (now - self._last_progress_write) >= self._progress_interval_sec:
            self._persist_job(job)
            self._last_progress_write = now

    def _persist_job(self, job: ExportJob) -> None:
        if not (self.persist_jobs and job.work_dir):
            return
        job.work_dir.mkdir(parents=True, exist_ok=True)
        job_file = job.work_dir / "job.json"
        with open(job_file, "w", encoding="utf-8") as f:
            json.dump(job.model_dump(mode="json"), f, ensure_ascii=False, indent=2, default=str)
