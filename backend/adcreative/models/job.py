"""
导出任务模型 - 定义批量导出的状态与生命周期
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """任务状态枚举"""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class JobArtifacts(BaseModel):
    """任务产物路径"""
    package_zip: Path | None = None
    manifest_json: Path | None = None


class JobProgress(BaseModel):
    """任务进度"""
    stage: str = "INIT"
    current: int = 0
    total: int = 0
    percent: int = 0
    current_format: str | None = None
    message: str = ""


class ExportJob(BaseModel):
    """导出任务实体"""
    job_id: str = Field(..., description="UUID")
    format_ids: list[str] = Field(default_factory=list)

    # 状态
    status: JobStatus = JobStatus.QUEUED
    progress: JobProgress = Field(default_factory=JobProgress)
    cancel_requested: bool = False

    # 产物
    artifacts: JobArtifacts = Field(default_factory=JobArtifacts)

    # 结果
    flags: list[str] = Field(default_factory=list, description="告警标记")
    errors: list[str] = Field(default_factory=list, description="错误信息")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    # 工作目录（运行时设置）
    work_dir: Path | None = None

    model_config = {"arbitrary_types_allowed": True}

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_requested or self.status == JobStatus.CANCELLED

    def cancel(self) -> None:
        """请求取消（在格式之间检查）"""
        self.cancel_requested = True

    def mark_running(self, stage: str = "RESOLVE_FORMATS") -> None:
        """标记为运行中"""
        self.status = JobStatus.RUNNING
        self.started_at = datetime.now()
        self.progress.stage = stage

    def mark_succeeded(self) -> None:
        """标记为成功"""
        self.status = JobStatus.SUCCEEDED
        self.finished_at = datetime.now()
        self.progress.percent = 100

    def mark_failed(self, error: str) -> None:
        """标记为失败"""
        self.status = JobStatus.FAILED
        self.finished_at = datetime.now()
        self.errors.append(error)

    def mark_cancelled(self) -> None:
        """标记为已取消"""
        self.status = JobStatus.CANCELLED
        self.finished_at = datetime.now()

    def add_flag(self, flag: str) -> None:
        """添加告警标记（不中断）"""
        if flag not in self.flags:
            self.flags.append(flag)
