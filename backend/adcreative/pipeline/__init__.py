"""
流水线模块 - 批量导出编排

子模块：
- stages: 流水线各阶段定义
- executor: 导出执行器（同步 / asyncio）
- packager: 打包与manifest生成
- csv_export: 平台导入 CSV
"""

from .executor import ExportExecutor, ExportRequest, ExportResult
from .packager import ExportPackager, FormatOutcome, output_path_for
from .stages import EXPORT_STAGES, PipelineStage, StageEnum

__all__ = [
    "PipelineStage",
    "StageEnum",
    "EXPORT_STAGES",
    "ExportExecutor",
    "ExportRequest",
    "ExportResult",
    "ExportPackager",
    "FormatOutcome",
    "output_path_for",
]
