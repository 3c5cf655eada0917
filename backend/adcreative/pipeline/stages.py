"""
流水线阶段定义

职责：
1. 定义各阶段的名称和进度区间
2. 提供进度换算
3. 失败隔离（单个格式失败不影响全局）由执行器在 RENDER 阶段内实现
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StageEnum(str, Enum):
    """流水线阶段枚举"""
    RESOLVE_FORMATS = "RESOLVE_FORMATS"
    RENDER = "RENDER"            # 解码 + 排版 + 合成 + 校验（逐格式）
    PACKAGE = "PACKAGE"


@dataclass
class PipelineStage:
    """流水线阶段"""
    name: str
    progress_start: int  # 进度起点（0-100）
    progress_end: int    # 进度终点

    def percent_at(self, current: int, total: int) -> int:
        """阶段内 current/total 对应的总进度"""
        if total <= 0:
            return self.progress_end
        span = self.progress_end - self.progress_start
        return self.progress_start + int(span * min(current, total) / total)


# 导出流水线各阶段配置
EXPORT_STAGES: dict[StageEnum, PipelineStage] = {
    StageEnum.RESOLVE_FORMATS: PipelineStage(StageEnum.RESOLVE_FORMATS.value, 0, 5),
    StageEnum.RENDER: PipelineStage(StageEnum.RENDER.value, 5, 90),
    StageEnum.PACKAGE: PipelineStage(StageEnum.PACKAGE.value, 90, 100),
}
