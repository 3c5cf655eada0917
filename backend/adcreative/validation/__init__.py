"""
校验模块 - 平台约束校验与汇总
"""

from .validator import (
    ConstraintValidator,
    check_size_limit,
    find_placeholders,
    summarize,
    text_length_limits,
)

__all__ = [
    "ConstraintValidator",
    "check_size_limit",
    "find_placeholders",
    "summarize",
    "text_length_limits",
]
