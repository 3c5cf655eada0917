"""
HTML5 动画时间线 - 声明式关键帧步骤，编译为 GSAP 调用

内置时间线：fade-in / slide-up / pulse-cta / zoom-in / bounce
步骤的时长与起点以基准 duration 的倍数定义
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, Field

ANIMATION_NAMES = ("fade-in", "slide-up", "pulse-cta", "zoom-in", "bounce")
DEFAULT_ANIMATION = "fade-in"
LOOP_RESTART_DELAY_MS = 2000


class TimelineStep(BaseModel):
    """单个补间"""
    target: str
    kind: Literal["from", "to", "fromTo"] = "to"
    from_vars: dict[str, Any] = Field(default_factory=dict)
    to_vars: dict[str, Any] = Field(default_factory=dict)
    duration: float
    position: float
    ease: str = "power2.out"

    model_config = {"frozen": True}


class RepeatTween(BaseModel):
    """时间线之外的无限往返补间"""
    target: str
    vars: dict[str, Any]
    duration: float
    delay: float
    ease: str = "power1.inOut"

    model_config = {"frozen": True}


class Timeline(BaseModel):
    """编译前的时间线"""
    name: str
    duration: float
    loop: bool
    steps: list[TimelineStep] = Field(default_factory=list)
    initial: dict[str, dict[str, Any]] = Field(default_factory=dict)
    repeats: list[RepeatTween] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def targets(self) -> set[str]:
        return {s.target for s in self.steps} | {r.target for r in self.repeats} | set(self.initial)


# (target, kind, from_vars, to_vars, duration 倍数, position 倍数, ease)
_STEP_TABLE: dict[str, list[tuple]] = {
    "fade-in": [
        ("#background", "from", {"scale": 1.1}, {}, 2.0, 0.0, "power1.out"),
        ("#headline", "to", {}, {"opacity": 1}, 0.8, 0.3, "power2.out"),
        ("#subheadline", "to", {}, {"opacity": 1}, 0.6, 0.6, "power2.out"),
        ("#cta", "to", {}, {"opacity": 1, "scale": 1}, 0.6, 0.9, "back.out(1.7)"),
    ],
    "slide-up": [
        ("#background", "from", {"scale": 1.05}, {}, 2.0, 0.0, "power1.out"),
        ("#headline", "fromTo", {"opacity": 0, "y": 30}, {"opacity": 1, "y": 0}, 0.7, 0.2, "power3.out"),
        ("#subheadline", "fromTo", {"opacity": 0, "y": 20}, {"opacity": 1, "y": 0}, 0.6, 0.5, "power3.out"),
        ("#cta", "fromTo", {"opacity": 0, "y": 20}, {"opacity": 1, "y": 0}, 0.6, 0.8, "power3.out"),
    ],
    "pulse-cta": [
        ("#headline", "to", {}, {"opacity": 1}, 0.5, 0.2, "power2.out"),
        ("#subheadline", "to", {}, {"opacity": 1}, 0.5, 0.4, "power2.out"),
        ("#cta", "to", {}, {"opacity": 1}, 0.5, 0.6, "power2.out"),
    ],
    "zoom-in": [
        ("#background", "from", {"scale": 1.3}, {}, 1.5, 0.0, "power2.out"),
        ("#headline", "fromTo", {"opacity": 0, "scale": 0.8}, {"opacity": 1, "scale": 1}, 0.6, 0.4, "back.out(1.4)"),
        ("#subheadline", "fromTo", {"opacity": 0, "scale": 0.9}, {"opacity": 1, "scale": 1}, 0.5, 0.7, "power2.out"),
        ("#cta", "fromTo", {"opacity": 0, "scale": 0.5}, {"opacity": 1, "scale": 1}, 0.6, 1.0, "elastic.out(1, 0.5)"),
    ],
    "bounce": [
        ("#headline", "fromTo", {"opacity": 0, "y": -50}, {"opacity": 1, "y": 0}, 0.8, 0.2, "bounce.out"),
        ("#subheadline", "to", {}, {"opacity": 1}, 0.5, 0.6, "power2.out"),
        ("#cta", "fromTo", {"opacity": 0, "y": 30}, {"opacity": 1, "y": 0}, 0.8, 0.8, "bounce.out"),
    ],
}

_INITIAL_TABLE: dict[str, dict[str, dict[str, Any]]] = {
    "fade-in": {"#cta": {"scale": 0.8}},
}

# (target, vars, 绝对时长, delay 倍数)
_REPEAT_TABLE: dict[str, list[tuple]] = {
    "pulse-cta": [("#cta", {"scale": 1.05}, 0.6, 1.2)],
    "bounce": [("#cta", {"y": -5}, 0.4, 2.0)],
}


def _round(value: float) -> float:
    return round(value, 3)


def build_timeline(name: str, duration: float = 1.0, loop: bool = True) -> Timeline:
    """按名称构建时间线（未知名称回退到 fade-in）"""
    if name not in _STEP_TABLE:
        name = DEFAULT_ANIMATION

    steps = [
        TimelineStep(
            target=target,
            kind=kind,
            from_vars=from_vars,
            to_vars=to_vars,
            duration=_round(duration * dur),
            position=_round(duration * pos),
            ease=ease,
        )
        for target, kind, from_vars, to_vars, dur, pos, ease in _STEP_TABLE[name]
    ]
    repeats = [
        RepeatTween(target=target, vars=vars_, duration=dur, delay=_round(duration * delay))
        for target, vars_, dur, delay in _REPEAT_TABLE.get(name, [])
    ]
    # 带无限补间的时间线不再整体循环
    return Timeline(
        name=name,
        duration=duration,
        loop=loop and not repeats,
        steps=steps,
        initial=_INITIAL_TABLE.get(name, {}),
        repeats=repeats,
    )


def _js(value: dict[str, Any]) -> str:
    return json.dumps(value, ensure_ascii=False)


def compile_timeline(timeline: Timeline, present: set[str] | None = None) -> str:
    """
    编译为 GSAP 代码（initAnimation 函数体）

    Args:
        timeline: 时间线
        present: DOM 中实际存在的选择器；None 表示全部存在
    """
    def keep(target: str) -> bool:
        return present is None or target in present

    lines = ["  var tl = gsap.timeline();"]
    for target, vars_ in timeline.initial.items():
        if keep(target):
            lines.append(f"  gsap.set({_js(target)}, {_js(vars_)});")

    for step in timeline.steps:
        if not keep(step.target):
            continue
        timing = {"duration": step.duration, "ease": step.ease}
        if step.kind == "from":
            lines.append(f"  tl.from({_js(step.target)}, {_js({**step.from_vars, **timing})}, {step.position});")
        elif step.kind == "fromTo":
            lines.append(
                f"  tl.fromTo({_js(step.target)}, {_js(step.from_vars)}, "
                f"{_js({**step.to_vars, **timing})}, {step.position});"
            )
        else:
            lines.append(f"  tl.to({_js(step.target)}, {_js({**step.to_vars, **timing})}, {step.position});")

    for tween in timeline.repeats:
        if not keep(tween.target):
            continue
        vars_ = {
            **tween.vars,
            "duration": tween.duration,
            "ease": tween.ease,
            "yoyo": True,
            "repeat": -1,
            "delay": tween.delay,
        }
        lines.append(f"  gsap.to({_js(tween.target)}, {_js(vars_)});")

    if timeline.loop:
        lines.extend([
            '  tl.eventCallback("onComplete", function () {',
            "    setTimeout(function () {",
            "      tl.restart();",
            f"    }}, {LOOP_RESTART_DELAY_MS});",
            "  });",
        ])
    return "\n".join(lines)
