"""
交互控制器 — 力参数重配置 / 缩放平移 / 点击提示框

重配置周期 (submit):
    IDLE → RECONFIGURING
        (a) 按新的节点大小选项重算半径
        (b) 按固定国家分桶重算颜色 (幂等)
        (c) 把三个力强度写入模拟的 link / collide / charge
        (d) 能量重置为 1 并恢复步进
    → IDLE (同步返回，收敛过程由模拟自行完成)

缩放平移只修改独立的 ZoomTransform，不触碰节点位置。

使用示例:
    >>> ctrl = InteractionController(session)
    >>> ctrl.submit_form({'linkStrength': '0.5', 'collideForce': '1',
    ...                   'chargeForce': '-30', 'nodeSize': 'citations'})
    >>> ctrl.click(42).lines()
"""

from __future__ import annotations

import html
import logging
import math
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Hashable, Mapping

from .errors import ControlInputError
from .preprocess import assign_colors
from .scales import SizingMetric, clamp
from .session import GraphSession
from .simulation import node_radius

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════
# 表单参数
# ═══════════════════════════════════════════════

# 表单控件名 → 字段名
FORM_FIELDS = {
    'linkStrength': 'link_strength',
    'collideForce': 'collide_strength',
    'chargeForce': 'charge_strength',
}
FORM_METRIC = 'nodeSize'


def _parse_number(form: Mapping[str, object], key: str) -> float:
    if key not in form:
        raise ControlInputError(f"表单缺少字段: {key}")
    raw = form[key]
    try:
        value = float(str(raw).strip())
    except ValueError:
        raise ControlInputError(f"{key} 不是数值: {raw!r}") from None
    if not math.isfinite(value):
        raise ControlInputError(f"{key} 不是有限数值: {raw!r}")
    return value


@dataclass(frozen=True)
class ForceParams:
    """一次提交的力参数"""
    link_strength: float | None
    collide_strength: float
    charge_strength: float
    metric: SizingMetric = SizingMetric.DEGREE

    @classmethod
    def from_form(cls, form: Mapping[str, object]) -> 'ForceParams':
        """
        解析原始表单值 (字符串)。

        Raises:
            ControlInputError: 缺字段、非数值、非有限数值或未知节点大小选项
        """
        values = {attr: _parse_number(form, key) for key, attr in FORM_FIELDS.items()}
        if FORM_METRIC not in form:
            raise ControlInputError(f"表单缺少字段: {FORM_METRIC}")
        return cls(metric=SizingMetric.parse(form[FORM_METRIC]), **values)

    @classmethod
    def from_config(cls, config) -> 'ForceParams':
        fc = config.forces
        return cls(fc.link_strength, fc.collide_strength, fc.charge_strength,
                   config.default_metric)

    def to_form(self) -> dict[str, str]:
        form = {key: '' if getattr(self, attr) is None else repr(float(getattr(self, attr)))
                for key, attr in FORM_FIELDS.items()}
        form[FORM_METRIC] = self.metric.value
        return form


class ControllerState(Enum):
    IDLE = 'idle'
    RECONFIGURING = 'reconfiguring'


# ═══════════════════════════════════════════════
# 缩放平移
# ═══════════════════════════════════════════════

@dataclass(frozen=True)
class ZoomTransform:
    """二维仿射变换: 屏幕坐标 = k * 场景坐标 + (x, y)"""
    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def apply(self, point: tuple[float, float]) -> tuple[float, float]:
        px, py = point
        return (px * self.k + self.x, py * self.k + self.y)

    def invert(self, point: tuple[float, float]) -> tuple[float, float]:
        px, py = point
        return ((px - self.x) / self.k, (py - self.y) / self.k)

    def scale_to(self, k: float, extent: tuple[float, float],
                 about: tuple[float, float] = (0.0, 0.0)) -> 'ZoomTransform':
        """缩放到 k (截断到 extent)，屏幕点 about 保持不动"""
        k = clamp(k, *extent)
        sx, sy = self.invert(about)
        return ZoomTransform(k, about[0] - sx * k, about[1] - sy * k)

    def scale_by(self, factor: float, extent: tuple[float, float],
                 about: tuple[float, float] = (0.0, 0.0)) -> 'ZoomTransform':
        return self.scale_to(self.k * factor, extent, about)

    def pan_by(self, dx: float, dy: float) -> 'ZoomTransform':
        """平移 (屏幕像素)"""
        return replace(self, x=self.x + dx, y=self.y + dy)

    def to_svg(self) -> str:
        return f"translate({self.x:g},{self.y:g}) scale({self.k:g})"


IDENTITY = ZoomTransform()


# ═══════════════════════════════════════════════
# 提示框
# ═══════════════════════════════════════════════

@dataclass(frozen=True)
class Tooltip:
    """点击节点后显示的临时信息框"""
    node_id: Hashable
    name: str
    country: str
    publications: int
    citations: int
    shown_at: float
    duration: float = 3.0

    @property
    def expires_at(self) -> float:
        return self.shown_at + self.duration

    def visible(self, now: float) -> bool:
        return self.shown_at <= now < self.expires_at

    def lines(self) -> list[str]:
        return [
            f"Author: {self.name}",
            f"Country: {self.country}",
            f"Publications: {self.publications}",
            f"Citations: {self.citations}",
        ]

    def html(self) -> str:
        return '<br>'.join(html.escape(line) for line in self.lines())


# ═══════════════════════════════════════════════
# 控制器
# ═══════════════════════════════════════════════

class InteractionController:
    """
    交互控制器。

    Attributes:
        session: 会话上下文
        state: ControllerState
        transform: 当前缩放平移变换
        history: 已应用的 ForceParams (按时间顺序)
    """

    def __init__(self, session: GraphSession, clock: Callable[[], float] = time.monotonic):
        self.session = session
        self.state = ControllerState.IDLE
        self.transform = IDENTITY
        self.history: list[ForceParams] = []
        self._tooltip: Tooltip | None = None
        self._clock = clock

    @property
    def zoom_extent(self) -> tuple[float, float]:
        return self.session.config.view.zoom_extent

    @property
    def params(self) -> ForceParams:
        """当前生效的参数"""
        if self.history:
            return self.history[-1]
        return ForceParams.from_config(self.session.config)

    # ─── 重配置 ───

    def submit(self, params: ForceParams) -> None:
        """执行一次重配置周期，返回时已回到 IDLE"""
        session = self.session
        sim = session.simulation
        self.state = ControllerState.RECONFIGURING
        try:
            session.mapper.apply(session.nodes, params.metric)
            session.metric = params.metric
            assign_colors(session.nodes, session.buckets)

            sim.force('link').strength = params.link_strength
            collide = sim.force('collide')
            collide.strength = params.collide_strength
            collide.radius = node_radius
            sim.force('charge').strength = params.charge_strength

            sim.restart(alpha=1.0)
            self.history.append(params)
        finally:
            self.state = ControllerState.IDLE
        logger.info("力参数已更新: link=%s collide=%s charge=%s size=%s",
                    params.link_strength, params.collide_strength,
                    params.charge_strength, params.metric.value)

    def submit_form(self, form: Mapping[str, object]) -> ForceParams:
        """解析表单并提交"""
        params = ForceParams.from_form(form)
        self.submit(params)
        return params

    # ─── 缩放平移 ───

    def zoom_by(self, factor: float, about: tuple[float, float] | None = None) -> ZoomTransform:
        if about is None:
            about = self.session.config.view.center
        self.transform = self.transform.scale_by(factor, self.zoom_extent, about)
        return self.transform

    def pan_by(self, dx: float, dy: float) -> ZoomTransform:
        self.transform = self.transform.pan_by(dx, dy)
        return self.transform

    def reset_zoom(self) -> ZoomTransform:
        self.transform = IDENTITY
        return self.transform

    # ─── 点击提示框 ───

    def click(self, node_id: Hashable, now: float | None = None) -> Tooltip:
        """显示节点提示框，替换已有的提示框"""
        node = self.session.node(node_id)
        now = self._clock() if now is None else now
        self._tooltip = Tooltip(
            node_id=node.id,
            name=node.name,
            country=node.country,
            publications=node.num_publications,
            citations=node.num_citations,
            shown_at=now,
            duration=self.session.config.view.tooltip_seconds,
        )
        return self._tooltip

    def click_at(self, point: tuple[float, float], now: float | None = None) -> Tooltip | None:
        """屏幕坐标点击: 命中某个节点的圆时显示提示框"""
        x, y = self.transform.invert(point)
        sim = self.session.simulation
        node = sim.find(x, y)
        if node is None:
            return None
        r = node_radius(node)
        if (node.x - x) ** 2 + (node.y - y) ** 2 > r * r:
            return None
        return self.click(node.id, now)

    def active_tooltip(self, now: float | None = None) -> Tooltip | None:
        """当前可见的提示框，过期后返回 None"""
        if self._tooltip is None:
            return None
        now = self._clock() if now is None else now
        if not self._tooltip.visible(now):
            self._tooltip = None
            return None
        return self._tooltip

    def dismiss_tooltip(self) -> None:
        self._tooltip = None
