"""
尺度映射 — 度数/指标 → 节点半径

两类映射:
- 度数 → 半径: 平方根尺度 (面积与度数成线性关系)
- 指标 → 半径: 每个指标一个线性策略 (除数 + 偏移)，结果统一截断到 [min, max]

节点大小选项是一个封闭枚举 SizingMetric，每个选项对应一个 SizingStrategy。

使用示例:
    >>> mapper = RadiusMapper(max_degree=8)
    >>> mapper.radius(node, SizingMetric.CITATIONS)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Literal

from .errors import ConfigError, ControlInputError

if TYPE_CHECKING:
    from .dataset import Node


# ═══════════════════════════════════════════════
# 节点大小选项
# ═══════════════════════════════════════════════

class SizingMetric(str, Enum):
    """节点大小依据 (表单单选组的三个取值)"""
    PUBLICATIONS = 'publications'
    DEGREE = 'degree'
    CITATIONS = 'citations'

    @classmethod
    def parse(cls, value) -> 'SizingMetric':
        """从表单文本解析，未知取值抛出 ControlInputError"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            available = ', '.join(m.value for m in cls)
            raise ControlInputError(f"未知节点大小选项: {value!r}。可用: {available}") from None

    def value_of(self, node: 'Node') -> float:
        """取节点上对应的原始指标值"""
        getters = {
            SizingMetric.PUBLICATIONS: lambda n: n.num_publications,
            SizingMetric.DEGREE: lambda n: n.degree,
            SizingMetric.CITATIONS: lambda n: n.num_citations,
        }
        return getters[self](node)


# ═══════════════════════════════════════════════
# 基础尺度
# ═══════════════════════════════════════════════

def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def _signed_sqrt(x: float) -> float:
    return math.copysign(math.sqrt(abs(x)), x)


@dataclass(frozen=True)
class SqrtScale:
    """平方根尺度 (同 d3.scaleSqrt，不截断)

    定义域退化 (d0 == d1) 时所有输入映射到值域中点。
    """
    domain: tuple[float, float]
    range: tuple[float, float]

    def __call__(self, x: float) -> float:
        d0, d1 = (_signed_sqrt(v) for v in self.domain)
        r0, r1 = self.range
        if d1 == d0:
            t = 0.5
        else:
            t = (_signed_sqrt(x) - d0) / (d1 - d0)
        return r0 + t * (r1 - r0)


@dataclass(frozen=True)
class SizingStrategy:
    """单个指标的半径策略

    kind='linear': value / divisor + offset
    kind='sqrt':   使用会话的度数平方根尺度 (divisor/offset 不参与)
    """
    kind: Literal['linear', 'sqrt'] = 'linear'
    divisor: float = 1.0
    offset: float = 0.0

    def __post_init__(self):
        if self.kind not in ('linear', 'sqrt'):
            raise ConfigError(f"未知尺度类型: {self.kind!r} (linear / sqrt)")
        if self.kind == 'linear' and not self.divisor > 0:
            raise ConfigError(f"divisor 必须为正数: {self.divisor!r}")

    @classmethod
    def from_dict(cls, d: dict) -> 'SizingStrategy':
        if not isinstance(d, dict):
            raise ConfigError(f"尺度策略应为映射: {d!r}")
        unknown = set(d) - {'kind', 'divisor', 'offset'}
        if unknown:
            raise ConfigError(f"尺度策略含未知字段: {sorted(unknown)}")
        try:
            divisor = float(d.get('divisor', 1.0))
            offset = float(d.get('offset', 0.0))
        except (TypeError, ValueError):
            raise ConfigError(f"divisor / offset 应为数值: {d!r}") from None
        if not (math.isfinite(divisor) and math.isfinite(offset)):
            raise ConfigError(f"divisor / offset 应为有限数值: {d!r}")
        return cls(kind=d.get('kind', 'linear'), divisor=divisor, offset=offset)

    def to_dict(self) -> dict:
        return {'kind': self.kind, 'divisor': self.divisor, 'offset': self.offset}


def default_strategies() -> dict[SizingMetric, SizingStrategy]:
    """默认策略: 发文量 /50+5，被引 /500+5，度数走平方根尺度"""
    return {
        SizingMetric.PUBLICATIONS: SizingStrategy('linear', divisor=50, offset=5),
        SizingMetric.DEGREE: SizingStrategy('sqrt'),
        SizingMetric.CITATIONS: SizingStrategy('linear', divisor=500, offset=5),
    }


# ═══════════════════════════════════════════════
# 半径映射器
# ═══════════════════════════════════════════════

class RadiusMapper:
    """
    节点半径计算。

    Attributes:
        max_degree: 观测到的最大度数 (度数尺度定义域上界)
        r_min, r_max: 所有指标共用的半径截断范围
        degree_range: 度数平方根尺度的值域
        strategies: {SizingMetric: SizingStrategy}
    """

    def __init__(self, max_degree: int, r_min: float = 3.0, r_max: float = 20.0,
                 degree_range: tuple[float, float] = (3.0, 12.0),
                 strategies: dict[SizingMetric, SizingStrategy] | None = None):
        if r_min > r_max:
            raise ConfigError(f"半径范围非法: min={r_min} > max={r_max}")
        self.max_degree = max_degree
        self.r_min = r_min
        self.r_max = r_max
        self.degree_range = tuple(degree_range)
        self.strategies = default_strategies()
        if strategies:
            self.strategies.update(strategies)
        self.degree_scale = SqrtScale((0, max_degree), self.degree_range)

    @classmethod
    def from_config(cls, config, max_degree: int) -> 'RadiusMapper':
        rc = config.radius
        return cls(max_degree, r_min=rc.min, r_max=rc.max,
                   degree_range=rc.degree_range, strategies=rc.strategies)

    def degree_radius(self, degree: float) -> float:
        """度数 → 半径: 平方根尺度 [0, max_degree] → degree_range，结果再截断到 [r_min, r_max]

        度数不超过 max_degree 时结果落在 degree_range 内，超出时只受 [r_min, r_max] 约束。
        """
        return clamp(self.degree_scale(degree), self.r_min, self.r_max)

    def map_value(self, value: float, metric: SizingMetric) -> float:
        strategy = self.strategies[metric]
        if strategy.kind == 'sqrt':
            raw = self.degree_scale(value)
        else:
            raw = value / strategy.divisor + strategy.offset
        return clamp(raw, self.r_min, self.r_max)

    def radius(self, node: 'Node', metric: SizingMetric) -> float:
        return self.map_value(metric.value_of(node), metric)

    def radii(self, nodes: Iterable['Node'], metric: SizingMetric) -> dict:
        return {n.id: self.radius(n, metric) for n in nodes}

    def apply(self, nodes: Iterable['Node'], metric: SizingMetric) -> None:
        """按选定指标写入 node.radius"""
        for n in nodes:
            n.radius = self.radius(n, metric)

    def all_radii(self, node: 'Node') -> dict[str, float]:
        """三个指标下的半径，供导出页面直接选用"""
        return {m.value: round(self.radius(node, m), 3) for m in SizingMetric}
