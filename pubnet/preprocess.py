"""图预处理: 度数 + Top-N 国家分桶 + 节点着色

度数和颜色在读入后一次性计算。国家分桶在会话内固定，之后的重配置不再重新排名。
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Hashable, Iterable, Sequence

from .colors import CATEGORY10, NEUTRAL_COLOR
from .dataset import Dataset, Edge, Node
from .errors import ConfigError

if TYPE_CHECKING:
    from .config import VizConfig

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════
# 度数
# ═══════════════════════════════════════════════

class SelfLoopPolicy(str, Enum):
    """自环计入度数的方式"""
    TWICE = 'twice'     # 源、目标各算一次 (与 networkx 一致)
    ONCE = 'once'
    IGNORE = 'ignore'

    @classmethod
    def parse(cls, value) -> 'SelfLoopPolicy':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigError(f"未知自环策略: {value!r} (twice / once / ignore)") from None


_SELF_LOOP_WEIGHT = {
    SelfLoopPolicy.TWICE: 2,
    SelfLoopPolicy.ONCE: 1,
    SelfLoopPolicy.IGNORE: 0,
}


def compute_degrees(nodes: Iterable[Node], edges: Iterable[Edge],
                    self_loops: SelfLoopPolicy = SelfLoopPolicy.TWICE) -> dict[Hashable, int]:
    """
    计算每个节点的度数并写入 node.degree。

    端点不在节点表中的边只为已知端点计数。

    Returns:
        {node_id: degree}
    """
    loop_weight = _SELF_LOOP_WEIGHT[SelfLoopPolicy.parse(self_loops)]
    counts = Counter()
    for e in edges:
        if e.source == e.target:
            counts[e.source] += loop_weight
        else:
            counts[e.source] += 1
            counts[e.target] += 1

    degrees = {}
    for n in nodes:
        n.degree = counts.get(n.id, 0)
        degrees[n.id] = n.degree
    return degrees


# ═══════════════════════════════════════════════
# 国家分桶
# ═══════════════════════════════════════════════

def rank_countries(nodes: Iterable[Node], top_n: int = 10) -> list[str]:
    """按作者数降序取前 N 个国家，并列时按首次出现顺序"""
    counts = Counter(n.country for n in nodes)
    # Counter 保留插入顺序，sorted 稳定
    ranked = sorted(counts.items(), key=lambda kv: -kv[1])
    return [country for country, _ in ranked[:top_n]]


@dataclass(frozen=True)
class CountryBuckets:
    """Top-N 国家 → 色板颜色；其余国家使用中性色"""
    countries: tuple[str, ...]
    palette: tuple[str, ...] = CATEGORY10
    neutral: str = NEUTRAL_COLOR
    _colors: dict[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.palette:
            raise ConfigError("色板不能为空")
        # 同 d3.scaleOrdinal: 按定义域顺序循环取色
        colors = {c: self.palette[i % len(self.palette)] for i, c in enumerate(self.countries)}
        object.__setattr__(self, '_colors', colors)

    @classmethod
    def from_nodes(cls, nodes: Sequence[Node], top_n: int = 10,
                   palette: Sequence[str] = CATEGORY10,
                   neutral: str = NEUTRAL_COLOR) -> 'CountryBuckets':
        return cls(tuple(rank_countries(nodes, top_n)), tuple(palette), neutral)

    def __contains__(self, country: str) -> bool:
        return country in self._colors

    def __len__(self) -> int:
        return len(self.countries)

    def color_for(self, country: str) -> str:
        return self._colors.get(country, self.neutral)

    def legend(self) -> list[tuple[str, str]]:
        """图例条目 [(国家, 颜色), ...]，顺序同排名"""
        return [(c, self._colors[c]) for c in self.countries]


def assign_colors(nodes: Iterable[Node], buckets: CountryBuckets) -> dict[Hashable, str]:
    """按固定分桶为节点着色 (幂等)"""
    colors = {}
    for n in nodes:
        n.color = buckets.color_for(n.country)
        colors[n.id] = n.color
    return colors


# ═══════════════════════════════════════════════
# 一步预处理
# ═══════════════════════════════════════════════

@dataclass
class AnnotatedGraph:
    """带度数和颜色的数据集"""
    dataset: Dataset
    buckets: CountryBuckets
    max_degree: int

    @property
    def nodes(self) -> list[Node]:
        return self.dataset.nodes

    @property
    def edges(self) -> list[Edge]:
        return self.dataset.edges


def annotate(dataset: Dataset, config: 'VizConfig | None' = None) -> AnnotatedGraph:
    """计算度数 → 国家分桶 → 着色"""
    if config is None:
        from .config import VizConfig
        config = VizConfig()

    degrees = compute_degrees(dataset.nodes, dataset.edges, config.self_loops)
    buckets = CountryBuckets.from_nodes(dataset.nodes, config.top_n,
                                        config.palette, config.neutral_color)
    assign_colors(dataset.nodes, buckets)

    max_degree = max(degrees.values(), default=0)
    logger.info("预处理完成: 最大度数 %d, Top-%d 国家: %s",
                max_degree, config.top_n, ', '.join(buckets.countries))
    return AnnotatedGraph(dataset, buckets, max_degree)
