"""
合作网络数据集 — 作者节点 + 合作边

输入格式 (一次性读取的静态 JSON):
    {
        "nodes": [{"id": 1, "Name": "...", "country": "China",
                   "num_publications": 12, "num_citations": 340}, ...],
        "links": [{"source": 1, "target": 2}, ...]
    }

节点的派生属性 (degree / color / radius) 由 preprocess 与 scales 写入，
位置 (x, y, vx, vy) 只由 ForceSimulation 写入。

使用示例:
    >>> from pubnet.dataset import load_dataset
    >>> ds = load_dataset('data/publication_network.json')
    >>> ds.to_frame().head()
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Hashable

import pandas as pd

from .errors import DatasetError

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════
# 数据结构
# ═══════════════════════════════════════════════

@dataclass(eq=False)
class Node:
    """作者节点"""
    id: Hashable
    name: str = ''
    country: str = ''
    num_publications: int = 0
    num_citations: int = 0

    # ── 派生属性 ──
    degree: int = 0
    color: str | None = None
    radius: float | None = None

    # ── 布局状态 (仅 ForceSimulation 写入) ──
    x: float | None = None
    y: float | None = None
    vx: float = 0.0
    vy: float = 0.0
    fx: float | None = None
    fy: float | None = None

    @classmethod
    def from_dict(cls, d: dict) -> 'Node':
        if 'id' not in d:
            raise DatasetError(f"节点缺少 id: {d!r}")
        return cls(
            id=d['id'],
            name=str(d.get('Name', d.get('name', '')) or ''),
            country=str(d.get('country') or ''),
            num_publications=int(d.get('num_publications') or 0),
            num_citations=int(d.get('num_citations') or 0),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'Name': self.name,
            'country': self.country,
            'num_publications': self.num_publications,
            'num_citations': self.num_citations,
            'degree': self.degree,
            'color': self.color,
            'radius': self.radius,
        }

    @property
    def position(self) -> tuple[float, float] | None:
        if self.x is None or self.y is None:
            return None
        return (self.x, self.y)


@dataclass(frozen=True)
class Edge:
    """合作边 (读入后不可变)"""
    source: Hashable
    target: Hashable

    @classmethod
    def from_dict(cls, d: dict) -> 'Edge':
        try:
            return cls(source=d['source'], target=d['target'])
        except KeyError as e:
            raise DatasetError(f"边缺少字段 {e.args[0]!r}: {d!r}") from None

    def to_dict(self) -> dict:
        return {'source': self.source, 'target': self.target}

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target


# ═══════════════════════════════════════════════
# 数据集
# ═══════════════════════════════════════════════

@dataclass
class Dataset:
    """节点列表 + 边列表，节点与边在会话期间不增删"""
    nodes: list[Node]
    edges: list[Edge]
    node_index: dict[Hashable, Node] = field(init=False, repr=False)

    def __post_init__(self):
        self.node_index = {}
        for n in self.nodes:
            if n.id in self.node_index:
                raise DatasetError(f"节点 id 重复: {n.id!r}")
            self.node_index[n.id] = n

    def __len__(self) -> int:
        return len(self.nodes)

    # ─── 构建 ───

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> 'Dataset':
        if not isinstance(raw, dict):
            raise DatasetError(f"数据集顶层应为对象, 实际为 {type(raw).__name__}")
        missing = [k for k in ('nodes', 'links') if k not in raw]
        if missing:
            raise DatasetError(f"数据集缺少字段: {missing}")
        nodes = [Node.from_dict(d) for d in raw['nodes']]
        edges = [Edge.from_dict(d) for d in raw['links']]
        return cls(nodes, edges)

    @classmethod
    def from_frames(cls, nodes_df: pd.DataFrame, links_df: pd.DataFrame) -> 'Dataset':
        """从两张表构建 (列名同 JSON 键，缺失值视为空)"""
        nodes_df = nodes_df.astype(object).where(pd.notna(nodes_df), None)
        nodes = [Node.from_dict(row) for row in nodes_df.to_dict('records')]
        edges = [Edge.from_dict(row) for row in links_df.to_dict('records')]
        return cls(nodes, edges)

    # ─── 校验 ───

    def unresolved_edges(self) -> list[Edge]:
        """端点不在节点表中的边"""
        return [e for e in self.edges
                if e.source not in self.node_index or e.target not in self.node_index]

    def resolved_edges(self) -> list[Edge]:
        """两端都在节点表中的边"""
        return [e for e in self.edges
                if e.source in self.node_index and e.target in self.node_index]

    def validate(self) -> 'Dataset':
        bad = self.unresolved_edges()
        if bad:
            preview = ', '.join(f"{e.source}->{e.target}" for e in bad[:5])
            raise DatasetError(f"{len(bad)} 条边的端点不存在: {preview}")
        return self

    def resolve(self, edge: Edge) -> tuple[Node, Node]:
        """边 → (源节点, 目标节点)"""
        try:
            return self.node_index[edge.source], self.node_index[edge.target]
        except KeyError as e:
            raise DatasetError(f"边端点不存在: {e.args[0]!r}") from None

    # ─── 导出 ───

    def to_dict(self) -> dict:
        return {
            'nodes': [n.to_dict() for n in self.nodes],
            'links': [e.to_dict() for e in self.edges],
        }

    def to_frame(self) -> pd.DataFrame:
        """节点汇总表 (含派生属性)"""
        df = pd.DataFrame([n.to_dict() for n in self.nodes])
        if df.empty:
            return pd.DataFrame(columns=['id', 'Name', 'country', 'num_publications',
                                         'num_citations', 'degree', 'color', 'radius'])
        return df

    def to_networkx(self):
        """转换为 networkx 图 (节点属性含派生值，None 值不写入)"""
        import networkx as nx

        G = nx.MultiGraph()
        for n in self.nodes:
            attrs = {k: v for k, v in n.to_dict().items() if k != 'id' and v is not None}
            G.add_node(n.id, **attrs)
        for e in self.edges:
            G.add_edge(e.source, e.target)
        return G


def load_dataset(path: str | Path, strict: bool = True) -> Dataset:
    """
    一次性读取 JSON 数据集。

    Args:
        path: JSON 文件路径
        strict: 是否检查边端点存在

    Raises:
        DatasetError: 文件不存在、JSON 非法或结构不合法
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except OSError as e:
        raise DatasetError(f"无法读取数据集 {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise DatasetError(f"数据集不是合法 JSON {path}: {e}") from e

    ds = Dataset.from_dict(raw)
    if strict:
        ds.validate()
    logger.info("数据集已加载: %s (%d 节点, %d 边)", path, len(ds.nodes), len(ds.edges))
    return ds
