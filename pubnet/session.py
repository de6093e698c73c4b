"""会话上下文: 一次可视化所需的全部状态 (配置、标注后的图、半径映射器、模拟)

没有模块级共享状态，调用方显式创建并传递 GraphSession。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Hashable

from .config import VizConfig
from .dataset import Dataset, Edge, Node, load_dataset
from .preprocess import AnnotatedGraph, CountryBuckets, annotate
from .scales import RadiusMapper, SizingMetric
from .simulation import ForceSimulation, build_simulation

logger = logging.getLogger(__name__)


@dataclass
class GraphSession:
    config: VizConfig
    graph: AnnotatedGraph
    mapper: RadiusMapper
    simulation: ForceSimulation
    metric: SizingMetric

    @classmethod
    def create(cls, dataset: Dataset, config: VizConfig | None = None) -> 'GraphSession':
        """预处理 → 初始半径 → 组装模拟"""
        config = config or VizConfig()
        graph = annotate(dataset, config)
        mapper = RadiusMapper.from_config(config, graph.max_degree)
        mapper.apply(graph.nodes, config.default_metric)
        simulation = build_simulation(graph, config)
        logger.info("会话已创建: %d 节点, %d 边, 节点大小按 %s",
                    len(graph.nodes), len(graph.edges), config.default_metric.value)
        return cls(config, graph, mapper, simulation, config.default_metric)

    @classmethod
    def from_file(cls, path: str | Path, config: VizConfig | None = None,
                  strict: bool = True) -> 'GraphSession':
        return cls.create(load_dataset(path, strict=strict), config)

    @property
    def buckets(self) -> CountryBuckets:
        return self.graph.buckets

    @property
    def nodes(self) -> list[Node]:
        return self.graph.nodes

    @property
    def edges(self) -> list[Edge]:
        return self.graph.edges

    def node(self, node_id: Hashable) -> Node:
        try:
            return self.graph.dataset.node_index[node_id]
        except KeyError:
            raise KeyError(f"节点不存在: {node_id!r}") from None
