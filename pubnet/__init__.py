"""pubnet — 合作网络力导向可视化工具库"""

from pubnet.errors import PubnetError, DatasetError, ConfigError, ControlInputError
from pubnet.config import VizConfig, ForceDefaults, RadiusConfig, ViewConfig, load_config
from pubnet.dataset import Node, Edge, Dataset, load_dataset
from pubnet.preprocess import (
    SelfLoopPolicy, CountryBuckets, AnnotatedGraph,
    compute_degrees, rank_countries, assign_colors, annotate,
)
from pubnet.scales import SizingMetric, SizingStrategy, SqrtScale, RadiusMapper, clamp
from pubnet.simulation import (
    ForceSimulation, Snapshot, LinkForce, ManyBodyForce, CollideForce, CenterForce,
    build_simulation,
)
from pubnet.session import GraphSession
from pubnet.controller import (
    InteractionController, ControllerState, ForceParams, ZoomTransform, Tooltip,
)

__version__ = '1.0.0'
