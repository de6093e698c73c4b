"""共享 fixtures: 小型合作网络 + 固定随机种子的会话"""

from pathlib import Path

import pytest

from pubnet.config import VizConfig
from pubnet.dataset import Dataset
from pubnet.session import GraphSession

ROOT = Path(__file__).parent.parent
SAMPLE_DATA = ROOT / 'data' / 'publication_network.json'
DEFAULT_CONFIG = ROOT / 'configs' / 'default.yaml'


@pytest.fixture
def raw_network():
    """5 个作者，3 个国家，4 条合作边

    度数: 1→2, 2→2, 3→3, 4→0, 5→1
    """
    return {
        'nodes': [
            {'id': 1, 'Name': 'Alice', 'country': 'China', 'num_publications': 100, 'num_citations': 5000},
            {'id': 2, 'Name': 'Bob', 'country': 'China', 'num_publications': 20, 'num_citations': 400},
            {'id': 3, 'Name': 'Carol', 'country': 'USA', 'num_publications': 500, 'num_citations': 20000},
            {'id': 4, 'Name': 'Dan', 'country': 'Germany', 'num_publications': 0, 'num_citations': 0},
            {'id': 5, 'Name': 'Eve', 'country': 'USA', 'num_publications': 60, 'num_citations': 900},
        ],
        'links': [
            {'source': 1, 'target': 2},
            {'source': 1, 'target': 3},
            {'source': 2, 'target': 3},
            {'source': 3, 'target': 5},
        ],
    }


@pytest.fixture
def dataset(raw_network):
    return Dataset.from_dict(raw_network)


@pytest.fixture
def config():
    return VizConfig(seed=42)


@pytest.fixture
def session(dataset, config):
    return GraphSession.create(dataset, config)


@pytest.fixture
def sample_session(config):
    """仓库自带的示例数据集"""
    return GraphSession.from_file(SAMPLE_DATA, config)
