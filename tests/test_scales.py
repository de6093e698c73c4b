"""尺度映射单元测试: 平方根尺度 / 线性策略 / 半径截断"""

import pytest

from pubnet.dataset import Node
from pubnet.errors import ConfigError, ControlInputError
from pubnet.scales import (
    RadiusMapper,
    SizingMetric,
    SizingStrategy,
    SqrtScale,
    clamp,
    default_strategies,
)


class TestSqrtScale:
    """测试平方根尺度"""

    def test_endpoints(self):
        scale = SqrtScale((0, 4), (3, 12))
        assert scale(0) == pytest.approx(3)
        assert scale(4) == pytest.approx(12)

    def test_sqrt_interpolation(self):
        """sqrt(1)/sqrt(4) = 0.5 → 值域中点"""
        scale = SqrtScale((0, 4), (3, 12))
        assert scale(1) == pytest.approx(7.5)

    def test_degenerate_domain_maps_to_midpoint(self):
        """定义域退化 (全是孤立点) 时取值域中点"""
        scale = SqrtScale((0, 0), (3, 12))
        assert scale(0) == pytest.approx(7.5)

    def test_no_clamping(self):
        scale = SqrtScale((0, 4), (3, 12))
        assert scale(16) == pytest.approx(21)


class TestSizingMetric:
    """测试节点大小选项"""

    def test_parse_text(self):
        assert SizingMetric.parse(' Citations ') is SizingMetric.CITATIONS
        assert SizingMetric.parse(SizingMetric.DEGREE) is SizingMetric.DEGREE

    def test_parse_unknown_raises(self):
        with pytest.raises(ControlInputError):
            SizingMetric.parse('size')

    def test_error_is_value_error(self):
        """所有异常都可以按 ValueError 捕获"""
        with pytest.raises(ValueError):
            SizingMetric.parse('')

    def test_value_of(self):
        node = Node(id=1, num_publications=7, num_citations=90, degree=3)
        assert SizingMetric.PUBLICATIONS.value_of(node) == 7
        assert SizingMetric.CITATIONS.value_of(node) == 90
        assert SizingMetric.DEGREE.value_of(node) == 3


class TestSizingStrategy:
    """测试策略校验"""

    def test_unknown_kind_raises(self):
        with pytest.raises(ConfigError):
            SizingStrategy('cubic')

    def test_non_positive_divisor_raises(self):
        with pytest.raises(ConfigError):
            SizingStrategy('linear', divisor=0)

    def test_from_dict_unknown_key_raises(self):
        with pytest.raises(ConfigError):
            SizingStrategy.from_dict({'kind': 'linear', 'scale': 2})

    def test_from_dict_defaults(self):
        s = SizingStrategy.from_dict({'divisor': 10})
        assert s == SizingStrategy('linear', 10.0, 0.0)
        assert s.to_dict() == {'kind': 'linear', 'divisor': 10.0, 'offset': 0.0}

    def test_defaults(self):
        strategies = default_strategies()
        assert strategies[SizingMetric.PUBLICATIONS] == SizingStrategy('linear', 50, 5)
        assert strategies[SizingMetric.CITATIONS] == SizingStrategy('linear', 500, 5)
        assert strategies[SizingMetric.DEGREE].kind == 'sqrt'


class TestRadiusMapper:
    """测试半径映射"""

    @pytest.fixture
    def mapper(self):
        return RadiusMapper(max_degree=4)

    def test_degree_radius_within_range(self, mapper):
        """度数半径落在 [3, 12] 内"""
        for degree in range(0, 5):
            r = mapper.degree_radius(degree)
            assert 3 <= r <= 12
        assert mapper.degree_radius(0) == pytest.approx(3)
        assert mapper.degree_radius(4) == pytest.approx(12)

    def test_degree_radius_monotonic(self, mapper):
        radii = [mapper.degree_radius(d) for d in range(5)]
        assert radii == sorted(radii)

    @pytest.mark.parametrize('value,expected', [
        (0, 5),
        (100, 7),
        (500, 15),
        (10000, 20),        # 截断到上界
    ])
    def test_publications(self, mapper, value, expected):
        assert mapper.map_value(value, SizingMetric.PUBLICATIONS) == pytest.approx(expected)

    @pytest.mark.parametrize('value,expected', [
        (0, 5),
        (5000, 15),
        (10 ** 7, 20),
    ])
    def test_citations(self, mapper, value, expected):
        assert mapper.map_value(value, SizingMetric.CITATIONS) == pytest.approx(expected)

    def test_negative_value_clamped_to_min(self, mapper):
        assert mapper.map_value(-10000, SizingMetric.PUBLICATIONS) == 3

    def test_every_metric_within_bounds(self, mapper):
        """任意指标值的半径都在 [3, 20] 内"""
        for value in (-1e9, -5, 0, 1, 49, 333, 1e4, 1e9):
            for metric in SizingMetric:
                assert 3 <= mapper.map_value(value, metric) <= 20

    def test_degree_metric_uses_sqrt_scale(self, mapper):
        node = Node(id=1, degree=1)
        assert mapper.radius(node, SizingMetric.DEGREE) == pytest.approx(7.5)

    def test_degree_above_max_uses_radius_bounds(self, mapper):
        """超出观测最大度数时只截断到 [3, 20]，不截断到 12"""
        assert mapper.degree_radius(16) == pytest.approx(20)
        assert 12 < mapper.degree_radius(6) < 20

    def test_isolated_graph_midpoint(self):
        mapper = RadiusMapper(max_degree=0)
        assert mapper.degree_radius(0) == pytest.approx(7.5)

    def test_custom_strategy(self):
        mapper = RadiusMapper(4, strategies={SizingMetric.PUBLICATIONS: SizingStrategy('linear', 10, 0)})
        assert mapper.map_value(100, SizingMetric.PUBLICATIONS) == pytest.approx(10)
        # 未覆盖的策略保持默认
        assert mapper.map_value(5000, SizingMetric.CITATIONS) == pytest.approx(15)

    def test_invalid_range_raises(self):
        with pytest.raises(ConfigError):
            RadiusMapper(4, r_min=10, r_max=5)

    def test_apply_and_all_radii(self, mapper):
        nodes = [Node(id=1, num_publications=100, num_citations=5000, degree=4)]
        mapper.apply(nodes, SizingMetric.CITATIONS)
        assert nodes[0].radius == pytest.approx(15)
        assert mapper.all_radii(nodes[0]) == {'publications': 7.0, 'degree': 12.0, 'citations': 15.0}

    def test_clamp(self):
        assert clamp(5, 0, 1) == 1
        assert clamp(-5, 0, 1) == 0
        assert clamp(0.5, 0, 1) == 0.5
