"""
力导向模拟单元测试

测试覆盖:
- 快照流: 每步一个快照，能量低于 alpha_min 后结束
- restart: 迭代中重置能量延续同一个流，结束后可再次迭代
- 各个力的基本方向
- 固定节点、力注册表、最近节点查找
"""

import math

import pytest

from pubnet.dataset import Edge, Node
from pubnet.errors import DatasetError
from pubnet.session import GraphSession
from pubnet.simulation import (
    CenterForce,
    CollideForce,
    ForceSimulation,
    LinkForce,
    ManyBodyForce,
)


def _distance(a, b):
    return math.hypot(a.x - b.x, a.y - b.y)


def _pair(distance):
    return [Node(id='a', x=0.0, y=0.0), Node(id='b', x=distance, y=0.0)]


# ═══════════════════════════════════════════════
# 快照流
# ═══════════════════════════════════════════════


class TestSnapshots:
    """测试快照流与能量衰减"""

    def test_stream_terminates_near_300_ticks(self, session):
        """默认衰减率约 300 步冷却"""
        snaps = list(session.simulation.snapshots())
        assert 295 <= len(snaps) <= 305
        assert snaps[-1].alpha < session.simulation.alpha_min
        assert not session.simulation.running

    def test_snapshot_per_tick(self, session):
        """每步一个快照，包含全部节点"""
        ids = {n.id for n in session.nodes}
        for i, snap in enumerate(session.simulation.snapshots(), start=1):
            assert snap.tick == i
            assert set(snap.positions) == ids
            if i == 20:
                break

    def test_alpha_strictly_decreasing(self, session):
        alphas = [s.alpha for s in session.simulation.snapshots()]
        assert all(b < a for a, b in zip(alphas, alphas[1:]))

    def test_restart_after_convergence(self, session):
        """收敛后 restart 再迭代会继续产出"""
        sim = session.simulation
        first = sim.run()
        assert not sim.running
        sim.restart(alpha=1.0)
        assert sim.running
        second = list(sim.snapshots())
        assert second[0].tick == first.tick + 1
        assert len(second) >= 295

    def test_restart_mid_stream_extends(self, session):
        """迭代过程中重置能量延续同一个流"""
        sim = session.simulation
        count = 0
        for count, snap in enumerate(sim.snapshots(), start=1):
            if count == 50:
                sim.restart(alpha=1.0)
        assert count >= 50 + 295

    def test_stop(self, session):
        sim = session.simulation
        sim.tick()
        sim.stop()
        assert list(sim.snapshots()) == []

    def test_run_max_ticks(self, session):
        snap = session.simulation.run(max_ticks=10)
        assert snap.tick == 10

    def test_positions_synced_to_nodes(self, session):
        snap = session.simulation.run(max_ticks=5)
        for node in session.nodes:
            assert snap.positions[node.id] == (node.x, node.y)

    def test_deterministic(self, dataset, raw_network, config):
        """相同输入和种子得到相同布局"""
        from pubnet.dataset import Dataset
        a = GraphSession.create(dataset, config).simulation.run()
        b = GraphSession.create(Dataset.from_dict(raw_network), config).simulation.run()
        assert a.positions == b.positions

    def test_layout_settles_near_center(self, session):
        """收敛后质心在画布中心"""
        session.simulation.run()
        cx, cy = session.config.view.center
        mx = sum(n.x for n in session.nodes) / len(session.nodes)
        my = sum(n.y for n in session.nodes) / len(session.nodes)
        assert mx == pytest.approx(cx, abs=1.0)
        assert my == pytest.approx(cy, abs=1.0)


# ═══════════════════════════════════════════════
# 力
# ═══════════════════════════════════════════════


class TestForces:
    """测试单个力的作用方向"""

    def test_charge_repels(self):
        nodes = _pair(10.0)
        sim = ForceSimulation(nodes).set_force('charge', ManyBodyForce(strength=-30))
        sim.tick()
        assert _distance(*nodes) > 10.0

    def test_positive_charge_attracts(self):
        nodes = _pair(10.0)
        sim = ForceSimulation(nodes).set_force('charge', ManyBodyForce(strength=30))
        sim.tick()
        assert _distance(*nodes) < 10.0

    def test_link_pulls_to_distance(self):
        nodes = _pair(100.0)
        sim = ForceSimulation(nodes).set_force('link', LinkForce([Edge('a', 'b')], distance=30))
        sim.tick(10)
        assert _distance(*nodes) < 100.0

    def test_link_pushes_when_too_close(self):
        nodes = _pair(5.0)
        sim = ForceSimulation(nodes).set_force('link', LinkForce([Edge('a', 'b')], distance=30))
        sim.tick()
        assert _distance(*nodes) > 5.0

    def test_zero_link_strength_no_motion(self):
        nodes = _pair(100.0)
        sim = ForceSimulation(nodes).set_force('link', LinkForce([Edge('a', 'b')], strength=0))
        sim.tick()
        assert _distance(*nodes) == pytest.approx(100.0)

    def test_link_unknown_endpoint_raises(self):
        sim = ForceSimulation(_pair(1.0))
        with pytest.raises(DatasetError):
            sim.set_force('link', LinkForce([Edge('a', 'zzz')]))

    def test_collide_separates_overlap(self):
        nodes = _pair(2.0)
        sim = ForceSimulation(nodes).set_force('collide', CollideForce(radius=5.0))
        sim.tick()
        assert _distance(*nodes) > 2.0

    def test_collide_ignores_separated(self):
        nodes = _pair(50.0)
        sim = ForceSimulation(nodes).set_force('collide', CollideForce(radius=5.0))
        sim.tick()
        assert _distance(*nodes) == pytest.approx(50.0)

    def test_collide_radius_accessor(self):
        nodes = [Node(id=1, radius=4.0), Node(id=2, radius=7.0)]
        force = CollideForce(radius=lambda n: n.radius)
        ForceSimulation(nodes).set_force('collide', force)
        assert list(force.radii) == [4.0, 7.0]
        force.radius = 1.0
        assert list(force.radii) == [1.0, 1.0]

    def test_center_moves_centroid(self):
        nodes = _pair(10.0)
        sim = ForceSimulation(nodes).set_force('center', CenterForce(100.0, 50.0))
        sim.tick()
        assert (nodes[0].x + nodes[1].x) / 2 == pytest.approx(100.0)
        assert (nodes[0].y + nodes[1].y) / 2 == pytest.approx(50.0)

    def test_coincident_nodes_separate(self):
        """重合节点靠随机扰动分开"""
        nodes = [Node(id=1, x=0.0, y=0.0), Node(id=2, x=0.0, y=0.0)]
        sim = ForceSimulation(nodes, seed=1).set_force('charge', ManyBodyForce())
        sim.tick(5)
        assert _distance(*nodes) > 0


# ═══════════════════════════════════════════════
# 其他
# ═══════════════════════════════════════════════


class TestSimulationMisc:
    """测试初始位置、固定节点、注册表、查找"""

    def test_phyllotaxis_initial_positions(self):
        nodes = [Node(id=i) for i in range(10)]
        ForceSimulation(nodes)
        positions = {(round(n.x, 6), round(n.y, 6)) for n in nodes}
        assert len(positions) == 10

    def test_existing_positions_kept(self):
        nodes = [Node(id=1, x=5.0, y=6.0)]
        ForceSimulation(nodes)
        assert (nodes[0].x, nodes[0].y) == (5.0, 6.0)

    def test_pinned_node_stays(self, session):
        node = session.node(3)
        node.fx, node.fy = 123.0, 45.0
        session.simulation.run(max_ticks=20)
        assert (node.x, node.y) == (123.0, 45.0)
        assert (node.vx, node.vy) == (0.0, 0.0)

    def test_registry(self, session):
        sim = session.simulation
        assert sim.force_names == ['link', 'charge', 'collide', 'center']
        with pytest.raises(KeyError):
            sim.force('gravity')
        removed = sim.remove_force('center')
        assert isinstance(removed, CenterForce)
        assert sim.remove_force('center') is None

    def test_find(self):
        nodes = [Node(id=1, x=0.0, y=0.0), Node(id=2, x=10.0, y=0.0)]
        sim = ForceSimulation(nodes)
        assert sim.find(8, 1).id == 2
        assert sim.find(100, 100, radius=5) is None
        assert ForceSimulation([]).find(0, 0) is None

    def test_empty_simulation_runs(self):
        sim = ForceSimulation([])
        sim.set_force('charge', ManyBodyForce()).set_force('center', CenterForce())
        assert sim.run().positions == {}

    def test_lenient_session_skips_unresolved(self, raw_network, config):
        """宽松模式下端点不存在的边不参与模拟"""
        from pubnet.dataset import Dataset
        raw_network['links'].append({'source': 1, 'target': 404})
        session = GraphSession.create(Dataset.from_dict(raw_network), config)
        assert len(session.simulation.force('link').edges) == 4
        assert session.node(1).degree == 3
