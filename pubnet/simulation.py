"""
力导向布局 — d3-force 模型的步进宿主

与导出页面中 d3.forceSimulation 相同的物理模型，用于无界面运行、位置快照流和静态渲染:
- 能量 alpha 从 1 按 alpha_decay 衰减，低于 alpha_min 时停止
- 命名力注册表: link / charge / collide / center
- 每步: 衰减 alpha → 依次施加各力 (修改速度) → 速度衰减 → 积分位置
- 固定节点 (fx/fy) 保持原位

单线程协作式: snapshots() 每步之后让出，重配置发生在两步之间，不会打断一步内的计算。

使用示例:
    >>> sim = ForceSimulation(nodes, seed=42)
    >>> sim.set_force('link', LinkForce(edges))
    >>> sim.set_force('charge', ManyBodyForce(strength=-30))
    >>> for snap in sim.snapshots():
    ...     draw(snap.positions)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Hashable, Iterable, Iterator, Sequence, Union

import numpy as np

from .dataset import Edge, Node
from .errors import DatasetError

if TYPE_CHECKING:
    from .config import VizConfig
    from .preprocess import AnnotatedGraph

logger = logging.getLogger(__name__)

Accessor = Union[float, Callable[[Node], float]]

INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


@dataclass(frozen=True)
class Snapshot:
    """某一步之后的全部节点位置"""
    tick: int
    alpha: float
    positions: dict[Hashable, tuple[float, float]]


# ═══════════════════════════════════════════════
# 力
# ═══════════════════════════════════════════════

class Force:
    """力基类。initialize() 在挂到模拟上时调用，__call__(alpha) 每步调用一次"""

    def __init__(self):
        self.sim: ForceSimulation | None = None

    def initialize(self, sim: 'ForceSimulation') -> None:
        self.sim = sim

    def _reinitialize(self) -> None:
        if self.sim is not None:
            self.initialize(self.sim)

    def _resolve(self, accessor: Accessor, items: Sequence) -> np.ndarray:
        if callable(accessor):
            return np.array([float(accessor(it)) for it in items], dtype=float)
        return np.full(len(items), float(accessor))

    def __call__(self, alpha: float) -> None:
        raise NotImplementedError


class CenterForce(Force):
    """平移所有节点，使质心落在 (x, y)"""

    def __init__(self, x: float = 0.0, y: float = 0.0, strength: float = 1.0):
        super().__init__()
        self.x = x
        self.y = y
        self.strength = strength

    def __call__(self, alpha: float) -> None:
        pos = self.sim.pos
        if len(pos) == 0:
            return
        shift = (pos.mean(axis=0) - (self.x, self.y)) * self.strength
        pos -= shift


class ManyBodyForce(Force):
    """电荷力: 负值互斥，正值互吸 (两两直接求和)"""

    def __init__(self, strength: Accessor = -30.0, distance_min: float = 1.0,
                 distance_max: float = math.inf):
        super().__init__()
        self._strength = strength
        self.distance_min = distance_min
        self.distance_max = distance_max
        self._strengths = np.zeros(0)

    @property
    def strength(self) -> Accessor:
        return self._strength

    @strength.setter
    def strength(self, value: Accessor) -> None:
        self._strength = value
        self._reinitialize()

    def initialize(self, sim: 'ForceSimulation') -> None:
        super().initialize(sim)
        self._strengths = self._resolve(self._strength, sim.nodes)

    def __call__(self, alpha: float) -> None:
        sim = self.sim
        n = len(sim.nodes)
        if n < 2:
            return
        # delta[i, j] = pos[j] - pos[i]
        delta = sim.pos[np.newaxis, :, :] - sim.pos[:, np.newaxis, :]
        coincident = np.all(delta == 0, axis=-1)
        np.fill_diagonal(coincident, False)
        if coincident.any():
            delta[coincident] = sim.jiggle((int(coincident.sum()), 2))

        l2 = np.einsum('ijk,ijk->ij', delta, delta)
        np.fill_diagonal(l2, 1.0)
        dmin2 = self.distance_min ** 2
        l2 = np.where(l2 < dmin2, np.sqrt(dmin2 * l2), l2)

        w = self._strengths[np.newaxis, :] * alpha / l2
        np.fill_diagonal(w, 0.0)
        if math.isfinite(self.distance_max):
            w[l2 >= self.distance_max ** 2] = 0.0
        sim.vel += np.einsum('ijk,ij->ik', delta, w)


class LinkForce(Force):
    """弹簧力: 把每条边的两端拉向目标距离

    strength 为 None 时每条边取 1 / min(源度数, 目标度数)，高度数节点的边更软。
    """

    def __init__(self, edges: Iterable[Edge], strength: Accessor | None = None,
                 distance: Accessor = 30.0, iterations: int = 1):
        super().__init__()
        self.edges = list(edges)
        self._strength = strength
        self._distance = distance
        self.iterations = iterations
        self._src = np.zeros(0, dtype=int)
        self._tgt = np.zeros(0, dtype=int)
        self._bias = np.zeros(0)
        self._strengths = np.zeros(0)
        self._distances = np.zeros(0)

    @property
    def strength(self) -> Accessor | None:
        return self._strength

    @strength.setter
    def strength(self, value: Accessor | None) -> None:
        self._strength = value
        self._reinitialize()

    @property
    def distance(self) -> Accessor:
        return self._distance

    @distance.setter
    def distance(self, value: Accessor) -> None:
        self._distance = value
        self._reinitialize()

    def initialize(self, sim: 'ForceSimulation') -> None:
        super().initialize(sim)
        try:
            self._src = np.array([sim.index[e.source] for e in self.edges], dtype=int)
            self._tgt = np.array([sim.index[e.target] for e in self.edges], dtype=int)
        except KeyError as e:
            raise DatasetError(f"边端点不存在: {e.args[0]!r}") from None

        count = np.bincount(np.concatenate([self._src, self._tgt]),
                            minlength=len(sim.nodes)).astype(float)
        cs, ct = count[self._src], count[self._tgt]
        self._bias = cs / np.maximum(cs + ct, 1.0)

        if self._strength is None:
            self._strengths = 1.0 / np.maximum(np.minimum(cs, ct), 1.0)
        else:
            self._strengths = self._resolve(self._strength, self.edges)
        self._distances = self._resolve(self._distance, self.edges)

    def __call__(self, alpha: float) -> None:
        if len(self.edges) == 0:
            return
        sim = self.sim
        s, t = self._src, self._tgt
        bias = self._bias[:, np.newaxis]
        for _ in range(self.iterations):
            d = (sim.pos[t] + sim.vel[t]) - (sim.pos[s] + sim.vel[s])
            zero = np.all(d == 0, axis=1)
            if zero.any():
                d[zero] = sim.jiggle((int(zero.sum()), 2))
            length = np.linalg.norm(d, axis=1)
            k = (length - self._distances) / length * alpha * self._strengths
            d *= k[:, np.newaxis]
            np.subtract.at(sim.vel, t, d * bias)
            np.add.at(sim.vel, s, d * (1 - bias))


class CollideForce(Force):
    """碰撞力: 把圆重叠的节点推开 (不随 alpha 衰减)"""

    def __init__(self, radius: Accessor = 1.0, strength: float = 1.0, iterations: int = 1):
        super().__init__()
        self._radius = radius
        self.strength = strength
        self.iterations = iterations
        self._radii = np.zeros(0)

    @property
    def radius(self) -> Accessor:
        return self._radius

    @radius.setter
    def radius(self, value: Accessor) -> None:
        self._radius = value
        self._reinitialize()

    @property
    def radii(self) -> np.ndarray:
        return self._radii

    def initialize(self, sim: 'ForceSimulation') -> None:
        super().initialize(sim)
        self._radii = self._resolve(self._radius, sim.nodes)

    def __call__(self, alpha: float) -> None:
        sim = self.sim
        n = len(sim.nodes)
        if n < 2:
            return
        r = self._radii
        iu, ju = np.triu_indices(n, k=1)
        rr = r[iu] + r[ju]
        for _ in range(self.iterations):
            p = sim.pos + sim.vel
            d = p[iu] - p[ju]
            l2 = np.einsum('ij,ij->i', d, d)
            hit = l2 < rr * rr
            if not hit.any():
                continue
            i, j, dh, rh = iu[hit], ju[hit], d[hit], rr[hit]
            zero = np.all(dh == 0, axis=1)
            if zero.any():
                dh[zero] = sim.jiggle((int(zero.sum()), 2))
            length = np.linalg.norm(dh, axis=1)
            k = (rh - length) / length * self.strength
            dh *= k[:, np.newaxis]
            ri2, rj2 = r[i] ** 2, r[j] ** 2
            share = (rj2 / (ri2 + rj2))[:, np.newaxis]
            np.add.at(sim.vel, i, dh * share)
            np.subtract.at(sim.vel, j, dh * (1 - share))


# ═══════════════════════════════════════════════
# 模拟
# ═══════════════════════════════════════════════

class ForceSimulation:
    """
    力导向模拟。

    节点位置只在 tick() 中写入 (同步回 Node.x / Node.y)。

    Attributes:
        alpha: 当前能量
        alpha_min: 停止阈值
        alpha_decay: 每步衰减率 (默认约 300 步冷却)
        alpha_target: 能量目标值
        velocity_decay: 速度摩擦
    """

    def __init__(self, nodes: Iterable[Node], seed: int | None = None,
                 alpha_min: float = 0.001, velocity_decay: float = 0.4):
        self.nodes: list[Node] = list(nodes)
        self.index = {n.id: i for i, n in enumerate(self.nodes)}
        self._rng = np.random.default_rng(seed)

        self.alpha = 1.0
        self.alpha_min = alpha_min
        self.alpha_decay = 1 - alpha_min ** (1 / 300)
        self.alpha_target = 0.0
        self.velocity_decay = velocity_decay
        self.tick_count = 0
        self._stopped = False
        self._forces: dict[str, Force] = {}

        self.pos = np.zeros((len(self.nodes), 2))
        self.vel = np.zeros((len(self.nodes), 2))
        self._init_nodes()

    def _init_nodes(self) -> None:
        """已有位置的节点保留，其余按叶序 (phyllotaxis) 排布"""
        for i, n in enumerate(self.nodes):
            if n.x is None or n.y is None:
                r = INITIAL_RADIUS * math.sqrt(0.5 + i)
                angle = i * INITIAL_ANGLE
                n.x, n.y = r * math.cos(angle), r * math.sin(angle)
            self.pos[i] = (n.x, n.y)
            self.vel[i] = (n.vx, n.vy)
        self._sync_fixed()

    def _sync_fixed(self) -> None:
        self._fixed = np.array([[np.nan if n.fx is None else n.fx,
                                 np.nan if n.fy is None else n.fy] for n in self.nodes],
                               dtype=float).reshape(-1, 2)

    def jiggle(self, shape) -> np.ndarray:
        """重合时的微小随机扰动"""
        return (self._rng.random(shape) - 0.5) * 1e-6

    # ─── 力注册表 ───

    def force(self, name: str) -> Force:
        try:
            return self._forces[name]
        except KeyError:
            raise KeyError(f"未注册的力: {name!r} (已注册: {list(self._forces)})") from None

    def set_force(self, name: str, force: Force) -> 'ForceSimulation':
        force.initialize(self)
        self._forces[name] = force
        return self

    def remove_force(self, name: str) -> Force | None:
        return self._forces.pop(name, None)

    @property
    def force_names(self) -> list[str]:
        return list(self._forces)

    # ─── 步进 ───

    @property
    def running(self) -> bool:
        return not self._stopped and self.alpha >= self.alpha_min

    def tick(self, iterations: int = 1) -> 'ForceSimulation':
        """手动推进若干步 (不检查 alpha_min)"""
        self._sync_fixed()
        fixed_x = ~np.isnan(self._fixed[:, 0])
        fixed_y = ~np.isnan(self._fixed[:, 1])
        for _ in range(iterations):
            self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
            for force in self._forces.values():
                force(self.alpha)
            self.vel *= 1 - self.velocity_decay
            self.pos += self.vel
            # 固定节点: 位置回到 fx/fy，速度清零
            self.pos[fixed_x, 0] = self._fixed[fixed_x, 0]
            self.vel[fixed_x, 0] = 0.0
            self.pos[fixed_y, 1] = self._fixed[fixed_y, 1]
            self.vel[fixed_y, 1] = 0.0
            self.tick_count += 1
        self._sync_nodes()
        return self

    def _sync_nodes(self) -> None:
        for n, (x, y), (vx, vy) in zip(self.nodes, self.pos, self.vel):
            n.x, n.y, n.vx, n.vy = float(x), float(y), float(vx), float(vy)

    def restart(self, alpha: float | None = None) -> 'ForceSimulation':
        """恢复步进；给定 alpha 时先重置能量"""
        if alpha is not None:
            self.alpha = float(alpha)
        self._stopped = False
        logger.debug("模拟重启: alpha=%.3f", self.alpha)
        return self

    def stop(self) -> 'ForceSimulation':
        self._stopped = True
        return self

    def snapshot(self) -> Snapshot:
        return Snapshot(
            tick=self.tick_count,
            alpha=self.alpha,
            positions={n.id: (float(x), float(y)) for n, (x, y) in zip(self.nodes, self.pos)},
        )

    def snapshots(self) -> Iterator[Snapshot]:
        """
        惰性位置快照流。

        每步之后产出一个快照；能量降到 alpha_min 以下时结束。
        迭代过程中调用 restart(alpha) 会延续同一个流；结束后 restart 再迭代则从当前位置继续。
        """
        while self.running:
            self.tick()
            yield self.snapshot()

    __iter__ = snapshots

    def run(self, max_ticks: int | None = None) -> Snapshot:
        """步进到收敛 (或 max_ticks)，返回最后的快照"""
        last = self.snapshot()
        for i, snap in enumerate(self.snapshots(), start=1):
            last = snap
            if max_ticks is not None and i >= max_ticks:
                break
        logger.info("模拟结束: %d 步, alpha=%.4f", last.tick, last.alpha)
        return last

    def find(self, x: float, y: float, radius: float | None = None) -> Node | None:
        """离 (x, y) 最近的节点；给定 radius 时超出范围返回 None"""
        if not self.nodes:
            return None
        d2 = ((self.pos - (x, y)) ** 2).sum(axis=1)
        i = int(np.argmin(d2))
        if radius is not None and d2[i] > radius * radius:
            return None
        return self.nodes[i]


# ═══════════════════════════════════════════════
# 便捷函数
# ═══════════════════════════════════════════════

def build_simulation(graph: 'AnnotatedGraph', config: 'VizConfig') -> ForceSimulation:
    """
    按默认配置组装模拟: link + charge + collide + center。

    collide 半径读取 node.radius，调用前需先写入半径。
    """
    fc = config.forces
    sim = ForceSimulation(graph.nodes, seed=config.seed,
                          alpha_min=fc.alpha_min, velocity_decay=fc.velocity_decay)
    cx, cy = config.view.center
    edges = graph.dataset.resolved_edges()
    if len(edges) < len(graph.edges):
        logger.warning("跳过 %d 条端点不存在的边", len(graph.edges) - len(edges))
    sim.set_force('link', LinkForce(edges, strength=fc.link_strength,
                                    distance=fc.link_distance))
    sim.set_force('charge', ManyBodyForce(strength=fc.charge_strength))
    sim.set_force('collide', CollideForce(radius=node_radius, strength=fc.collide_strength,
                                          iterations=fc.collide_iterations))
    sim.set_force('center', CenterForce(cx, cy))
    logger.debug("模拟已组装: %s", ', '.join(sim.force_names))
    return sim


def node_radius(node: Node) -> float:
    return node.radius if node.radius is not None else 0.0
