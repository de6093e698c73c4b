"""VizConfig — YAML驱动的力导向图配置"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .colors import CATEGORY10, NEUTRAL_COLOR, is_hex_color
from .errors import ConfigError, ControlInputError
from .preprocess import SelfLoopPolicy
from .scales import SizingMetric, SizingStrategy, default_strategies


def _check_keys(cls, d: dict, section: str) -> None:
    """拒绝未知字段 (拼写错误在加载时暴露)"""
    if not isinstance(d, dict):
        raise ConfigError(f"配置段 {section} 应为映射, 实际为 {type(d).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = set(d) - known
    if unknown:
        raise ConfigError(f"配置段 {section} 含未知字段: {sorted(unknown)}")


def _metric(value) -> SizingMetric:
    try:
        return SizingMetric.parse(value)
    except ControlInputError as e:
        raise ConfigError(str(e)) from None


def _pair(value, name: str) -> tuple[float, float]:
    try:
        lo, hi = (float(v) for v in value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} 应为两个数值: {value!r}") from None
    if not (math.isfinite(lo) and math.isfinite(hi)):
        raise ConfigError(f"{name} 应为有限数值: {value!r}")
    if lo > hi:
        raise ConfigError(f"{name} 下界大于上界: {value!r}")
    return lo, hi


def _number(value, name: str, integer: bool = False, optional: bool = False):
    """数值字段: 拒绝 null (optional 除外)、非数值、非有限值和非整数"""
    if value is None and optional:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"{name} 应为数值: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} 应为数值: {value!r}") from None
    if not math.isfinite(number):
        raise ConfigError(f"{name} 应为有限数值: {value!r}")
    if integer:
        if not number.is_integer():
            raise ConfigError(f"{name} 应为整数: {value!r}")
        return int(number)
    return number


# ═══════════════════════════════════════════════
# 力参数默认值
# ═══════════════════════════════════════════════
@dataclass
class ForceDefaults:
    """模拟初始力参数"""
    link_strength: float | None = None      # None = 每条边 1/min(度数)
    charge_strength: float = -1.0
    collide_strength: float = 1.0
    collide_iterations: int = 2
    link_distance: float = 30.0
    velocity_decay: float = 0.4
    alpha_min: float = 0.001

    @classmethod
    def from_dict(cls, d: dict) -> 'ForceDefaults':
        _check_keys(cls, d, 'forces')
        values = {
            key: _number(value, f"forces.{key}",
                         integer=key == 'collide_iterations',
                         optional=key == 'link_strength')
            for key, value in d.items()
        }
        if values.get('collide_iterations', 1) < 1:
            raise ConfigError("forces.collide_iterations 至少为 1")
        if not 0 < values.get('alpha_min', 0.001) < 1:
            raise ConfigError(f"forces.alpha_min 应在 (0, 1) 内: {values['alpha_min']}")
        if not 0 <= values.get('velocity_decay', 0.4) <= 1:
            raise ConfigError(f"forces.velocity_decay 应在 [0, 1] 内: {values['velocity_decay']}")
        return cls(**values)


# ═══════════════════════════════════════════════
# 半径
# ═══════════════════════════════════════════════
@dataclass
class RadiusConfig:
    """半径截断范围 + 各指标策略"""
    min: float = 3.0
    max: float = 20.0
    degree_range: tuple[float, float] = (3.0, 12.0)
    strategies: dict[SizingMetric, SizingStrategy] = field(default_factory=default_strategies)

    @classmethod
    def from_dict(cls, d: dict) -> 'RadiusConfig':
        _check_keys(cls, d, 'radius')
        strategies = default_strategies()
        raw_strategies = d.get('strategies') or {}
        if not isinstance(raw_strategies, dict):
            raise ConfigError(f"radius.strategies 应为映射: {raw_strategies!r}")
        for name, entry in raw_strategies.items():
            strategies[_metric(name)] = SizingStrategy.from_dict(entry)
        lo, hi = _pair((d.get('min', 3.0), d.get('max', 20.0)), 'radius.min/max')
        return cls(
            min=lo,
            max=hi,
            degree_range=_pair(d.get('degree_range', (3.0, 12.0)), 'radius.degree_range'),
            strategies=strategies,
        )


# ═══════════════════════════════════════════════
# 视图
# ═══════════════════════════════════════════════
@dataclass
class ViewConfig:
    """画布尺寸、缩放范围、提示框时长"""
    width: int = 960
    height: int = 600
    margin: int = 10
    zoom_extent: tuple[float, float] = (0.5, 5.0)
    tooltip_seconds: float = 3.0
    node_clamp: float = 10.0                # 绘制时节点离画布边缘的最小距离

    @classmethod
    def from_dict(cls, d: dict) -> 'ViewConfig':
        _check_keys(cls, d, 'view')
        values = {}
        for key, value in d.items():
            if key == 'zoom_extent':
                values[key] = _pair(value, 'view.zoom_extent')
            else:
                values[key] = _number(value, f"view.{key}",
                                      integer=key in ('width', 'height', 'margin'))
        for key in ('width', 'height'):
            if values.get(key, 1) <= 0:
                raise ConfigError(f"view.{key} 必须为正数: {values[key]}")
        if values.get('zoom_extent', (1, 1))[0] <= 0:
            raise ConfigError(f"view.zoom_extent 下界必须为正数: {values['zoom_extent']}")
        return cls(**values)

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2, self.height / 2


# ═══════════════════════════════════════════════
# 总配置
# ═══════════════════════════════════════════════
@dataclass
class VizConfig:
    """一个可视化会话的完整配置"""
    top_n: int = 10
    palette: tuple[str, ...] = CATEGORY10
    neutral_color: str = NEUTRAL_COLOR
    self_loops: SelfLoopPolicy = SelfLoopPolicy.TWICE
    default_metric: SizingMetric = SizingMetric.DEGREE
    seed: int | None = None
    title: str = 'Publication Network'

    forces: ForceDefaults = field(default_factory=ForceDefaults)
    radius: RadiusConfig = field(default_factory=RadiusConfig)
    view: ViewConfig = field(default_factory=ViewConfig)

    def __post_init__(self):
        if self.top_n < 0:
            raise ConfigError(f"top_n 不能为负: {self.top_n}")
        bad = [c for c in (*self.palette, self.neutral_color) if not is_hex_color(c)]
        if bad:
            raise ConfigError(f"非法颜色值: {bad}")

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> 'VizConfig':
        if d is None:
            d = {}
        _check_keys(cls, d, 'root')
        d = dict(d)
        if 'top_n' in d:
            d['top_n'] = _number(d['top_n'], 'top_n', integer=True)
        if 'seed' in d:
            d['seed'] = _number(d['seed'], 'seed', integer=True, optional=True)
            if d['seed'] is not None and d['seed'] < 0:
                raise ConfigError(f"seed 不能为负: {d['seed']}")
        if 'title' in d:
            d['title'] = str(d['title'])
        if 'palette' in d:
            if not isinstance(d['palette'], (list, tuple)):
                raise ConfigError(f"palette 应为颜色列表: {d['palette']!r}")
            d['palette'] = tuple(d['palette'])
        if 'self_loops' in d:
            d['self_loops'] = SelfLoopPolicy.parse(d['self_loops'])
        if 'default_metric' in d:
            d['default_metric'] = _metric(d['default_metric'])
        if 'forces' in d:
            d['forces'] = ForceDefaults.from_dict(d['forces'] or {})
        if 'radius' in d:
            d['radius'] = RadiusConfig.from_dict(d['radius'] or {})
        if 'view' in d:
            d['view'] = ViewConfig.from_dict(d['view'] or {})
        return cls(**d)


def load_config(path: str | Path | None = None) -> VizConfig:
    """从YAML文件加载配置，path 为空时返回默认配置"""
    if path is None:
        return VizConfig()
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"无法读取配置文件 {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"配置文件不是合法 YAML {path}: {e}") from e
    return VizConfig.from_dict(raw)
