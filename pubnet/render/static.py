"""静态快照渲染 (matplotlib)

把某一步的位置快照画成 PNG / PDF，用于无浏览器环境下检查布局结果。
坐标系与页面相同: 原点在左上角，y 轴向下，节点绘制位置截断在画布边缘以内。
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Hashable

# 无头环境优先使用 Agg
import matplotlib
matplotlib.use('Agg')

import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection, PatchCollection
from matplotlib.patches import Circle, Patch

from ..colors import NEUTRAL_COLOR, UI_COLORS
from ..scales import clamp

if TYPE_CHECKING:
    from ..config import ViewConfig
    from ..controller import ZoomTransform
    from ..session import GraphSession
    from ..simulation import Snapshot


def clamp_positions(positions: dict[Hashable, tuple[float, float]],
                    view: 'ViewConfig') -> dict[Hashable, tuple[float, float]]:
    """绘制位置截断到 [pad, 宽-pad] × [pad, 高-pad]"""
    pad = view.node_clamp
    return {
        k: (clamp(x, pad, view.width - pad), clamp(y, pad, view.height - pad))
        for k, (x, y) in positions.items()
    }


def plot_snapshot(session: 'GraphSession', output: str | Path,
                  snapshot: 'Snapshot | None' = None,
                  transform: 'ZoomTransform | None' = None,
                  dpi: int = 150, pdf: bool = False) -> Path:
    """
    绘制位置快照。

    Args:
        session: 会话
        output: 输出路径 (扩展名会被替换为 .png)
        snapshot: 位置快照，默认取模拟当前位置
        transform: 缩放平移变换，默认不变换
        dpi: PNG 分辨率
        pdf: 是否同时输出 PDF

    Returns:
        PNG 文件路径
    """
    view = session.config.view
    snapshot = snapshot or session.simulation.snapshot()
    positions = clamp_positions(snapshot.positions, view)
    k = 1.0
    if transform is not None:
        positions = {n: transform.apply(p) for n, p in positions.items()}
        k = transform.k

    fig, ax = plt.subplots(figsize=(view.width / 100, view.height / 100))
    fig.patch.set_facecolor(UI_COLORS['BG'])

    segments = [(positions[e.source], positions[e.target]) for e in session.edges
                if e.source in positions and e.target in positions]
    if segments:
        ax.add_collection(LineCollection(segments, colors=UI_COLORS['LINK'],
                                         linewidths=0.5, alpha=0.4, zorder=1))

    circles = []
    colors = []
    for node in session.nodes:
        if node.id not in positions:
            continue
        r = (node.radius or 0.0) * k
        circles.append(Circle(positions[node.id], r))
        colors.append(node.color or NEUTRAL_COLOR)
    if circles:
        ax.add_collection(PatchCollection(circles, facecolors=colors, edgecolors='white',
                                          linewidths=0.5, zorder=2))

    handles = [Patch(facecolor=color, label=country)
               for country, color in session.buckets.legend()]
    if handles:
        ax.legend(handles=handles, loc='upper left', fontsize=8, frameon=False)

    ax.set_xlim(0, view.width)
    ax.set_ylim(view.height, 0)
    ax.set_aspect('equal')
    ax.axis('off')
    ax.set_title(f"{session.config.title}  (tick {snapshot.tick}, alpha {snapshot.alpha:.3f})",
                 fontsize=10, loc='left', color=UI_COLORS['TEXT'])

    out = Path(output).with_suffix('.png')
    fig.savefig(str(out), dpi=dpi, bbox_inches='tight', facecolor=UI_COLORS['BG'])
    if pdf:
        fig.savefig(str(out.with_suffix('.pdf')), bbox_inches='tight', facecolor=UI_COLORS['BG'])
    plt.close(fig)
    print(f"已保存: {out}")
    return out
