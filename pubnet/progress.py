"""
终端进度显示

- progress_step: 单个步骤计时 (读取 / 预处理 / 导出)
- CoolingBar: 模拟冷却进度条 (alpha 从 1 衰减到 alpha_min)
- print_banner: 横幅

使用示例:
    >>> with progress_step('读取数据集'):
    ...     ds = load_dataset(path)
    >>> bar = CoolingBar(sim.alpha_min)
    >>> for snap in sim.snapshots():
    ...     bar.update(snap)
    >>> bar.close()
"""

from __future__ import annotations

import math
import sys
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from .simulation import Snapshot

# ANSI 颜色
COLORS = {
    'reset': '\033[0m',
    'bold': '\033[1m',
    'dim': '\033[2m',
    'green': '\033[92m',
    'yellow': '\033[93m',
    'red': '\033[91m',
    'cyan': '\033[96m',
}


@contextmanager
def progress_step(name: str) -> Iterator[None]:
    """
    步骤计时器，失败时打印错误后继续抛出。

    使用示例:
        with progress_step('导出页面'):
            export_interactive(session, path)
    """
    c = COLORS
    print(f"  {c['yellow']}◐{c['reset']} {name}...", end='', flush=True)
    start = time.time()
    try:
        yield
    except Exception as e:
        elapsed = time.time() - start
        print(f"\r  {c['red']}✗{c['reset']} {name:<40} {c['dim']}({elapsed:.1f}s){c['reset']}")
        print(f"    {c['red']}错误: {e}{c['reset']}")
        raise
    elapsed = time.time() - start
    print(f"\r  {c['green']}●{c['reset']} {name:<40} {c['dim']}({elapsed:.1f}s){c['reset']}")


class CoolingBar:
    """
    模拟冷却进度条。

    进度按 log(alpha) 在 [log(1), log(alpha_min)] 之间的位置计算，
    与 alpha 的指数衰减对应为线性推进。
    """

    def __init__(self, alpha_min: float = 0.001, width: int = 40, every: int = 10,
                 stream=None):
        self.alpha_min = alpha_min
        self.width = width
        self.every = every
        self.stream = stream or sys.stdout
        self.last: 'Snapshot | None' = None

    def fraction(self, alpha: float) -> float:
        if alpha >= 1:
            return 0.0
        if alpha <= self.alpha_min:
            return 1.0
        return math.log(alpha) / math.log(self.alpha_min)

    def update(self, snap: 'Snapshot') -> None:
        self.last = snap
        if snap.tick % self.every:
            return
        self._draw(snap)

    def _draw(self, snap: 'Snapshot') -> None:
        c = COLORS
        filled = int(self.width * self.fraction(snap.alpha))
        bar = '█' * filled + '░' * (self.width - filled)
        self.stream.write(f"\r  {c['cyan']}[{bar}]{c['reset']} "
                          f"tick {snap.tick:>4d}  alpha {snap.alpha:.4f}")
        self.stream.flush()

    def close(self) -> None:
        if self.last is not None:
            self._draw(self.last)
        self.stream.write('\n')
        self.stream.flush()


def print_banner(text: str, style: str = 'box'):
    """打印横幅"""
    c = COLORS
    if style == 'box':
        print(f"\n{c['cyan']}╔{'═' * (len(text) + 2)}╗{c['reset']}")
        print(f"{c['cyan']}║{c['reset']} {c['bold']}{text}{c['reset']} {c['cyan']}║{c['reset']}")
        print(f"{c['cyan']}╚{'═' * (len(text) + 2)}╝{c['reset']}\n")
    else:
        print(f"\n{c['bold']}{c['cyan']}═══ {text} ═══{c['reset']}\n")
