"""
色板常量

国家着色使用 d3 schemeCategory10，Top-N 以外的国家统一使用中性灰。
"""

from __future__ import annotations

# ═══════════════════════════════════════════════
# 国家分类色板 (d3.schemeCategory10)
# ═══════════════════════════════════════════════
CATEGORY10 = (
    '#1f77b4',
    '#ff7f0e',
    '#2ca02c',
    '#d62728',
    '#9467bd',
    '#8c564b',
    '#e377c2',
    '#7f7f7f',
    '#bcbd22',
    '#17becf',
)

# 非 Top-N 国家
NEUTRAL_COLOR = '#A9A9A9'

# ═══════════════════════════════════════════════
# 页面 / 静态图用色
# ═══════════════════════════════════════════════
UI_COLORS = {
    'LINK':    '#000000',
    'TOOLTIP': '#808080',
    'TEXT':    '#2C3E50',
    'BG':      '#FAFAFA',
    'PANEL':   '#FFFFFF',
}


def is_hex_color(value: str) -> bool:
    """#RRGGBB 格式检查"""
    if not isinstance(value, str) or len(value) != 7 or not value.startswith('#'):
        return False
    try:
        int(value[1:], 16)
    except ValueError:
        return False
    return True
