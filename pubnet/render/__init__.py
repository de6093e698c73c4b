"""
渲染包

    render/
    ├── __init__.py   ← 统一导出 (静态渲染延迟加载)
    ├── html.py       ← D3 交互页面 + JSON
    └── static.py     ← matplotlib 位置快照

用法:
    from pubnet.render import export_interactive, plot_snapshot

注意: static.py 在导入时加载 matplotlib，只有用到 plot_snapshot 时才导入。
"""

from .html import export_interactive, export_json, session_to_dict

__all__ = [
    'export_interactive',
    'export_json',
    'session_to_dict',
    'plot_snapshot',
    'clamp_positions',
]

_lazy_imports = {
    'plot_snapshot': ('.static', 'plot_snapshot'),
    'clamp_positions': ('.static', 'clamp_positions'),
}


def __getattr__(name):
    """延迟加载 matplotlib 相关函数"""
    if name in _lazy_imports:
        from importlib import import_module
        module_path, attr_name = _lazy_imports[name]
        module = import_module(module_path, __package__)
        return getattr(module, attr_name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
