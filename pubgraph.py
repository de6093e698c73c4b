#!/usr/bin/env python3
"""
pubgraph — 合作网络力导向可视化 v1.0

统一命令行入口，支持以下命令：

    pubgraph render      导出交互式 HTML (+ JSON)
    pubgraph stats       打印 Top 国家与高度数作者
    pubgraph simulate    无界面运行模拟，可选重配置并输出静态快照
    pubgraph export      导出 GraphML
    pubgraph version     显示版本

使用示例:
    python pubgraph.py render data/publication_network.json -o figs/network.html
    python pubgraph.py stats data/publication_network.json --top 5
    python pubgraph.py simulate data/publication_network.json --png figs/layout.png \\
        --link 0.5 --collide 1 --charge -30 --metric citations
"""

import argparse
import logging
import sys
from pathlib import Path


def _load_session(args):
    from pubnet.config import load_config
    from pubnet.progress import progress_step
    from pubnet.session import GraphSession

    config = load_config(args.config)
    with progress_step('读取并预处理数据集'):
        session = GraphSession.from_file(args.dataset, config, strict=not args.lenient)
    return session


def _non_negative_int(text):
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"不是整数: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"不能为负: {value}")
    return value


def cmd_render(args):
    """导出交互式页面"""
    from pubnet.progress import progress_step
    from pubnet.render import export_interactive

    session = _load_session(args)
    output = Path(args.output or Path(args.dataset).with_suffix('.html').name)
    output.parent.mkdir(parents=True, exist_ok=True)
    with progress_step('导出交互式页面'):
        export_interactive(session, output, title=args.title)
    print(f"\n打开页面: open '{output}'")
    return 0


def cmd_stats(args):
    """打印统计"""
    import pandas as pd

    session = _load_session(args)
    df = session.graph.dataset.to_frame()
    top = args.top

    print(f"\n节点 {len(session.nodes)}  边 {len(session.edges)}  最大度数 {session.graph.max_degree}")

    counts = df['country'].value_counts(sort=False)
    legend = pd.DataFrame(session.buckets.legend(), columns=['country', 'color'])
    legend['authors'] = legend['country'].map(counts).fillna(0).astype(int)
    print(f"\nTop-{len(legend)} 国家:")
    print(legend.to_string(index=False))

    cols = ['id', 'Name', 'country', 'degree', 'num_publications', 'num_citations']
    print(f"\n度数最高的 {top} 位作者:")
    print(df.sort_values('degree', ascending=False, kind='stable')[cols].head(top)
          .to_string(index=False))
    return 0


def cmd_simulate(args):
    """无界面运行模拟"""
    from dataclasses import replace
    from itertools import islice

    from pubnet.controller import ForceParams, InteractionController
    from pubnet.progress import CoolingBar, progress_step

    session = _load_session(args)
    controller = InteractionController(session)

    overrides = {
        'linkStrength': args.link,
        'collideForce': args.collide,
        'chargeForce': args.charge,
        'nodeSize': args.metric,
    }
    if any(v is not None for v in overrides.values()):
        form = controller.params.to_form()
        form.update({k: v for k, v in overrides.items() if v is not None})
        # 未指定 --link 且配置为逐边默认强度时保持 None
        per_link = not form['linkStrength']
        if per_link:
            form['linkStrength'] = '0'
        params = ForceParams.from_form(form)
        if per_link:
            params = replace(params, link_strength=None)
        controller.submit(params)
        print(f"  力参数: link={params.link_strength} collide={params.collide_strength} "
              f"charge={params.charge_strength} size={params.metric.value}")

    sim = session.simulation
    bar = CoolingBar(sim.alpha_min)
    snapshots = sim.snapshots()
    if args.ticks is not None:
        snapshots = islice(snapshots, args.ticks)
    for snap in snapshots:
        bar.update(snap)
    bar.close()

    if args.png:
        from pubnet.render import plot_snapshot
        Path(args.png).parent.mkdir(parents=True, exist_ok=True)
        with progress_step('绘制位置快照'):
            plot_snapshot(session, args.png, pdf=args.pdf)
    return 0


def cmd_export(args):
    """导出 GraphML"""
    import networkx as nx
    from pubnet.progress import progress_step

    session = _load_session(args)
    output = Path(args.graphml)
    output.parent.mkdir(parents=True, exist_ok=True)
    with progress_step('导出 GraphML'):
        nx.write_graphml(session.graph.dataset.to_networkx(), output)
    print(f"已保存: {output}")
    return 0


def cmd_version(args):
    """显示版本"""
    from pubnet import __version__
    from pubnet.progress import print_banner
    print_banner(f"pubgraph v{__version__}  合作网络力导向可视化")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='pubgraph — 合作网络力导向可视化',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  python pubgraph.py render data.json -o figs/net.html   导出页面
  python pubgraph.py stats data.json                     统计
  python pubgraph.py simulate data.json --png out.png    无界面模拟
  python pubgraph.py export data.json --graphml g.xml    导出 GraphML
        """
    )
    parser.add_argument('-v', '--verbose', action='count', default=0, help='-v INFO, -vv DEBUG')
    parser.add_argument('--log-file', help='日志文件')

    subparsers = parser.add_subparsers(dest='command', help='可用命令')

    def add_common(p):
        p.add_argument('dataset', help='数据集 JSON 路径')
        p.add_argument('-c', '--config', help='YAML 配置文件路径')
        p.add_argument('--lenient', action='store_true', help='不检查边端点是否存在')

    # render
    p_render = subparsers.add_parser('render', help='导出交互式 HTML')
    add_common(p_render)
    p_render.add_argument('-o', '--output', help='输出 HTML 路径')
    p_render.add_argument('--title', help='页面标题')

    # stats
    p_stats = subparsers.add_parser('stats', help='打印统计')
    add_common(p_stats)
    p_stats.add_argument('--top', type=int, default=10, help='显示前 N 位作者')

    # simulate
    p_sim = subparsers.add_parser('simulate', help='无界面运行模拟')
    add_common(p_sim)
    p_sim.add_argument('--ticks', type=_non_negative_int, help='最多步数 (默认到收敛)')
    p_sim.add_argument('--link', help='link 强度')
    p_sim.add_argument('--collide', help='collide 强度')
    p_sim.add_argument('--charge', help='charge 强度')
    p_sim.add_argument('--metric', help='节点大小依据: publications / degree / citations')
    p_sim.add_argument('--png', help='输出位置快照 PNG')
    p_sim.add_argument('--pdf', action='store_true', help='同时输出 PDF')

    # export
    p_export = subparsers.add_parser('export', help='导出 GraphML')
    add_common(p_export)
    p_export.add_argument('--graphml', required=True, help='输出 GraphML 路径')

    # version
    subparsers.add_parser('version', help='显示版本信息')

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    from pubnet.errors import PubnetError
    from pubnet.logging_config import setup_logging

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    setup_logging(level, args.log_file)

    commands = {
        'render': cmd_render,
        'stats': cmd_stats,
        'simulate': cmd_simulate,
        'export': cmd_export,
        'version': cmd_version,
    }

    try:
        return commands[args.command](args)
    except PubnetError as e:
        print(f"错误: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main() or 0)
