"""
交互式 HTML 导出 — D3.js v7 力导向图

页面功能:
- 节点按国家分桶着色，图例列出 Top-N 国家
- 点击节点显示作者信息，3 秒后自动消失
- 滚轮缩放 / 拖拽平移 (缩放范围同配置)
- 表单调整 link / collide / charge 强度和节点大小依据，点击应用后重启模拟

半径在 Python 端按三种节点大小选项预先算好并嵌入页面，浏览器只做选择。
"""

from __future__ import annotations

import json
import logging
from html import escape
from pathlib import Path
from typing import TYPE_CHECKING

from ..colors import UI_COLORS
from ..scales import SizingMetric

if TYPE_CHECKING:
    from ..session import GraphSession

logger = logging.getLogger(__name__)


def session_to_dict(session: 'GraphSession') -> dict:
    """页面 / JSON 导出用数据"""
    nodes = []
    for n in session.nodes:
        d = n.to_dict()
        d['radii'] = session.mapper.all_radii(n)
        if n.x is not None:
            d['x'], d['y'] = round(n.x, 3), round(n.y, 3)
        nodes.append(d)

    cfg = session.config
    fc = cfg.forces
    return {
        'nodes': nodes,
        'links': [e.to_dict() for e in session.graph.dataset.resolved_edges()],
        'legend': [{'country': c, 'color': col} for c, col in session.buckets.legend()],
        'metric': session.metric.value,
        'forces': {
            'link': fc.link_strength,
            'charge': fc.charge_strength,
            'collide': fc.collide_strength,
            'collide_iterations': fc.collide_iterations,
            'link_distance': fc.link_distance,
            'velocity_decay': fc.velocity_decay,
            'alpha_min': fc.alpha_min,
        },
        'view': {
            'margin': cfg.view.margin,
            'zoom_extent': list(cfg.view.zoom_extent),
            'tooltip_ms': int(cfg.view.tooltip_seconds * 1000),
            'node_clamp': cfg.view.node_clamp,
        },
    }


def export_json(session: 'GraphSession', path: str | Path) -> Path:
    """导出 JSON 文件"""
    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(session_to_dict(session), f, ensure_ascii=False, indent=2)
    logger.info("图数据已导出: %s", path)
    return path


def _metric_radios(selected: SizingMetric) -> str:
    rows = []
    for m in SizingMetric:
        checked = ' checked' if m is selected else ''
        rows.append(f'<label><input type="radio" name="nodeSize" value="{m.value}"{checked}> '
                    f'{m.value.capitalize()}</label>')
    return '\n                '.join(rows)


HTML_TEMPLATE = '''<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{title}</title>
    <script src="https://d3js.org/d3.v7.min.js"></script>
    <style>
        body {{ margin: 0; font-family: -apple-system, sans-serif; background: {bg}; overflow: hidden; }}
        .container {{ position: relative; }}
        h1 {{ position: absolute; top: 10px; left: 50%; transform: translateX(-50%); margin: 0;
              font-size: 18px; color: {text}; z-index: 100; pointer-events: none; }}
        circle {{ cursor: pointer; stroke: #fff; stroke-width: 0.5; }}
        line {{ stroke-opacity: 0.4; }}
        .legend text {{ font-size: 11px; fill: {text}; }}
        .tooltip {{ position: absolute; pointer-events: none; font-size: 12px; z-index: 1000; }}

        /* ─── 控制面板 ─── */
        #controls {{ position: absolute; top: 15px; right: 20px; width: 220px; z-index: 100;
                     background: {panel}; padding: 12px 15px; border-radius: 10px; font-size: 12px;
                     color: {text}; box-shadow: 0 4px 20px rgba(0,0,0,0.1); border: 1px solid #e0e0e0; }}
        #controls label {{ display: block; margin: 6px 0 2px; }}
        #controls input[type="number"] {{ width: 100%; box-sizing: border-box; padding: 4px; }}
        #controls .radios label {{ display: inline-block; margin-right: 6px; }}
        #applyChanges {{ margin-top: 10px; width: 100%; padding: 6px; cursor: pointer; }}
    </style>
</head>
<body>
<div class="container">
    <h1>{title}</h1>

    <div id="controls">
        <label for="linkStrength">Link strength</label>
        <input type="number" id="linkStrength" step="0.1" value="{link_value}">
        <label for="collideForce">Collide strength</label>
        <input type="number" id="collideForce" step="0.1" min="0" max="1" value="{collide_value}">
        <label for="chargeForce">Charge strength</label>
        <input type="number" id="chargeForce" step="1" value="{charge_value}">
        <div class="radios">
            <label>Node size</label>
            {metric_radios}
        </div>
        <button id="applyChanges" type="button">Apply</button>
    </div>
</div>

<script>
// ═══════════════════════════════════════════════
// 数据与配置
// ═══════════════════════════════════════════════
const data = {data_json};
const cfg = data.view;
const forces = data.forces;
const margin = {{ top: cfg.margin, right: cfg.margin, bottom: cfg.margin, left: cfg.margin }};
const width = window.innerWidth - margin.left - margin.right;
const height = window.innerHeight - margin.top - margin.bottom;
const clampPad = cfg.node_clamp;

let nodeSize = data.metric;
data.nodes.forEach(d => {{ d.radius = d.radii[nodeSize]; delete d.x; delete d.y; }});

// ═══════════════════════════════════════════════
// 画布
// ═══════════════════════════════════════════════
const svg = d3.select(".container").append("svg")
    .attr("width", width + margin.left + margin.right)
    .attr("height", height + margin.top + margin.bottom);
const container = svg.append("g")
    .attr("transform", `translate(${{margin.left}},${{margin.top}})`);
const scene = container.append("g");

// 力导向模拟
const linkForce = d3.forceLink(data.links).id(d => d.id).distance(forces.link_distance);
if (forces.link !== null) linkForce.strength(forces.link);

const simulation = d3.forceSimulation(data.nodes)
    .alphaMin(forces.alpha_min)
    .velocityDecay(forces.velocity_decay)
    .force("link", linkForce)
    .force("charge", d3.forceManyBody().strength(forces.charge))
    .force("collide", d3.forceCollide(d => d.radius).strength(forces.collide)
        .iterations(forces.collide_iterations))
    .force("center", d3.forceCenter(width / 2, height / 2));

const links = scene.append("g").selectAll("line")
    .data(data.links)
    .join("line")
    .attr("stroke", "{link_color}");

const node = scene.append("g").selectAll("circle")
    .data(data.nodes)
    .join("circle")
    .attr("r", d => d.radius)
    .attr("fill", d => d.color)
    .on("click", handleNodeClick);

const clampX = x => Math.max(clampPad, Math.min(width - clampPad, x));
const clampY = y => Math.max(clampPad, Math.min(height - clampPad, y));

simulation.on("tick", () => {{
    links
        .attr("x1", d => clampX(d.source.x))
        .attr("y1", d => clampY(d.source.y))
        .attr("x2", d => clampX(d.target.x))
        .attr("y2", d => clampY(d.target.y));
    node
        .attr("cx", d => clampX(d.x))
        .attr("cy", d => clampY(d.y));
}});

// 缩放平移
const zoom = d3.zoom()
    .scaleExtent(cfg.zoom_extent)
    .on("zoom", event => scene.attr("transform", event.transform));
svg.call(zoom);

// ═══════════════════════════════════════════════
// 图例
// ═══════════════════════════════════════════════
const legend = container.append("g")
    .attr("class", "legend")
    .attr("transform", "translate(20,20)");

legend.selectAll("rect")
    .data(data.legend)
    .join("rect")
    .attr("x", 0)
    .attr("y", (d, i) => i * 20)
    .attr("width", 15)
    .attr("height", 10)
    .style("fill", d => d.color);

legend.selectAll("text")
    .data(data.legend)
    .join("text")
    .attr("x", 20)
    .attr("y", (d, i) => i * 20 + 10)
    .text(d => d.country);

// ═══════════════════════════════════════════════
// 提示框
// ═══════════════════════════════════════════════
function escapeHtml(s) {{
    return String(s).replace(/[&<>"']/g, c => ({{'&': '&amp;', '<': '&lt;', '>': '&gt;', '"': '&quot;', "'": '&#39;'}})[c]);
}}

function handleNodeClick(event, d) {{
    d3.selectAll(".tooltip").remove();

    const tooltip = d3.select(".container").append("div")
        .attr("class", "tooltip")
        .style("opacity", 0)
        .style("padding", "10px")
        .style("margin", "10px")
        .style("background-color", "{tooltip_bg}")
        .style("border-radius", "5px")
        .style("color", "white")
        .html(`Author: ${{escapeHtml(d.Name)}}<br>Country: ${{escapeHtml(d.country)}}` +
              `<br>Publications: ${{d.num_publications}}<br>Citations: ${{d.num_citations}}`)
        .style("left", event.clientX + "px")
        .style("top", event.clientY + "px");

    tooltip.transition().duration(200).style("opacity", 0.9);

    setTimeout(() => {{
        tooltip.transition().duration(200).style("opacity", 0).remove();
    }}, cfg.tooltip_ms);
}}

// ═══════════════════════════════════════════════
// 力参数重配置
// ═══════════════════════════════════════════════
function updateForces() {{
    const linkStrength = parseFloat(document.getElementById("linkStrength").value);
    const collideForce = parseFloat(document.getElementById("collideForce").value);
    const chargeForce = parseFloat(document.getElementById("chargeForce").value);
    const checked = document.querySelector('input[name="nodeSize"]:checked');
    if ([linkStrength, collideForce, chargeForce].some(v => !Number.isFinite(v)) || !checked) {{
        console.error("invalid force parameters", {{ linkStrength, collideForce, chargeForce }});
        return;
    }}
    nodeSize = checked.value;

    data.nodes.forEach(d => d.radius = d.radii[nodeSize]);
    node.attr("r", d => d.radius).attr("fill", d => d.color);

    simulation.force("link").strength(linkStrength);
    simulation.force("collide").strength(collideForce).radius(d => d.radius);
    simulation.force("charge").strength(chargeForce);

    simulation.alpha(1).restart();
}}

document.getElementById("applyChanges").addEventListener("click", updateForces);
</script>
</body>
</html>'''


def export_interactive(session: 'GraphSession', path: str | Path,
                       title: str | None = None) -> Path:
    """
    导出交互式 HTML 可视化，同时写出同名 JSON。

    Args:
        session: 会话
        path: 输出 HTML 路径
        title: 页面标题 (默认取配置)
    """
    path = Path(path)
    data = session_to_dict(session)
    title = title or session.config.title

    export_json(session, path.with_suffix('.json'))

    fc = session.config.forces
    page = HTML_TEMPLATE.format(
        title=escape(title),
        bg=UI_COLORS['BG'],
        text=UI_COLORS['TEXT'],
        panel=UI_COLORS['PANEL'],
        link_color=UI_COLORS['LINK'],
        tooltip_bg=UI_COLORS['TOOLTIP'],
        link_value=1 if fc.link_strength is None else fc.link_strength,
        collide_value=fc.collide_strength,
        charge_value=fc.charge_strength,
        metric_radios=_metric_radios(session.metric),
        data_json=json.dumps(data, ensure_ascii=False).replace('</', '<\\/'),
    )

    path.write_text(page, encoding='utf-8')
    logger.info("交互式网络图已导出: %s", path)
    print(f"[Graph] 交互式可视化 → {path}")
    return path
