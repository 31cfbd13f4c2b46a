"""Interactive seating map rendered with networkx and pyvis."""
from __future__ import annotations

import math
from itertools import combinations
from typing import Dict, List, Tuple

import networkx as nx
from pyvis.network import Network

from .constraints import ConstraintIndex
from .fitness import pair_value
from .models import Table

# ---------------------------
# Public API
# ---------------------------


def seating_mind_map(
    assignments: Dict[str, str],
    index: ConstraintIndex,
    show_inter_table_edges: bool = False,
    canvas_size: Tuple[int, int] = (1600, 1000),
) -> str:
    """
    Build an interactive seating visualization.

    Parameters:
      assignments: guest id to table id.
      index: constraint index of the optimized input.
      show_inter_table_edges: include relationship edges between different tables if True.
      canvas_size: width, height in pixels for layout scaling.

    Returns:
      HTML string with embedded network.

    Tables keep their venue position when the layout has one, otherwise
    they are placed on a grid. Seats follow the table shape.
    """
    table_to_ids: Dict[str, List[str]] = {}
    for gid, tid in assignments.items():
        if gid in index.guest_by_id and tid in index.table_by_id:
            table_to_ids.setdefault(tid, []).append(gid)
    for tid in table_to_ids:
        table_to_ids[tid].sort(key=index.name)

    width, height = canvas_size
    tables = [index.table_by_id[t] for t in sorted(table_to_ids, key=lambda t: index.table_by_id[t].name)]
    centers = _compute_table_centers(tables, width, height)
    node_positions = _compute_seat_positions(table_to_ids, centers, index.table_by_id)

    G = nx.Graph()

    palette = [
        "#FFB347", "#77DD77", "#AEC6CF", "#C23B22", "#F49AC2", "#B39EB5",
        "#03C03C", "#779ECB", "#966FD6", "#FFD700", "#FF6961", "#CB99C9",
        "#CFCFC4", "#FDFD96", "#84B6F4", "#FDCAE1",
    ]
    table_color = {t.id: palette[i % len(palette)] for i, t in enumerate(tables)}

    for table in tables:
        cx, cy = centers[table.id]
        members = table_to_ids[table.id]
        G.add_node(
            f"table:{table.id}",
            label=f"{table.name} ({len(members)}/{table.capacity})",
            title=_table_tooltip(table, len(members)),
            color=table_color[table.id],
            x=cx,
            y=cy,
            physics=False,
            shape="box",
        )
        for gid in members:
            guest = index.guest_by_id[gid]
            x, y = node_positions[(table.id, gid)]
            related, conflicts = _table_counts(gid, members, index)
            G.add_node(
                gid,
                label=guest.name,
                title=_node_tooltip(guest.name, table.name, guest.side, guest.dietary_restriction,
                                    related, conflicts),
                color=table_color[table.id],
                x=x,
                y=y,
                physics=False,
                # Accessibility needs get a thicker border
                borderWidth=4 if gid in index.accessibility_guests else 2,
                shape="dot",
                size=18,
            )

    for a, b in combinations(sorted(assignments), 2):
        if a not in G or b not in G:
            continue
        same_table = assignments[a] == assignments[b]
        if not same_table and not show_inter_table_edges:
            continue
        value = pair_value(index, a, b)
        if value == 0:
            continue
        if value < 0:
            relation = "cannot sit together"
        else:
            relation = index.graph.edges[a, b].get("relation", "") if index.graph.has_edge(a, b) else ""
        G.add_edge(
            a,
            b,
            color=_edge_color(value),
            width=_edge_width(value),
            label=relation,
            smooth=not same_table,
        )

    net = Network(height="700px", width="100%", bgcolor="#111111", font_color="#EEEEEE")
    net.toggle_physics(False)  # positions are fixed
    net.from_nx(G)
    return _inject_legend_html(net.generate_html())

# ---------------------------
# Internals
# ---------------------------


def _table_counts(gid: str, members: List[str], index: ConstraintIndex) -> Tuple[int, int]:
    related = index.related(gid)
    clash = index.conflicts.get(gid, set())
    others = [m for m in members if m != gid]
    return sum(1 for m in others if m in related), sum(1 for m in others if m in clash)


def _compute_table_centers(tables: List[Table], width: int, height: int) -> Dict[str, Tuple[int, int]]:
    """
    Use venue positions when any table has one, scaled into the canvas.
    Otherwise place table centers on a grid inside the canvas area.
    """
    if not tables:
        return {}
    margin = 120
    if any(t.x or t.y for t in tables):
        min_x = min(t.x for t in tables)
        min_y = min(t.y for t in tables)
        span_x = max(1.0, max(t.x for t in tables) - min_x)
        span_y = max(1.0, max(t.y for t in tables) - min_y)
        usable_w = max(1, width - 2 * margin)
        usable_h = max(1, height - 2 * margin)
        return {
            t.id: (int(margin + (t.x - min_x) / span_x * usable_w),
                   int(margin + (t.y - min_y) / span_y * usable_h))
            for t in tables
        }

    n = len(tables)
    cols = max(1, int(math.ceil(math.sqrt(n))))
    rows = int(math.ceil(n / cols))
    step_x = max(1, width - 2 * margin) // cols
    step_y = max(1, height - 2 * margin) // rows
    centers: Dict[str, Tuple[int, int]] = {}
    for idx, table in enumerate(tables):
        r, c = divmod(idx, cols)
        centers[table.id] = (margin + c * step_x + step_x // 2, margin + r * step_y + step_y // 2)
    return centers


def _compute_seat_positions(
    table_to_ids: Dict[str, List[str]],
    centers: Dict[str, Tuple[int, int]],
    table_by_id: Dict[str, Table],
) -> Dict[Tuple[str, str], Tuple[int, int]]:
    """
    Compute node coordinates per table from its shape.

    round: seats on a circle.
    square: seats on a square perimeter, spill to inner ring if needed.
    rectangle: seats on a rectangle perimeter, wider than tall.
    """
    positions: Dict[Tuple[str, str], Tuple[int, int]] = {}
    for tid, members in table_to_ids.items():
        cx, cy = centers[tid]
        n = max(1, len(members))
        shape = table_by_id[tid].shape

        if shape == "square":
            side = max(2, int(math.ceil(n / 4)))
            coords = _perimeter_grid_layout(cx, cy, n, side, side)
        elif shape == "rectangle":
            cols = max(3, int(math.ceil(math.sqrt(n * 2))))
            rows = max(2, int(math.ceil(n / cols)))
            coords = _perimeter_grid_layout(cx, cy, n, rows, cols)
        else:
            coords = _circle_layout(cx, cy, 60 + 6 * n, n)

        for gid, (x, y) in zip(members, coords):
            positions[(tid, gid)] = (x, y)
    return positions


def _circle_layout(cx: int, cy: int, r: int, n: int) -> List[Tuple[int, int]]:
    pts = []
    for i in range(n):
        theta = 2 * math.pi * i / n
        pts.append((int(cx + r * math.cos(theta)), int(cy + r * math.sin(theta))))
    return pts


def _perimeter_grid_layout(cx: int, cy: int, n: int, rows: int, cols: int) -> List[Tuple[int, int]]:
    """
    Place seats around the perimeter of a rows x cols rectangle.
    If more seats than perimeter, start an inner rectangle.
    """
    cell = 28

    def rect_points(w: int, h: int) -> List[Tuple[int, int]]:
        left, right = cx - w // 2, cx + w // 2
        top, bottom = cy - h // 2, cy + h // 2
        pts = [(left + c * cell + cell // 2, top) for c in range(cols)]
        pts += [(right, top + r * cell) for r in range(1, rows)]
        pts += [(left + c * cell + cell // 2, bottom) for c in range(cols - 1, -1, -1)]
        pts += [(left, top + r * cell) for r in range(rows - 1, 0, -1)]
        return pts

    coords: List[Tuple[int, int]] = []
    w, h = cols * cell, rows * cell
    while len(coords) < n:
        for p in rect_points(w, h):
            if len(coords) >= n:
                break
            coords.append(p)
        w -= 2 * cell
        h -= 2 * cell
        if w <= cell or h <= cell:
            break

    while len(coords) < n:
        coords.append((cx, cy))
    return coords


def _edge_color(value: int) -> str:
    if value > 0:
        return "#3CB371"  # related: green
    return "#FF6B6B"      # conflict: red


def _edge_width(value: int) -> int:
    return 1 + min(7, abs(int(value)))


def _table_tooltip(table: Table, seated: int) -> str:
    tags = ", ".join(table.tags) or "none"
    return (
        f"<b>{table.name}</b><br>"
        f"Shape: {table.shape}<br>"
        f"Seated: {seated} of {table.capacity}<br>"
        f"Features: {tags}"
    )


def _node_tooltip(name: str, table: str, side: str, diet: str, related: int, conflicts: int) -> str:
    return (
        f"<b>{name}</b><br>"
        f"Table: {table}<br>"
        f"Side: {side or 'n/a'}<br>"
        f"Diet: {diet or 'n/a'}<br>"
        f"Related at table: {related}<br>"
        f"Conflicts at table: {conflicts}"
    )


def _inject_legend_html(page: str) -> str:
    css = """
    <style>
    .legend-box{
      position:absolute;right:12px;bottom:12px;
      background:#222;color:#eee;border:1px solid #444;border-radius:8px;
      padding:8px 12px;font-family:system-ui, -apple-system, Segoe UI, Roboto, Arial;font-size:12px;
      z-index:10;
    }
    .legend-swatch{display:inline-block;width:12px;height:12px;margin-right:6px;vertical-align:middle;border:1px solid #444;}
    </style>
    """
    html = f"""
    {css}
    <div class="legend-box">
      <div><span class="legend-swatch" style="background:#3CB371"></span>related guests</div>
      <div><span class="legend-swatch" style="background:#FF6B6B"></span>cannot sit together</div>
      <div style="margin-top:6px;">node color: table</div>
      <div>thick border: accessibility needs</div>
    </div>
    """
    if "</body>" in page:
        return page.replace("</body>", html + "</body>", 1)
    return page + html
