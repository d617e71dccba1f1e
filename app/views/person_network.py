"""Person network visualization views."""
from __future__ import annotations

import json
from typing import List

import altair as alt
import pandas as pd
import streamlit as st
import streamlit.components.v1 as components

from api.config import Settings
from api.services.db import Database
from api.services.bridges import BRIDGE_TYPES
from api.services.enrichment import EDGE_COLORS, NODE_COLORS, deduplicate_edges, group_edges_by_type
from api.services.metrics import distance_distribution
from api.services.network import (
    MultiPersonQuery,
    NetworkQuery,
    NetworkResult,
    PersonNotFoundError,
    build_multi_person_network,
    explore_person_network,
)
from api.services.relations import RELATION_TYPES
from state import get_active_person, queue_person_navigation


def generate_vis_html(result: NetworkResult, height: int = 600, merge_parallel: bool = False) -> str:
    """Generate vis.js HTML for the network visualization.

    With ``merge_parallel`` each pair of persons is drawn with a single edge,
    the most informative of its relations.
    """
    bridge_ids = {b.person_id for b in result.bridge_nodes}

    vis_nodes = []
    for node in result.nodes:
        lifespan = f"{node.birth_year or '?'} - {node.death_year or '?'}"
        vis_nodes.append({
            "id": node.id,
            "label": node.label[:20] + "..." if len(node.label) > 20 else node.label,
            "title": f"{node.label} ({node.id})<br>{lifespan}<br>Depth: {node.depth}",
            "color": node.color,
            "size": node.size,
            "borderWidth": 4 if node.id in bridge_ids else 2,
            "font": {"color": "#ffffff"},
        })

    vis_edges = []
    edges = deduplicate_edges(result.edges) if merge_parallel else result.edges
    for edge in edges:
        vis_edges.append({
            "from": edge.source,
            "to": edge.target,
            "value": edge.weight or 1,
            "color": {"color": edge.color},
            "title": f"{edge.edge_type}: {edge.edge_label or ''}",
        })

    legend = "".join(
        f'<div class="legend-item"><div class="legend-color" style="background: {color}"></div>{name.title()}</div>'
        for name, color in NODE_COLORS.items()
    )

    html = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <script type="text/javascript" src="https://unpkg.com/vis-network/standalone/umd/vis-network.min.js"></script>
        <style type="text/css">
            #graph {{
                width: 100%;
                height: {height}px;
                border: 1px solid #333;
                background-color: #1a1a2e;
            }}
            .legend {{
                position: absolute;
                top: 10px;
                right: 10px;
                background: rgba(0,0,0,0.7);
                padding: 10px;
                border-radius: 5px;
                font-family: sans-serif;
                font-size: 12px;
                color: white;
            }}
            .legend-item {{
                display: flex;
                align-items: center;
                margin: 4px 0;
            }}
            .legend-color {{
                width: 12px;
                height: 12px;
                border-radius: 50%;
                margin-right: 8px;
            }}
        </style>
    </head>
    <body>
        <div id="graph"></div>
        <div class="legend">{legend}</div>
        <script type="text/javascript">
            var nodes = new vis.DataSet({json.dumps(vis_nodes, ensure_ascii=False)});
            var edges = new vis.DataSet({json.dumps(vis_edges, ensure_ascii=False)});

            var container = document.getElementById('graph');
            var data = {{ nodes: nodes, edges: edges }};
            var options = {{
                nodes: {{
                    shape: 'dot',
                    shadow: true,
                    font: {{ size: 12 }}
                }},
                edges: {{
                    width: 1,
                    smooth: {{ type: 'continuous' }},
                    scaling: {{
                        min: 1,
                        max: 6,
                        label: {{ enabled: false }}
                    }}
                }},
                physics: {{
                    forceAtlas2Based: {{
                        gravitationalConstant: -50,
                        centralGravity: 0.01,
                        springLength: 100,
                        springConstant: 0.08
                    }},
                    maxVelocity: 50,
                    solver: 'forceAtlas2Based',
                    stabilization: {{ iterations: 150 }}
                }},
                interaction: {{
                    hover: true,
                    tooltipDelay: 100,
                    zoomView: true,
                    dragView: true
                }}
            }};

            var network = new vis.Network(container, data, options);
        </script>
    </body>
    </html>
    """
    return html


def render_metrics(result: NetworkResult) -> None:
    m = result.metrics
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Persons", m.total_persons, f"{m.discovered_persons} discovered")
    col2.metric("Relations", m.total_edges)
    col3.metric("Density", f"{m.density:.4f}")
    col4.metric("Components", m.components)

    type_df = pd.DataFrame(
        [{"edge_type": t, "count": n} for t, n in m.edge_types.items() if t != "total"]
    )
    depth_df = pd.DataFrame(
        [
            {"depth": d, "persons": n}
            for d, n in distance_distribution({node.id: node.depth for node in result.nodes}).items()
        ]
    )

    left, right = st.columns(2)
    with left:
        chart = alt.Chart(type_df).mark_bar().encode(
            x=alt.X("edge_type:N", title="Relation type"),
            y=alt.Y("count:Q", title="Relations"),
            color=alt.Color(
                "edge_type:N",
                scale=alt.Scale(domain=list(EDGE_COLORS), range=list(EDGE_COLORS.values())),
                legend=None,
            ),
        )
        st.altair_chart(chart, use_container_width=True)
    with right:
        chart = alt.Chart(depth_df).mark_bar().encode(
            x=alt.X("depth:O", title="Hops from seed"),
            y=alt.Y("persons:Q", title="Persons"),
        )
        st.altair_chart(chart, use_container_width=True)


def render_tables(result: NetworkResult) -> None:
    with st.expander("View as Table"):
        nodes_df = pd.DataFrame(
            [
                {"id": n.id, "label": n.label, "depth": n.depth, "type": n.node_type,
                 "birth": n.birth_year, "death": n.death_year}
                for n in result.nodes
            ]
        )
        st.dataframe(nodes_df, use_container_width=True)

        groups = {t: edges for t, edges in group_edges_by_type(result.edges).items() if edges}
        if groups:
            for tab, edges in zip(st.tabs([t.title() for t in groups]), groups.values()):
                with tab:
                    edges_df = pd.DataFrame(
                        [
                            {"source": e.source, "target": e.target, "label": e.edge_label,
                             "weight": e.weight, "depth": e.depth}
                            for e in edges
                        ]
                    )
                    st.dataframe(edges_df, use_container_width=True)

        # Quick navigation
        st.markdown("##### Quick Navigate")
        for node in [n for n in result.nodes if not n.is_seed][:10]:
            col1, col2 = st.columns([3, 1])
            col1.write(f"**{node.label}** ({node.id}), depth {node.depth}")
            if col2.button("Open", key=f"nav_person_{node.id}"):
                queue_person_navigation(node.id)
                st.rerun()


def page_person_network(db: Database, settings: Settings) -> None:
    """Network around one person."""
    st.subheader("Person Network")

    col1, col2 = st.columns([1, 2])
    with col1:
        person_id = st.number_input("Person ID", min_value=1, value=get_active_person() or 1762, step=1)
        relation_types: List[str] = st.multiselect(
            "Relation types", RELATION_TYPES, default=settings.default_relation_types
        )
    with col2:
        depth = st.slider("Depth", 0, settings.max_depth, settings.default_depth)
        include_reciprocal = st.checkbox("Include reciprocal relations")
        use_radius = st.checkbox("Limit by distance from birthplace")
        radius = st.slider("Radius (degrees)", 0.5, 20.0, 5.0) if use_radius else None
        merge_parallel = st.checkbox("Merge parallel relations")

    query = NetworkQuery(
        person_id=int(person_id),
        depth=depth,
        relation_types=relation_types,
        include_reciprocal=include_reciprocal,
        proximity_radius=radius,
    )
    with st.spinner("Exploring network..."):
        try:
            result = explore_person_network(db, query, settings)
        except PersonNotFoundError as e:
            st.warning(str(e))
            return

    if result.truncated:
        st.info(f"Node limit of {settings.max_nodes} reached; the network is incomplete.")

    render_metrics(result)
    components.html(generate_vis_html(result, merge_parallel=merge_parallel), height=620)
    st.caption("Drag to pan, scroll to zoom. Seeds are red; other colors follow the strongest relation.")
    render_tables(result)


def page_multi_person_network(db: Database, settings: Settings) -> None:
    """Network joining several persons, with bridges and pathways."""
    st.subheader("Multi-Person Network")

    ids_text = st.text_input("Person IDs (comma-separated)", value="")
    person_ids = [int(p) for p in ids_text.replace(" ", "").split(",") if p.isdigit()]
    relation_types = st.multiselect("Relation types", RELATION_TYPES, default=settings.default_relation_types)
    depth = st.slider("Depth", 0, settings.max_depth, settings.default_depth, key="multi_depth")
    col1, col2, col3 = st.columns(3)
    min_connections = col1.number_input("Min seeds per bridge", min_value=2, value=2, step=1)
    bridge_type = col2.selectbox("Bridge type", ["any"] + BRIDGE_TYPES)
    exact_bridges = col3.checkbox("Find cut persons")

    if len(person_ids) < 2:
        st.info("Enter at least two person IDs.")
        return

    query = MultiPersonQuery(
        person_ids=person_ids,
        depth=depth,
        relation_types=relation_types,
        min_bridge_connections=int(min_connections),
        bridge_type=None if bridge_type == "any" else bridge_type,
        exact_bridges=exact_bridges,
    )
    with st.spinner("Building network..."):
        try:
            result = build_multi_person_network(db, query, settings)
        except PersonNotFoundError as e:
            st.warning(str(e))
            return

    render_metrics(result)
    components.html(generate_vis_html(result), height=620)

    labels = {n.id: n.label for n in result.nodes}
    if result.bridge_nodes:
        st.markdown("### Bridge Persons")
        st.dataframe(
            pd.DataFrame(
                [
                    {"person": b.label, "id": b.person_id, "connects": ", ".join(labels.get(s, str(s)) for s in b.connects_to),
                     "type": b.bridge_type, "score": b.bridge_score}
                    for b in result.bridge_nodes
                ]
            ),
            use_container_width=True,
        )
    if result.bridge_statistics and result.bridge_statistics["total"]:
        stats = result.bridge_statistics
        st.caption(
            f"{stats['total']} bridges, {stats['avg_connections_per_bridge']:.1f} seeds each on average"
        )
    if result.articulation_points:
        cut = ", ".join(labels.get(p, str(p)) for p in result.articulation_points)
        st.markdown(f"**Cut persons** (removing one separates seeds): {cut}")
    if result.pathways:
        st.markdown("### Pathways")
        for pathway in result.pathways:
            steps = " → ".join(labels.get(p, str(p)) for p in pathway.path)
            st.write(f"{steps} ({pathway.path_type}, {pathway.path_length} hops)")
    render_tables(result)
