# graph.py — LangGraph workflow definition
# Defines the insight pipeline, node edges, and error routing
"""
graph.py — LangGraph Workflow Definition

Wires the insight nodes into a linear graph with error routing.

Flow:
    START → load_dataset → resolve_columns → analyze_statistics → analyze_trends
          → detect_anomalies → analyze_correlations → synthesize_insights → END

Any node that sets state["error"] routes to handle_error_node → END.
Optional steps (trends, anomalies, correlations) check state["options"]
themselves and pass through when disabled.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Literal

from langgraph.graph import END, START, StateGraph

from agent.nodes import (
    analyze_correlations_node,
    analyze_statistics_node,
    analyze_trends_node,
    detect_anomalies_node,
    handle_error_node,
    load_dataset_node,
    resolve_columns_node,
    synthesize_insights_node,
)
from agent.state import InsightState, create_initial_state


# Ordered happy path: (node name, node function)
PIPELINE_NODES = (
    ("load_dataset", load_dataset_node),
    ("resolve_columns", resolve_columns_node),
    ("analyze_statistics", analyze_statistics_node),
    ("analyze_trends", analyze_trends_node),
    ("detect_anomalies", detect_anomalies_node),
    ("analyze_correlations", analyze_correlations_node),
    ("synthesize_insights", synthesize_insights_node),
)


# =============================================================================
# CONDITIONAL ROUTING
# =============================================================================

def route_after_node(state: InsightState) -> Literal["continue", "error"]:
    """
    Conditional router: check if error occurred, route accordingly.

    Returns:
        "error" if state has error, "continue" otherwise
    """
    if state.get("error"):
        return "error"
    return "continue"


# =============================================================================
# GRAPH BUILDER
# =============================================================================

def build_insight_graph() -> StateGraph:
    """
    Build the LangGraph workflow for insight generation.

    Returns:
        Uncompiled StateGraph
    """
    workflow = StateGraph(InsightState)

    for name, node in PIPELINE_NODES:
        workflow.add_node(name, node)
    workflow.add_node("handle_error", handle_error_node)

    workflow.add_edge(START, PIPELINE_NODES[0][0])

    # Each step → next step OR handle_error; the last step → END
    for (name, _), following in zip(PIPELINE_NODES, PIPELINE_NODES[1:] + ((END, None),)):
        workflow.add_conditional_edges(
            name,
            route_after_node,
            {
                "continue": following[0],
                "error": "handle_error",
            },
        )

    workflow.add_edge("handle_error", END)

    return workflow


def compile_insight_graph():
    """
    Build and compile the insight graph.

    Returns:
        Compiled graph ready for .invoke() or .stream()
    """
    return build_insight_graph().compile()


# =============================================================================
# GRAPH EXECUTION
# =============================================================================

# Compiled graph singleton (lazy initialization)
_compiled_graph = None


def get_compiled_graph():
    """
    Get or create the compiled graph singleton.

    Returns:
        Compiled StateGraph
    """
    global _compiled_graph
    if _compiled_graph is None:
        _compiled_graph = compile_insight_graph()
    return _compiled_graph


def run_insight_generation(
    rows: list[dict[str, Any]] | None = None,
    raw_file: bytes | None = None,
    filename: str | None = None,
    column_names: list[str] | None = None,
    options: dict[str, bool] | None = None,
    dataset_id: str | None = None,
    max_rows: int | None = None,
    progress_callback: Callable[[dict], None] | None = None,
) -> dict:
    """
    Run the complete insight pipeline.

    Args:
        rows: Row objects (takes precedence over raw_file)
        raw_file: CSV bytes
        filename: CSV filename
        column_names: Columns to analyze (None = infer numeric columns)
        options: {analyze_trends, detect_anomalies, analyze_correlations}
        dataset_id: Identifier echoed in the response
        max_rows: Row cap (defaults to INSIGHTS_MAX_ROWS)
        progress_callback: Optional callback for progress updates

    Returns:
        Final InsightState dict; state["response"] holds the payload

    Example:
        result = run_insight_generation(
            rows=[{"month": "Jan", "revenue": 120}, ...],
            column_names=["revenue"],
            options={"analyze_trends": True},
        )
        if result["response"]["is_error"]:
            print(result["response"]["error_message"])
    """
    initial_state = create_initial_state(
        raw_file=raw_file,
        filename=filename,
        rows=rows,
        dataset_id=dataset_id,
        column_names=column_names,
        options=options,
        max_rows=max_rows,
        progress_callback=progress_callback,
    )

    return get_compiled_graph().invoke(initial_state)


def stream_insight_generation(
    rows: list[dict[str, Any]] | None = None,
    raw_file: bytes | None = None,
    filename: str | None = None,
    column_names: list[str] | None = None,
    options: dict[str, bool] | None = None,
    dataset_id: str | None = None,
    max_rows: int | None = None,
    progress_callback: Callable[[dict], None] | None = None,
) -> Iterator[tuple[str, dict]]:
    """
    Stream the pipeline, yielding accumulated state after each node.

    Yields:
        Tuple of (node_name, state_snapshot) after each node execution

    Example:
        for node_name, state in stream_insight_generation(raw_file=data, filename="sales.csv"):
            progress_bar.progress(state.get("progress", 0.0))
    """
    initial_state = create_initial_state(
        raw_file=raw_file,
        filename=filename,
        rows=rows,
        dataset_id=dataset_id,
        column_names=column_names,
        options=options,
        max_rows=max_rows,
        progress_callback=progress_callback,
    )

    accumulated_state = dict(initial_state)

    for event in get_compiled_graph().stream(initial_state):
        # event is a dict with node_name as key and state update as value
        for node_name, state_update in event.items():
            accumulated_state.update(state_update or {})
            yield node_name, accumulated_state


def get_graph_mermaid() -> str:
    """Mermaid diagram of the compiled graph, for documentation."""
    return get_compiled_graph().get_graph().draw_mermaid()
