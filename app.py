"""
app.py — Streamlit Entry Point

Auto Insights: Upload CSV → Get statistical, trend and correlation insights

All analysis is delegated to the insight graph. The UI only handles
column selection, presentation and export.
"""

import html
import json

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from agent.graph import stream_insight_generation
from config.logger import setup_logger
from config.settings import get_settings
from tools.data_loader import (
    extract_numeric_column,
    get_file_info,
    infer_numeric_columns,
    safe_load_csv,
)
from tools.insight_generator import (
    INSIGHT_TYPES,
    filter_insights,
    group_by_severity,
    sort_insights,
)


# =============================================================================
# PAGE CONFIG
# =============================================================================

st.set_page_config(
    page_title="Auto Insights",
    page_icon="💡",
    layout="wide",
    initial_sidebar_state="expanded",
)

setup_logger("ui")
SETTINGS = get_settings()


# =============================================================================
# SESSION STATE INITIALIZATION
# =============================================================================

def init_session_state():
    """Initialize session state with default values."""
    defaults = {
        "file_bytes": None,
        "filename": None,
        "preview_df": None,
        "analysis_result": None,
        "analysis_running": False,
        "analysis_complete": False,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


init_session_state()


# =============================================================================
# CUSTOM CSS
# =============================================================================

st.markdown("""
<style>
    .insight-card {
        background: #f8fafc;
        border-left: 4px solid #3b82f6;
        border-radius: 8px;
        padding: 0.9rem 1.1rem;
        margin-bottom: 0.75rem;
    }
    .insight-card.warning { border-left-color: #f59e0b; background: #fffbeb; }
    .insight-card.critical { border-left-color: #ef4444; background: #fef2f2; }
    .insight-title { font-weight: 600; color: #0f172a; margin-bottom: 0.25rem; }
    .insight-body { color: #334155; font-size: 0.92rem; }
    .insight-meta { color: #64748b; font-size: 0.78rem; margin-top: 0.4rem; }
    .insight-rec { color: #1e40af; font-size: 0.85rem; margin-top: 0.35rem; }
</style>
""", unsafe_allow_html=True)

SEVERITY_ICONS = {"critical": "🚨", "warning": "⚠️", "info": "💡"}

NODE_LABELS = {
    "load_dataset": "Loading data",
    "resolve_columns": "Selecting columns",
    "analyze_statistics": "Computing statistics",
    "analyze_trends": "Detecting trends",
    "detect_anomalies": "Scanning for anomalies",
    "analyze_correlations": "Computing correlations",
    "synthesize_insights": "Generating insights",
    "handle_error": "Handling error",
}


# =============================================================================
# SIDEBAR
# =============================================================================

def render_sidebar():
    """Analysis options; defaults come from settings."""
    with st.sidebar:
        st.markdown("## 💡 Auto Insights")
        st.caption("Statistical analysis, trends and correlations for numeric columns")
        st.markdown("---")

        st.markdown("**Analysis Options**")
        defaults = SETTINGS.default_options
        options = {
            "analyze_trends": st.checkbox("Analyze trends", value=defaults["analyze_trends"]),
            "detect_anomalies": st.checkbox("Detect anomalies", value=defaults["detect_anomalies"]),
            "analyze_correlations": st.checkbox("Analyze correlations", value=defaults["analyze_correlations"]),
        }

        st.markdown("---")
        st.caption(f"Row limit: {SETTINGS.max_rows:,}")
        st.caption("Powered by LangGraph • Built with Streamlit")

    return options


# =============================================================================
# FILE UPLOAD SECTION
# =============================================================================

def render_upload_section():
    """File upload; a new file resets any previous result."""
    uploaded_file = st.file_uploader(
        "📂 Drop your CSV here or click to browse",
        type=["csv"],
        help="Supported: CSV files up to 100MB",
        key="file_uploader",
    )

    if uploaded_file is not None and st.session_state.filename != uploaded_file.name:
        st.session_state.file_bytes = uploaded_file.read()
        st.session_state.filename = uploaded_file.name
        st.session_state.analysis_result = None
        st.session_state.analysis_complete = False

        df, error = safe_load_csv(st.session_state.file_bytes, uploaded_file.name, max_rows=SETTINGS.max_rows)
        st.session_state.preview_df = df
        if error:
            st.error(error)


def render_column_selector():
    """Multiselect over the inferred numeric columns. Returns the selection."""
    df = st.session_state.preview_df
    if df is None:
        return []

    info = get_file_info(st.session_state.file_bytes, st.session_state.filename)
    st.markdown(f"**📊 {info['filename']}** · {len(df):,} rows × {len(df.columns)} columns")
    st.caption(f"Size: {info['size_bytes'] / 1024:.1f} KB")
    with st.expander("Preview", expanded=False):
        st.dataframe(df.head(20), use_container_width=True)

    numeric_columns = infer_numeric_columns(df)
    if not numeric_columns:
        st.warning("No numeric columns detected. Insights need at least one numeric column.")
        return []

    return st.multiselect(
        "Columns to analyze",
        options=numeric_columns,
        default=numeric_columns[:10],
        help="Numeric columns detected in the file",
    )


# =============================================================================
# ANALYSIS EXECUTION
# =============================================================================

def run_analysis_with_progress(columns: list, options: dict):
    """Stream the insight graph, updating a progress bar per node."""
    st.session_state.analysis_running = True
    st.session_state.analysis_complete = False
    st.session_state.analysis_result = None

    progress_bar = st.progress(0, text="Starting analysis...")
    final_state = None

    try:
        for node_name, state in stream_insight_generation(
            raw_file=st.session_state.file_bytes,
            filename=st.session_state.filename,
            column_names=columns,
            options=options,
            dataset_id=st.session_state.filename,
        ):
            message = state.get("progress_message") or NODE_LABELS.get(node_name, node_name)
            progress_bar.progress(min(1.0, state.get("progress", 0.0)), text=message)
            final_state = state

        progress_bar.progress(1.0, text="Analysis complete!")
        st.session_state.analysis_result = final_state
    except Exception as e:
        st.error(f"Analysis failed: {str(e)}")
        st.session_state.analysis_result = {
            "response": {
                "is_error": True,
                "error_message": str(e),
                "error_type": "SYSTEM_ERROR",
                "recovery_hint": "Please try again or check your file format.",
            }
        }
    finally:
        st.session_state.analysis_complete = True
        st.session_state.analysis_running = False


# =============================================================================
# CHARTS
# =============================================================================

def _create_distribution_chart(values: list, distribution: dict) -> go.Figure:
    """Histogram with Tukey fences marked."""
    fig = go.Figure(go.Histogram(x=values, marker_color="#3b82f6", nbinsx=30))

    for fence in ("lower_fence", "upper_fence"):
        position = distribution.get(fence)
        if position is not None:
            fig.add_vline(x=position, line_dash="dash", line_color="#ef4444")

    fig.update_layout(
        bargap=0.1,
        height=280,
        margin=dict(l=10, r=10, t=10, b=10),
        plot_bgcolor="white",
        paper_bgcolor="white",
        xaxis=dict(showgrid=True, gridcolor="#f1f5f9", title=None),
        yaxis=dict(showgrid=True, gridcolor="#f1f5f9", title=None),
    )
    return fig


def _create_trend_chart(values: list, trend: dict | None, anomalies: list | None) -> go.Figure:
    """Values over their index with the OLS line and anomaly markers."""
    index = list(range(len(values)))
    fig = go.Figure(go.Scatter(
        x=index, y=values, mode="lines+markers" if len(values) < 60 else "lines",
        name="value", line=dict(color="#3b82f6", width=2),
    ))

    regression = (trend or {}).get("regression") or {}
    if regression.get("slope") is not None:
        fitted = [regression["intercept"] + regression["slope"] * i for i in index]
        fig.add_trace(go.Scatter(
            x=index, y=fitted, mode="lines", name="trend",
            line=dict(color="#94a3b8", dash="dot"),
        ))

    if anomalies:
        fig.add_trace(go.Scatter(
            x=[a["index"] for a in anomalies],
            y=[a["value"] for a in anomalies],
            mode="markers", name="anomaly",
            marker=dict(color="#ef4444", size=10, symbol="x"),
        ))

    fig.update_layout(
        height=280,
        margin=dict(l=10, r=10, t=10, b=10),
        plot_bgcolor="white",
        paper_bgcolor="white",
        legend=dict(orientation="h", y=1.1),
        xaxis=dict(showgrid=True, gridcolor="#f1f5f9", title=None),
        yaxis=dict(showgrid=True, gridcolor="#f1f5f9", title=None),
    )
    return fig


# =============================================================================
# RESULTS DISPLAY
# =============================================================================

def render_insight_card(insight: dict):
    severity = insight.get("severity", "info")
    recommendation = insight.get("recommendation")
    rec_html = (
        f'<div class="insight-rec">→ {html.escape(recommendation)}</div>' if recommendation else ""
    )

    st.markdown(f"""
    <div class="insight-card {severity}">
        <div class="insight-title">{SEVERITY_ICONS.get(severity, '💡')} {html.escape(insight.get('title', 'Insight'))}</div>
        <div class="insight-body">{html.escape(insight.get('description', ''))}</div>
        {rec_html}
        <div class="insight-meta">{insight.get('type', '')} · confidence {insight.get('confidence', 0) * 100:.0f}%</div>
    </div>
    """, unsafe_allow_html=True)


def render_insights(insights: list):
    """Filter / sort controls plus insight cards grouped by severity."""
    st.subheader("💡 Insights")

    col1, col2, col3, col4, col5 = st.columns([2, 1, 1, 1, 1])
    with col1:
        search = st.text_input("Search", placeholder="Search insights...", label_visibility="collapsed")
    with col2:
        insight_type = st.selectbox("Type", ["all", *INSIGHT_TYPES], label_visibility="collapsed")
    with col3:
        severity = st.selectbox("Severity", ["all", "critical", "warning", "info"], label_visibility="collapsed")
    with col4:
        sort_by = st.selectbox("Sort by", ["severity", "confidence", "type"], label_visibility="collapsed")
    with col5:
        sort_order = st.selectbox(
            "Order", ["desc", "asc"],
            format_func=lambda order: "Descending" if order == "desc" else "Ascending",
            label_visibility="collapsed",
        )
    actionable_only = st.checkbox("Actionable only", value=False)

    visible = filter_insights(
        insights,
        insight_type=None if insight_type == "all" else insight_type,
        severity=None if severity == "all" else severity,
        search=search,
        actionable_only=actionable_only,
    )
    visible = sort_insights(visible, sort_by=sort_by, sort_order=sort_order)

    if not visible:
        st.info("No insights match the current filters.")
        return

    if sort_by != "severity":
        for insight in visible:
            render_insight_card(insight)
        return

    groups = list(group_by_severity(visible).items())
    if sort_order == "asc":
        groups.reverse()

    for level, group in groups:
        if not group:
            continue
        st.markdown(f"**{level.title()} ({len(group)})**")
        for insight in group:
            render_insight_card(insight)


def render_column_details(result: dict):
    """Per-column metrics table and charts."""
    response = result.get("response", {})
    analyses = response.get("column_analyses", [])
    df = result.get("dataframe")
    if not analyses:
        return

    st.subheader("📈 Column Details")

    rows = []
    for analysis in analyses:
        metrics = analysis.get("metrics", {})
        trend = analysis.get("trend") or {}
        rows.append({
            "Column": analysis["column"],
            "Count": metrics.get("count"),
            "Mean": metrics.get("mean"),
            "Median": metrics.get("median"),
            "Std Dev": metrics.get("std_dev"),
            "Min": metrics.get("min"),
            "Max": metrics.get("max"),
            "Distribution": analysis.get("distribution", {}).get("distribution_type"),
            "Trend": trend.get("trend", "—"),
        })
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

    if df is None:
        return

    for analysis in analyses:
        column = analysis["column"]
        values = extract_numeric_column(df, column)
        with st.expander(f"📊 {column}", expanded=False):
            left, right = st.columns(2)
            with left:
                st.caption("Distribution")
                st.plotly_chart(
                    _create_distribution_chart(values, analysis.get("distribution", {})),
                    use_container_width=True,
                )
            with right:
                st.caption("Sequence")
                st.plotly_chart(
                    _create_trend_chart(values, analysis.get("trend"), analysis.get("anomalies")),
                    use_container_width=True,
                )


def render_correlations(correlations: list):
    if not correlations:
        return

    with st.expander(f"🔗 Correlations ({len(correlations)})", expanded=False):
        st.dataframe(
            pd.DataFrame([{
                "Column A": c["column_a"],
                "Column B": c["column_b"],
                "r": c["correlation"],
                "p-value": c.get("p_value"),
                "n": c.get("sample_size"),
                "Strength": c.get("strength"),
            } for c in correlations]),
            use_container_width=True,
            hide_index=True,
        )


def render_warnings(warnings: list):
    """Render analysis warnings."""
    if not warnings:
        return

    with st.expander(f"⚠️ Warnings ({len(warnings)})", expanded=False):
        for warning in warnings:
            st.warning(warning)


def render_export_actions(response: dict):
    """JSON export of the full response."""
    st.divider()

    col1, col2 = st.columns(2)
    with col1:
        st.download_button(
            "📄 Download Insights (JSON)",
            data=json.dumps(response, indent=2),
            file_name="insights.json",
            mime="application/json",
            use_container_width=True,
        )
    with col2:
        if st.button("🔄 Re-analyze", use_container_width=True):
            st.session_state.analysis_result = None
            st.session_state.analysis_complete = False
            st.rerun()


def render_results():
    """Render analysis results."""
    result = st.session_state.analysis_result
    if not result:
        return

    response = result.get("response") or {}
    if response.get("is_error"):
        render_error(response)
        return

    st.divider()

    col1, col2, col3 = st.columns(3)
    col1.metric("Insights", response.get("count", 0))
    col2.metric("Columns Analyzed", len(response.get("columns_analyzed", [])))
    col3.metric("Rows Analyzed", f"{response.get('data_rows_analyzed', 0):,}")

    render_insights(response.get("insights", []))
    render_column_details(result)
    render_correlations(response.get("correlations", []))
    render_warnings(response.get("warnings", []))
    render_export_actions(response)


def render_error(response: dict):
    """Render error state with recovery options."""
    st.divider()

    error_msg = response.get("error_message", "An unknown error occurred")
    error_type = response.get("error_type", "UNKNOWN")
    recovery_hint = response.get("recovery_hint", "Please try again.")

    st.error(f"**{error_type}**: {error_msg}")
    st.info(f"💡 **Suggestion**: {recovery_hint}")

    render_warnings(response.get("warnings", []))

    if response.get("has_partial_results"):
        partial = response.get("partial_results", {})
        st.warning(f"Partial results are available for: {', '.join(partial.get('columns_analyzed', []))}")

    if st.button("🔄 Try Again", type="primary", use_container_width=True):
        st.session_state.analysis_result = None
        st.session_state.analysis_complete = False
        st.rerun()


# =============================================================================
# MAIN APP FLOW
# =============================================================================

def main():
    """Main application flow."""
    options = render_sidebar()

    st.title("💡 Auto Insights")
    st.caption("Upload any CSV → Get statistically grounded insights")

    render_upload_section()
    columns = render_column_selector()

    if columns:
        analyze_clicked = st.button(
            "🚀 Generate Insights",
            type="primary",
            disabled=st.session_state.analysis_running,
        )
        if analyze_clicked and not st.session_state.analysis_running:
            run_analysis_with_progress(columns, options)
            st.rerun()

    if st.session_state.analysis_complete:
        render_results()


if __name__ == "__main__":
    main()
