"""Insight pipeline: LangGraph state, nodes and graph."""
