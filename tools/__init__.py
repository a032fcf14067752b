"""Pure analysis tools: loading, statistics, trends, insight synthesis."""
