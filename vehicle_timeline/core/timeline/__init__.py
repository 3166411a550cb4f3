"""Vehicle activity timeline: normalization, merging and aggregation."""
