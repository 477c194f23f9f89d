"""Aggregation domain logic: rules, per-source pipeline, cache, resolver and status store."""
