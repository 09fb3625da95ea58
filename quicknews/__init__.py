"""Feed aggregation, query ranking and click tracking service."""
