"""Domain reference data and value types."""
