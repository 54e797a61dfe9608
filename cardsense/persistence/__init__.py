"""Storage adapters for recommendations, credit score snapshots and profiles."""
