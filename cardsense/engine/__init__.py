"""Recommendation engine: normalization, eligibility, scoring, assembly, personas."""
