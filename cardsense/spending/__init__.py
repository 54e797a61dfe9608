"""Spending transaction reads."""
