"""CardSense: rule-based credit card recommendations for Indian users."""

__version__ = "0.1.0"
