"""Advisor questionnaire state and its Redis-backed session store."""
