"""Scoring engine services."""
