"""Audit/change log module."""
