"""Rental host module."""
