"""Bookings and payouts module."""
