"""Shared helpers for the sales collector modules."""
