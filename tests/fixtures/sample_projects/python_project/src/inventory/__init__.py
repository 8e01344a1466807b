"""Inventory tracking."""
