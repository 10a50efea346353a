"""Billing provider integrations."""
