"""Inbound provider webhook handling."""
