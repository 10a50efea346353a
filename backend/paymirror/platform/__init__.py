"""Sync and webhook machinery that keeps the mirror current."""
