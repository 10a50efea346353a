"""Local mirror of billing provider data."""
