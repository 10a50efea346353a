"""HTTP API of the billing mirror."""
