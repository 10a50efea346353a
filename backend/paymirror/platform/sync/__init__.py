"""Full-pull reconciliation of the mirror."""
