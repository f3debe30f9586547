"""Partial-update reconciliation: pointers, literal coercion and patch appliers."""
