"""HTTP layer: application factory, collection routers and query translation."""
