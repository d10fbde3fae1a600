"""Read-only collectors for registry, services, CIM, subprocess and web data."""
