"""DSU: personal health-data store with delegated third-party access."""
