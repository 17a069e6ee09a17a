"""
Infrastructure Layer

Concrete adapters for Redis, PostgreSQL and Prometheus.
"""
