"""
Backend package for the customer API cloud function.

Holds the request router, the key-value and document store adapters, the
credential adapter and the cost-report collector, plus a FastAPI wrapper for
running the handler locally.
"""
