"""
Shared, cross-cutting code for the API.

`core/` holds the small building blocks every resource uses: the connection
pool and per-request lease, the deadline dispatcher, error types, response
encoding, settings and logging. Resource-specific SQL and business logic stay
in their own packages (`images/`, `products/`).
"""
