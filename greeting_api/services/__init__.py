"""
High-level use cases for the Greeting API.

Each service module orchestrates repositories/adapters to implement business
rules (register, log in, reset password). Routers call these services instead
of touching the store directly.
"""
