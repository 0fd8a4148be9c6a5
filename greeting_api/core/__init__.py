"""
Core primitives shared across the Greeting API.

This package hosts configuration, logging, the credential hasher, the token
service and the mailer adapter. Nothing here imports FastAPI or the
storage layer.
"""
