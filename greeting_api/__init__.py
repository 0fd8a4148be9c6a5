"""Greeting API: user accounts with hashed credentials and signed bearer tokens."""

__version__ = "0.1.0"
