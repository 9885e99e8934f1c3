"""
Core: pieces shared by every subsystem.

Domain exceptions with stable error codes, used by the stamp verifier,
auth verifier, rate limiter, reputation engine and API server.
"""
