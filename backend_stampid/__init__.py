"""
Backend StampID — integrity stamping and trust service for community write-ups.

Fingerprints entry content, verifies on-chain anchoring of those fingerprints,
authenticates wallet-signed profile changes, and keeps reputation scores and
tiers current. Modular layout: stamp, auth, ratelimit, reputation, database,
api_server.
"""

__version__ = "0.1.0"
