"""
Analysis proxy - rate-limited upload gateway for a private inference Space.

Accepts image uploads from browsers, injects the upstream bearer token,
forwards to the upstream /analyze endpoint and relays the response.
"""

__version__ = "0.1.0"
