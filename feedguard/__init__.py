"""
feedguard: moderation and rewrite backend for feed clients.

Classifies short user-generated text (keep / hide / rewrite), rewrites it
through an external completion service with a deterministic local fallback,
and learns liked/disliked tokens across requests.
"""

__version__ = "0.3.0"
