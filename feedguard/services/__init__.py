# feedguard/services/__init__.py
"""
Core moderation services: preference learning, classification and rewriting.
"""
