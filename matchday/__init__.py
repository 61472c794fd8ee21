"""Matchday API - passkey sign-in for the tournament prediction app."""

__version__ = "1.0.0"
