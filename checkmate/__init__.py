"""Matchmaking, websocket queue, authorisation and user services for an online chess site."""

__version__ = "0.1.0"