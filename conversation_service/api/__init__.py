"""API package for the conversation service."""
