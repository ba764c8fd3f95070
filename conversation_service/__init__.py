"""
Conversation Service

Conversations, messages, reactions, accusés de lecture et réunions.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
