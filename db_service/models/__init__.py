# db_service/models/__init__.py
"""
Import tous les modèles pour qu'ils soient disponibles via db_service.models.
"""

# Import modèles utilisateur
from db_service.models.user import User

# Import modèles messagerie
from db_service.models.conversation import (
    Conversation,
    ConversationParticipant,
    Message,
    MessageReaction,
)

# Import modèles réunions
from db_service.models.meeting import Meeting, MeetingParticipant, MeetingRecording

# Import modèles notifications
from db_service.models.notification import Notification

# Import jetons d'accès
from db_service.models.access_token import InviteCode, OTPCode

__all__ = [
    # Modèles utilisateur
    'User',

    # Modèles messagerie
    'Conversation', 'ConversationParticipant', 'Message', 'MessageReaction',

    # Modèles réunions
    'Meeting', 'MeetingParticipant', 'MeetingRecording',

    # Notifications et jetons
    'Notification', 'InviteCode', 'OTPCode',
]
