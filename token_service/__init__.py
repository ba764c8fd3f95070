"""Invite codes and one-time verification codes."""

from .invites import InviteVault
from .otp import OTPVault

__all__ = ["InviteVault", "OTPVault"]
