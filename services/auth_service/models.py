"""
Session data models for the authentication service.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class AuthSession:
    """Signed-in user as reported by the auth backend"""
    user_id: str
    email: Optional[str] = None
    access_token: Optional[str] = None
