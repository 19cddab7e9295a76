from __future__ import annotations

from threading import Lock
from typing import Dict, Protocol

from ..models import BookingProfile


class UserProfileStore(Protocol):
    def get(self, user_id: str) -> BookingProfile: ...

    def save(self, user_id: str, profile: BookingProfile) -> None: ...


class InMemoryUserProfileStore:
    """In-memory booking details collected per user, handed out as copies."""

    def __init__(self) -> None:
        self._profiles: Dict[str, BookingProfile] = {}
        self._lock = Lock()

    def get(self, user_id: str) -> BookingProfile:
        if not user_id:
            raise ValueError("user_id must be provided to load a profile")
        with self._lock:
            profile = self._profiles.get(user_id)
            if profile is None:
                return BookingProfile()
            return profile.model_copy()

    def save(self, user_id: str, profile: BookingProfile) -> None:
        if not user_id:
            raise ValueError("user_id must be provided to save a profile")
        with self._lock:
            self._profiles[user_id] = profile.model_copy()


_user_profile_store = InMemoryUserProfileStore()


def get_user_profile_store() -> InMemoryUserProfileStore:
    return _user_profile_store
