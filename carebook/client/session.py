import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union, TYPE_CHECKING

from pydantic import ValidationError

from ..schemas.auth.auth import UserResponse
from .api import ApiError

if TYPE_CHECKING:
    from .resources import AuthAPI

logger = logging.getLogger(__name__)


class SessionStore:
    """JSON file holding ``{"token", "refreshToken", "user"}``."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None
        return data if isinstance(data, dict) else None

    def save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class AuthSession:
    """Signed-in state of one client, persisted through a ``SessionStore``."""

    def __init__(self, store: Optional[SessionStore] = None):
        self.store = store
        self.token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.user: Optional[UserResponse] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def role(self) -> Optional[str]:
        return self.user.user_type if self.user else None

    def _reset(self) -> None:
        self.token = None
        self.refresh_token = None
        self.user = None

    def _persist(self) -> None:
        if self.store is None:
            return
        self.store.save({
            "token": self.token,
            "refreshToken": self.refresh_token,
            "user": self.user.to_wire() if self.user else None,
        })

    def rehydrate(self) -> bool:
        """Restore state from the store. A missing or corrupt file leaves the session signed out."""
        self._reset()
        data = self.store.load() if self.store is not None else None
        if not data or not data.get("token"):
            return False
        try:
            user = UserResponse.model_validate(data["user"]) if data.get("user") else None
        except ValidationError as e:
            logger.warning(f"Discarding stored session with invalid user: {e}")
            return False
        self.token = data["token"]
        self.refresh_token = data.get("refreshToken")
        self.user = user
        return True

    def login(self, token: str, user: UserResponse, refresh_token: Optional[str] = None) -> None:
        self.token = token
        self.refresh_token = refresh_token
        self.user = user
        self._persist()

    def logout(self) -> None:
        self._reset()
        if self.store is not None:
            self.store.clear()

    def refresh(self, auth_api: "AuthAPI") -> str:
        """Exchange the refresh token for a new access token and persist it.

        A rejected refresh token signs the session out before re-raising.
        """
        if not self.refresh_token:
            raise ApiError("No refresh token available")
        try:
            token = auth_api.refresh(self.refresh_token)
        except ApiError as e:
            if e.status_code == 401:
                self.logout()
            raise
        self.token = token
        self._persist()
        return token
