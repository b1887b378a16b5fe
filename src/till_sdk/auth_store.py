from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_data_dir
from pydantic import ValidationError as ModelValidationError

from .models import SessionData


@dataclass
class AuthStore:
    """Persists the terminal's bearer token and cashier context between runs."""

    app_name: str = "pos-till"
    filename: str = "auth.json"
    base_dir: Path | None = None

    def _path(self) -> Path:
        base = self.base_dir or Path(user_data_dir(self.app_name, "POS"))
        base.mkdir(parents=True, exist_ok=True)
        return base / self.filename

    def save(self, session: SessionData) -> None:
        path = self._path()
        path.write_text(json.dumps(session.model_dump(mode="json"), indent=2))
        try:
            path.chmod(0o600)
        except OSError:
            pass

    def load(self) -> SessionData | None:
        path = self._path()
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError:
            self.clear()
            return None
        try:
            return SessionData.model_validate(data)
        except ModelValidationError:
            self.clear()
            return None

    def token(self) -> str | None:
        stored = self.load()
        return stored.access_token if stored else None

    def replace_token(self, access_token: str) -> None:
        stored = self.load()
        user = stored.user if stored else None
        env_name = stored.env_name if stored else None
        self.save(SessionData(access_token=access_token, user=user, env_name=env_name))

    def clear(self) -> None:
        path = self._path()
        if path.exists():
            path.unlink()


@dataclass
class MemoryAuthStore(AuthStore):
    """Process-local store for tests and ephemeral terminals."""

    _data: SessionData | None = field(default=None, repr=False)

    def save(self, session: SessionData) -> None:
        self._data = session

    def load(self) -> SessionData | None:
        return self._data

    def clear(self) -> None:
        self._data = None
