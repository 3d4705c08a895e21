"""
Credentials and session file of the CLI.

    ~/.stine-env.json
    {
      "username": "BAX1234",
      "password": "...",
      "session": "123456789012345",
      "cnsc_cookie": "...",
      "last_used": 1700000000
    }

The stored session is only tried again if it was used in the last 30 minutes;
the portal drops idle sessions after that.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

SESSION_MAX_IDLE_SECONDS = 30 * 60


def default_config_path() -> Path:
    """
    Function instead of a constant so tests can point it elsewhere.
    """
    return Path.home() / ".stine-env.json"


@dataclass
class Config:
    username: str = ""
    password: str = ""
    session: str = ""
    cnsc_cookie: str = ""
    # unix timestamp of the last save
    last_used: Optional[int] = None

    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    def can_resume(self, now: float | None = None) -> bool:
        """
        True if a stored session exists and is recent enough to try.
        """
        if not self.session or not self.cnsc_cookie or self.last_used is None:
            return False
        now = time.time() if now is None else now
        return now - self.last_used < SESSION_MAX_IDLE_SECONDS


def load_config(path: str | Path | None = None) -> Config:
    """
    Read the config file. A missing file gives an empty Config; a broken one
    raises ValueError (json.JSONDecodeError) or OSError.
    """
    config_path = Path(path) if path is not None else default_config_path()
    if not config_path.exists():
        return Config()

    data = json.loads(config_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{config_path}: expected a JSON object")

    last_used = data.get("last_used")
    return Config(
        username=str(data.get("username") or ""),
        password=str(data.get("password") or ""),
        session=str(data.get("session") or ""),
        cnsc_cookie=str(data.get("cnsc_cookie") or ""),
        last_used=int(last_used) if last_used is not None else None,
    )


def save_config(config: Config, path: str | Path | None = None) -> Path:
    """
    Write config, stamping last_used with the current time.
    """
    config_path = Path(path) if path is not None else default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    config.last_used = int(time.time())
    config_path.write_text(json.dumps(asdict(config), indent=2), encoding="utf-8")
    return config_path
