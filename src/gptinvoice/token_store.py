from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union


logger = logging.getLogger(__name__)


class TokenStore:
    """
    Persists the ChatGPT access token as `{"accessToken": "..."}` (default: ~/.gptinvoice/config).

    The directory is created 0700 and the file written 0600, since the token grants account access.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[str]:
        if not self.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug("Token store unreadable (%s): %s", self.path, e)
            return None

        token = data.get("accessToken") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            return None
        return token

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        payload = json.dumps({"accessToken": token}, indent=2)

        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        # O_CREAT's mode is ignored for files that already existed.
        os.chmod(self.path, 0o600)

    def delete(self) -> None:
        if self.exists():
            self.path.unlink()
