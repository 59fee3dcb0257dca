"""Persisted record of the last connected provider kind."""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from .catalog import ProviderKind


class SessionCache:
    """
    Single-key store for the last successfully connected provider kind.

    The value survives process restarts. An absent, unreadable or unknown
    value reads as "no cached session".
    """

    def __init__(self, path: Path):
        self.path = path

    def get(self) -> Optional[ProviderKind]:
        """
        Read the cached kind.

        Returns
        -------
        Optional[ProviderKind]
            None when nothing usable is cached. A corrupt file is removed.
        """
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return ProviderKind(data["provider"])
        except (json.JSONDecodeError, TypeError, KeyError, ValueError, OSError) as e:
            logging.warning(f"Discarding unreadable session cache {self.path}: {e}")
            self.path.unlink(missing_ok=True)
            return None

    def set(self, kind: ProviderKind) -> None:
        """Overwrite the cached kind."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({"provider": kind.value}, sort_keys=True)

        # Write to a sibling file then rename, so readers never see a partial file.
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".cached_provider")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            if os.name != "nt":
                os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logging.debug(f"Cached provider kind {kind.value}")

    def clear(self) -> None:
        """Forget the cached kind. Clearing an empty cache is a no-op."""
        self.path.unlink(missing_ok=True)
