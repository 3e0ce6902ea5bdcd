# live_tuning.py
"""Operator-editable JSON overrides for camera intrinsics and tracker settings."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

LOG = logging.getLogger(__name__)

# (mtime, size) of the last successful read
_Stamp = Tuple[float, int]


class RuntimeParamWatcher:
    """
    Holds the last good contents of a tuning file and re-reads it on demand.

    The session pulls sections out of it by name::

        {"intrinsics": {"focal_length_mm": 4.0, "resolution_x": 1280},
         "tracker": {"prediction_horizon_s": 3.0, "prediction_method": "geodesic"}}

    A file that is missing, unreadable or not a JSON object never clears
    settings that were already loaded.
    """

    def __init__(self, path: str | Path = "runtime_params.json") -> None:
        self.path = Path(path).expanduser().resolve()
        self._stamp: _Stamp = (0.0, -1)
        self.params: Dict[str, Any] = {}

        if self._read():
            LOG.info("Tuning overrides loaded from %s", self.path)
        else:
            LOG.info("No usable tuning file at %s yet", self.path)

    # ------------------------------------------------------------------
    #   Reading
    # ------------------------------------------------------------------
    def _file_stamp(self) -> Optional[_Stamp]:
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return None
        return stat.st_mtime, stat.st_size

    def _read(self) -> bool:
        stamp = self._file_stamp()
        if stamp is None:
            return False
        try:
            doc = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            LOG.error("Cannot use tuning file %s: %s", self.path, exc)
            return False
        if not isinstance(doc, dict):
            LOG.error("Tuning file %s holds a %s, not an object", self.path, type(doc).__name__)
            return False

        self._stamp = stamp
        self.params = doc
        return True

    def _changed(self, stamp: _Stamp) -> bool:
        mtime, size = self._stamp
        # mtime granularity can be a whole second on some filesystems
        return stamp[1] != size or stamp[0] - mtime >= 1.0

    # ------------------------------------------------------------------
    #   Public API
    # ------------------------------------------------------------------
    def maybe_reload(self) -> bool:
        """Re-read the file if it looks modified. True when an attempt was made."""
        stamp = self._file_stamp()
        if stamp is None or not self._changed(stamp):
            return False
        if self._read():
            LOG.info("Tuning overrides reloaded from %s", self.path)
        return True

    def get(self, key: str, default: Any | None = None) -> Any:
        return self.params.get(key, default)

    def section(self, key: str) -> Dict[str, Any]:
        """A copy of one named block; empty when absent or not an object."""
        value = self.params.get(key)
        return dict(value) if isinstance(value, dict) else {}
