import logging
import threading
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)


class ShellContext:
    """
    Session state of the shell: the environment variable store plus the
    exit code of the last completed pipeline.

    Access is guarded by a lock because builtin stages of one pipeline run on
    their own threads and may read the store while the engine prepares the
    next pipeline.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._vars: Dict[str, str] = dict(environ) if environ else {}
        self._lock = threading.Lock()
        self.last_exit_code: int = 0

    def set(self, key: str, value: str) -> None:
        """Sets a variable, overwriting any previous value."""
        with self._lock:
            self._vars[key] = value

    def get(self, key: str) -> Optional[str]:
        """Retrieves a variable. Returns None if key does not exist."""
        with self._lock:
            return self._vars.get(key)

    def snapshot(self) -> Dict[str, str]:
        """Returns a copy of every variable, e.g. as the environment of a spawned process."""
        with self._lock:
            return dict(self._vars)

    def __repr__(self) -> str:
        return f"<ShellContext vars_count={len(self._vars)} last_exit_code={self.last_exit_code}>"
