"""
Ledger storage for token reservations and storefront records.
"""
import copy
import json
import logging
import os
import stat
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import portalocker

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_PATH = "~/.mint-oracle/ledger.json"


def empty_ledger() -> Dict[str, Any]:
    return {"reservations": {}, "nft_metadata": {}, "purchases": []}


class BaseLedgerStore(ABC):
    """Storage holding the whole ledger as one JSON-compatible document."""

    @abstractmethod
    def read(self) -> Dict[str, Any]:
        """Return a snapshot of the ledger."""
        pass

    @abstractmethod
    def transaction(self):
        """
        Context manager yielding the ledger for read-modify-write.

        The yielded dict may be mutated in place; changes are persisted when
        the block exits without an exception. No other transaction can run
        concurrently.
        """
        pass


class MemoryLedgerStore(BaseLedgerStore):
    """In-process ledger for tests and single-worker deployments"""

    def __init__(self):
        self._data = empty_ledger()
        self._lock = threading.RLock()

    def read(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._data)

    @contextmanager
    def transaction(self) -> Iterator[Dict[str, Any]]:
        with self._lock:
            working = copy.deepcopy(self._data)
            yield working
            self._data = working


class LedgerStore(BaseLedgerStore):
    """Thread-safe and process-safe JSON file ledger"""

    def __init__(self, store_path: Optional[str] = None):
        """
        Initialize the ledger store.

        Args:
            store_path: Optional custom path for the ledger file
        """
        # Use ORACLE_LEDGER_PATH env var or default to ~/.mint-oracle/ledger.json
        if store_path:
            self.store_path = Path(store_path).expanduser()
        else:
            default_path = os.environ.get("ORACLE_LEDGER_PATH", DEFAULT_LEDGER_PATH)
            self.store_path = Path(default_path).expanduser()

        # Serializes threads of this process; the file lock serializes processes
        self._thread_lock = threading.RLock()

        self._ensure_dir()

    def _ensure_dir(self):
        """Ensure ledger directory and file exist with proper permissions"""
        directory = self.store_path.parent
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)

        with self._locked():
            if not self.store_path.exists():
                self._write_unlocked(empty_ledger())
                logger.info(f"Created new ledger at {self.store_path}")

        if os.name == 'posix':
            os.chmod(self.store_path, stat.S_IRUSR | stat.S_IWUSR)  # 0600

    def _get_lock_path(self) -> str:
        """Get path for the lock file"""
        return str(self.store_path) + '.lock'

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._thread_lock:
            with portalocker.Lock(self._get_lock_path(), timeout=10):
                yield

    def _read_unlocked(self) -> Dict[str, Any]:
        try:
            with open(self.store_path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError:
            return empty_ledger()
        except json.JSONDecodeError as e:
            # An empty fallback here would reissue token ids
            raise ValueError(f"Ledger file {self.store_path} is corrupt: {e}") from e

        for key, value in empty_ledger().items():
            data.setdefault(key, value)
        return data

    def _write_unlocked(self, data: Dict[str, Any]) -> None:
        tmp_path = self.store_path.with_suffix(self.store_path.suffix + '.tmp')
        with open(tmp_path, 'w') as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.store_path)

    def read(self) -> Dict[str, Any]:
        """
        Read the ledger with proper locking.

        Returns:
            Dictionary with ledger contents
        """
        with self._locked():
            return self._read_unlocked()

    @contextmanager
    def transaction(self) -> Iterator[Dict[str, Any]]:
        """Hold the lock across a read-modify-write of the ledger."""
        with self._locked():
            data = self._read_unlocked()
            yield data
            self._write_unlocked(data)

    def clear(self):
        """Reset the ledger (for testing)"""
        with self._locked():
            self._write_unlocked(empty_ledger())
