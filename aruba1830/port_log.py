"""Persistent record of which MAC addresses were on a port when it was disabled."""
import json
import logging
import os
import stat
import tempfile
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from .errors import PortLogReadError, PortLogWriteError
from .mac import normalize_mac

logger = logging.getLogger(__name__)


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# mkstemp creates 0600 files; new logs follow the umask instead
_NEW_FILE_MODE = 0o666 & ~_current_umask()


class PortActivityLog:
    """
    JSON-backed mapping ``port -> set of canonical MACs``.

    Once a port is administratively down the switch no longer reports the
    MACs behind it, so this log is the only way to find the port again when
    enabling or re-banning by MAC.

    File format (sorted keys, sorted MAC lists)::

        {
          "3": ["aa:bb:cc:11:22:33", "aa:bb:cc:11:22:44"]
        }

    A missing file is an empty log; the file is deleted when the log
    becomes empty. Writes go through a temp file and an atomic rename.
    All access from one process goes through one instance.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._entries: Dict[str, Set[str]] = {}
        self._loaded = False
        self._lock = threading.RLock()

    def load(self) -> None:
        """
        Read the file once. Later calls are no-ops.

        The log counts as loaded even if reading fails, so that subsequent
        writes replace an unreadable file instead of failing forever.

        Raises:
            PortLogReadError: the file exists but cannot be read or decoded.
        """
        with self._lock:
            if self._loaded:
                return
            self._loaded = True
            self._entries = {}

            if not self.path.exists():
                return

            try:
                raw = self.path.read_text(encoding="utf-8")
            except OSError as exc:
                raise PortLogReadError(self.path, exc) from exc

            if not raw.strip():
                return

            try:
                decoded = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise PortLogReadError(self.path, exc) from exc

            if not isinstance(decoded, dict) or not all(
                isinstance(port, str) and isinstance(macs, list) and all(isinstance(m, str) for m in macs)
                for port, macs in decoded.items()
            ):
                raise PortLogReadError(self.path, ValueError("expected an object of port -> list of MACs"))

            self._entries = {
                port: {normalize_mac(m) for m in macs}
                for port, macs in decoded.items()
                if macs
            }
            logger.debug("Loaded %d port(s) from %s", len(self._entries), self.path)

    def record(self, port: str, macs: Iterable[str]) -> None:
        """Replace the MAC set of ``port``; an empty set removes the port."""
        with self._lock:
            self.load()
            normalized = {normalize_mac(m) for m in macs}
            if normalized:
                self._entries[port] = normalized
            else:
                self._entries.pop(port, None)
            logger.info("Recorded %d MAC(s) for port %s", len(normalized), port)
            self._persist()

    def remove_port(self, port: str) -> None:
        with self._lock:
            self.load()
            if self._entries.pop(port, None) is not None:
                logger.info("Removed port %s from port MAC log", port)
            self._persist()

    def remove_mac(self, mac: str, port: str) -> None:
        """Remove one MAC from ``port``; the port goes away with its last MAC."""
        with self._lock:
            self.load()
            macs = self._entries.get(port)
            if macs is not None:
                macs.discard(normalize_mac(mac))
                if not macs:
                    del self._entries[port]
            self._persist()

    def port_for_mac(self, mac: str) -> Optional[str]:
        """
        Port whose recorded set contains ``mac``, if any.

        A MAC is expected on at most one port; if several ports list it
        the lowest port key (string order) is returned.
        """
        with self._lock:
            self.load()
            wanted = normalize_mac(mac)
            for port in sorted(self._entries):
                if wanted in self._entries[port]:
                    return port
            return None

    def snapshot(self) -> Dict[str, List[str]]:
        with self._lock:
            self.load()
            return {port: sorted(self._entries[port]) for port in sorted(self._entries)}

    def _file_mode(self) -> int:
        try:
            return stat.S_IMODE(self.path.stat().st_mode)
        except FileNotFoundError:
            return _NEW_FILE_MODE

    def _persist(self) -> None:
        if not self._entries:
            try:
                self.path.unlink()
                logger.debug("Port MAC log empty, deleted %s", self.path)
            except FileNotFoundError:
                pass
            except OSError as exc:
                raise PortLogWriteError(self.path, exc) from exc
            return

        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.snapshot(), f, indent=2, sort_keys=True)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, self._file_mode())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PortLogWriteError(self.path, exc) from exc
