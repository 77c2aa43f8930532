"""
File-based counter storage.

Stores one JSON document per conversation in a caller-chosen directory.
Counters are not secret, but files are still written owner-only since the
conversation ids they reveal are.

## Storage Format

    {"send_counter": 7, "peer_last_counter": 4, "seen_counters": [0, 2, 4]}

Files are written to a temporary sibling and renamed into place, so a crash
mid-write leaves the previous state intact.
"""

import hashlib
import json
import os
from pathlib import Path
from typing import Optional, List, Union

from .counter_store import CounterStore
from ..state import CounterState
from ..types import StorageError


class FileCounterStore(CounterStore):
    """
    File-based counter storage.

    Example usage:
        ```python
        store = FileCounterStore("~/.emcipher/counters")
        session = ClientSession(params, seed, relay, store=store)
        ```
    """

    FILE_SUFFIX = ".json"

    def __init__(self, directory: Union[str, Path]) -> None:
        """
        Create a new file counter store.

        Args:
            directory: Directory holding the state files (created on demand).
        """
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        """The storage directory."""
        return self._directory

    def load(self, conv_id: str) -> Optional[CounterState]:
        """
        Load the state for a conversation.

        Raises:
            StorageError: If the stored file is corrupted.
        """
        file_path = self._state_file_path(conv_id)

        if not file_path.exists():
            return None

        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
            if data.get("conv_id") != conv_id:
                raise StorageError(f"State file does not belong to {conv_id}")
            return CounterState.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise StorageError(f"Corrupted counter state for {conv_id}") from e

    def save(self, conv_id: str, state: CounterState) -> None:
        """Persist the state for a conversation."""
        self._ensure_directory()
        file_path = self._state_file_path(conv_id)
        tmp_path = file_path.with_suffix(".tmp")

        data = state.to_dict()
        data["conv_id"] = conv_id

        try:
            tmp_path.write_text(json.dumps(data), encoding="utf-8")
            self._set_restrictive_permissions(tmp_path)
            os.replace(tmp_path, file_path)
        except OSError as e:
            raise StorageError(f"Failed to save counter state for {conv_id}") from e

    def delete(self, conv_id: str) -> None:
        """Delete the state for a conversation."""
        file_path = self._state_file_path(conv_id)

        if file_path.exists():
            file_path.unlink()

    def list_conversations(self) -> List[str]:
        """List all conversations with stored state."""
        if not self._directory.exists():
            return []

        conversations = []
        for f in self._directory.iterdir():
            if f.suffix != self.FILE_SUFFIX:
                continue
            try:
                conversations.append(json.loads(f.read_text(encoding="utf-8"))["conv_id"])
            except (OSError, ValueError, KeyError, TypeError):
                continue
        return conversations

    def _ensure_directory(self) -> Path:
        """Ensure the storage directory exists."""
        self._directory.mkdir(parents=True, exist_ok=True)
        try:
            self._directory.chmod(0o700)
        except OSError:
            pass  # Not supported on some platforms
        return self._directory

    def _state_file_path(self, conv_id: str) -> Path:
        """Return the file path for a conversation (ids are opaque, so hash them)."""
        name = hashlib.sha256(conv_id.encode("utf-8")).hexdigest()
        return self._directory / f"{name}{self.FILE_SUFFIX}"

    def _set_restrictive_permissions(self, file_path: Path) -> None:
        """Set restrictive file permissions (600 on Unix)."""
        try:
            file_path.chmod(0o600)
        except OSError:
            pass  # Not supported on some platforms
