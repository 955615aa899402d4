"""
Conversation store: per-user interaction log backed by a JSON file.

The whole table lives in memory and is rewritten to disk on every mutation,
so there is nothing to flush on shutdown. The file maps user id to the list
of that user's most recent interactions, oldest first.
"""

import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from calendar_bot.agents.schemas import Interaction
from calendar_bot.errors import PersistenceError
from calendar_bot.logging_config import get_logger

logger = get_logger("store")

MAX_INTERACTIONS_PER_USER = 50
INTERACTIONS_FILE = "interactions.json"

_table_adapter = TypeAdapter(dict[int, list[Interaction]])


@dataclass
class UserStats:
    total_interactions: int = 0
    first_interaction: Optional[datetime] = None
    last_interaction: Optional[datetime] = None
    actions_used: dict[str, int] = field(default_factory=dict)


class _ReadWriteLock:
    """Many readers or one writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self):
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class ConversationStore:
    """Append-only interaction log, trimmed to the last 50 entries per user."""

    def __init__(self, data_dir: str, max_per_user: int = MAX_INTERACTIONS_PER_USER):
        self.data_dir = Path(data_dir)
        self.file_path = self.data_dir / INTERACTIONS_FILE
        self.max_per_user = max_per_user
        self._lock = _ReadWriteLock()
        self._interactions: dict[int, list[Interaction]] = {}

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"failed to create data directory {self.data_dir}: {e}") from e

        self._load()

    # =========================================================================
    # WRITES
    # =========================================================================

    def append(self, user_id: int, user_message: str, ai_response: str, action: str) -> Interaction:
        """
        Store a new interaction and persist the table.

        Raises PersistenceError if the file write fails. The interaction is
        kept in memory either way.
        """
        interaction = Interaction(
            user_id=user_id,
            timestamp=datetime.now(timezone.utc),
            user_message=user_message,
            ai_response=ai_response,
            action=action,
        )

        with self._lock.write():
            history = self._interactions.setdefault(user_id, [])
            history.append(interaction)
            if len(history) > self.max_per_user:
                del history[:len(history) - self.max_per_user]

            logger.debug(f"Saving {len(history)} interactions for user {user_id}")
            self._save()

        return interaction

    def cleanup(self, max_age: timedelta) -> int:
        """Remove interactions older than max_age for every user. Returns the removed count."""
        cutoff = datetime.now(timezone.utc) - max_age
        total_removed = 0

        with self._lock.write():
            for user_id in list(self._interactions):
                kept = [i for i in self._interactions[user_id] if i.timestamp > cutoff]
                total_removed += len(self._interactions[user_id]) - len(kept)
                if kept:
                    self._interactions[user_id] = kept
                else:
                    del self._interactions[user_id]

            logger.info(f"Cleaned up {total_removed} old interactions")
            self._save()

        return total_removed

    # =========================================================================
    # READS
    # =========================================================================

    def get_recent(self, user_id: int, limit: int = 0) -> list[Interaction]:
        """Last `limit` interactions, oldest first. limit <= 0 returns all."""
        with self._lock.read():
            history = self._interactions.get(user_id, [])
            if limit > 0:
                return list(history[-limit:])
            return list(history)

    def get_context(self, user_id: int, message_count: int) -> str:
        """Recent dialogue as alternating User:/AI: lines for the classifier prompt."""
        interactions = self.get_recent(user_id, message_count)
        return "".join(
            f"User: {i.user_message}\nAI: {i.ai_response}\n\n" for i in interactions
        )

    def stats(self, user_id: int) -> UserStats:
        interactions = self.get_recent(user_id)
        stats = UserStats(total_interactions=len(interactions))
        if not interactions:
            return stats

        stats.first_interaction = interactions[0].timestamp
        stats.last_interaction = interactions[-1].timestamp
        for interaction in interactions:
            if interaction.action:
                stats.actions_used[interaction.action] = stats.actions_used.get(interaction.action, 0) + 1
        return stats

    def backup(self, backup_path: str) -> None:
        """Write a snapshot of the whole table to another file."""
        with self._lock.read():
            data = self._dump()
        try:
            Path(backup_path).write_bytes(data)
        except OSError as e:
            raise PersistenceError(f"failed to write backup file: {e}") from e

    # =========================================================================
    # DISK
    # =========================================================================

    def _load(self) -> None:
        """Best-effort load: a missing or broken file leaves the store empty."""
        try:
            data = self.file_path.read_bytes()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.warning(f"Could not read interactions file {self.file_path}: {e}")
            return

        if not data.strip():
            return

        try:
            self._interactions = _table_adapter.validate_json(data)
        except ValidationError as e:
            logger.warning(f"Could not load existing interactions, starting empty: {e}")
            self._interactions = {}
            return

        logger.info(f"Loaded interactions for {len(self._interactions)} users from {self.file_path}")

    def _dump(self) -> bytes:
        return _table_adapter.dump_json(self._interactions, indent=2)

    def _save(self) -> None:
        # Caller holds the write lock
        tmp_path = self.file_path.with_suffix(".json.tmp")
        try:
            tmp_path.write_bytes(self._dump())
            os.replace(tmp_path, self.file_path)
        except OSError as e:
            raise PersistenceError(f"failed to write interactions file: {e}") from e


def load_interactions_file(path: str) -> dict[int, list[Interaction]]:
    """Read an interactions file (or backup) without constructing a store."""
    return _table_adapter.validate_json(Path(path).read_bytes())
