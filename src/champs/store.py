"""
YAML snapshot of one championships: pairs, pool matches and knockout matches.
"""
import logging
import os
import tempfile
from contextlib import contextmanager

import yaml
from filelock import FileLock

from champs.models import Entrant, KnockoutMatch, PoolMatch

logger = logging.getLogger(__name__)

SNAPSHOT_FILE = 'snapshot.yaml'
LOCK_FILE = '.lock'


class Snapshot:
    """Everything the engine needs, read in one go."""

    def __init__(self, entrants=None, pool_matches=None, knockout_matches=None):
        self.entrants = entrants if entrants else []
        self.pool_matches = pool_matches if pool_matches else []
        self.knockout_matches = knockout_matches if knockout_matches else []

    def event_entrants(self, event):
        return [e for e in self.entrants if e.event == event]

    def event_pool_matches(self, event):
        return sorted((m for m in self.pool_matches if m.event == event),
                      key=lambda m: (m.pool_number, m.match_order))

    def event_knockout_matches(self, event):
        return sorted((m for m in self.knockout_matches if m.event == event),
                      key=lambda m: (m.stage, m.match_order))

    def replace_pool_matches(self, event, fixtures):
        self.pool_matches = [m for m in self.pool_matches if m.event != event] + list(fixtures)

    def replace_knockout_matches(self, event, matches):
        self.knockout_matches = [m for m in self.knockout_matches if m.event != event] + list(matches)

    def apply(self, records, mutations):
        """Apply `{'id': ..., field: value}` mutations to `records` in place."""
        by_id = {r.id: r for r in records}
        for mutation in mutations:
            record = by_id[mutation['id']]
            for field, value in mutation.items():
                if field != 'id':
                    setattr(record, field, value)

    def to_dict(self):
        return {
            'entrants': [e.to_dict() for e in self.entrants],
            'pool_matches': [m.to_dict() for m in self.pool_matches],
            'knockout_matches': [m.to_dict() for m in self.knockout_matches],
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            entrants=[Entrant.from_dict(d) for d in data.get('entrants') or []],
            pool_matches=[PoolMatch.from_dict(d) for d in data.get('pool_matches') or []],
            knockout_matches=[KnockoutMatch.from_dict(d) for d in data.get('knockout_matches') or []],
        )


class SnapshotStore:
    def __init__(self, data_dir, lock_timeout=10):
        self.data_dir = data_dir
        self.path = os.path.join(data_dir, SNAPSHOT_FILE)
        self.lock = FileLock(os.path.join(data_dir, LOCK_FILE), timeout=lock_timeout)

    def _load(self):
        if not os.path.exists(self.path):
            return Snapshot()
        with open(self.path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        return Snapshot.from_dict(data)

    def _write(self, snapshot):
        fd, temp_path = tempfile.mkstemp(dir=self.data_dir, prefix='.snapshot-', suffix='.yaml')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                yaml.dump(snapshot.to_dict(), f, default_flow_style=False, sort_keys=False)
            os.replace(temp_path, self.path)
        except BaseException:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

    def read(self) -> Snapshot:
        os.makedirs(self.data_dir, exist_ok=True)
        with self.lock:
            return self._load()

    @contextmanager
    def transaction(self):
        """
        Hold the lock for a read-modify-write. The snapshot is written back only
        when the block finishes without raising.
        """
        os.makedirs(self.data_dir, exist_ok=True)
        with self.lock:
            snapshot = self._load()
            yield snapshot
            self._write(snapshot)
            logger.debug("wrote %s", self.path)
