"""
Operation Journal Module

Hash-chained, append-only record of every operation applied to the ledger,
with SHA-256 for tamper detection. Entries are written before the ledger
applies the change, so replaying the journal in sequence order reproduces
the ledger state.
"""

import hashlib
import json
import threading
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
import uuid

from .events import LedgerEvent, event_from_dict
from .storage import StorageInterface


@dataclass
class JournalEntry:
    """
    Immutable journal entry with hash chaining for tamper detection
    """
    id: str
    sequence: int
    created_at: datetime
    event: Dict[str, Any]  # LedgerEvent.to_dict() form
    previous_hash: str
    current_hash: str
    caller: Optional[str] = None

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this entry
        Hash includes all fields except current_hash to prevent circular reference
        """
        hash_data = {
            'id': self.id,
            'sequence': self.sequence,
            'created_at': self.created_at.isoformat(),
            'event': self.event,
            'previous_hash': self.previous_hash,
            'caller': self.caller
        }

        # Create deterministic JSON string
        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        """Verify that the current hash is correct"""
        return self.current_hash == self.calculate_hash()

    def to_event(self) -> LedgerEvent:
        """Rebuild the ledger event record"""
        return event_from_dict(self.event)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'sequence': self.sequence,
            'created_at': self.created_at.isoformat(),
            'event': self.event,
            'previous_hash': self.previous_hash,
            'current_hash': self.current_hash,
            'caller': self.caller
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'JournalEntry':
        return cls(
            id=data['id'],
            sequence=data['sequence'],
            created_at=datetime.fromisoformat(data['created_at']),
            event=data['event'],
            previous_hash=data['previous_hash'],
            current_hash=data['current_hash'],
            caller=data.get('caller')
        )


class OperationJournal:
    """
    Append-only, hash-chained journal of ledger operations
    """

    def __init__(self, storage: StorageInterface, table_name: str = "ledger_journal"):
        self.storage = storage
        self.table_name = table_name
        self._lock = threading.Lock()
        self._last_hash = ""
        self._next_sequence = 0
        self._load_tail()

    def _load_tail(self) -> None:
        """Resume the chain from the most recent stored entry"""
        entries = self.entries()
        if entries:
            self._last_hash = entries[-1].current_hash
            self._next_sequence = entries[-1].sequence + 1

    def append(self, event: LedgerEvent, caller: Optional[str] = None) -> JournalEntry:
        """
        Append an operation to the journal

        Args:
            event: Event record of the operation about to be applied
            caller: Identity that requested the operation

        Returns:
            Stored JournalEntry
        """
        with self._lock:
            entry = JournalEntry(
                id=str(uuid.uuid4()),
                sequence=self._next_sequence,
                created_at=datetime.now(timezone.utc),
                event=event.to_dict(),
                previous_hash=self._last_hash,
                current_hash="",
                caller=caller
            )
            entry.current_hash = entry.calculate_hash()

            with self.storage.atomic():
                self.storage.append(self.table_name, entry.id, entry.to_dict())

            # Advance the chain only once the write succeeded
            self._last_hash = entry.current_hash
            self._next_sequence += 1
            return entry

    def entries(self) -> List[JournalEntry]:
        """All entries in sequence order"""
        entries = [JournalEntry.from_dict(data) for data in self.storage.load_all(self.table_name)]
        entries.sort(key=lambda e: e.sequence)
        return entries

    def entries_for_account(self, account: str) -> List[JournalEntry]:
        """Entries touching an account as holder, sender or recipient"""
        return [
            e for e in self.entries()
            if account in (e.event.get('account'), e.event.get('from'), e.event.get('to'))
        ]

    def count_entries(self) -> int:
        return self.storage.count(self.table_name)

    def get_latest_hash(self) -> str:
        """Hash of the most recent entry, empty string for an empty journal"""
        return self._last_hash

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire journal chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_entries': 0,
            'hash_errors': [],
            'chain_breaks': [],
            'sequence_gaps': []
        }

        entries = self.entries()
        result['total_entries'] = len(entries)

        previous_hash = ""
        for position, entry in enumerate(entries):
            if not entry.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'entry_id': entry.id,
                    'position': position,
                    'expected_hash': entry.calculate_hash(),
                    'actual_hash': entry.current_hash
                })
            if entry.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'entry_id': entry.id,
                    'position': position,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': entry.previous_hash
                })
            if entry.sequence != position:
                result['valid'] = False
                result['sequence_gaps'].append({
                    'entry_id': entry.id,
                    'position': position,
                    'sequence': entry.sequence
                })
            previous_hash = entry.current_hash

        return result
