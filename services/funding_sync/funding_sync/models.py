"""Domain models for funding snapshots and pipeline run results."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

POSITION_PATTERN = re.compile(r"^[A-Z]{2}-(SEN|\d{2})$")
PARTIES = frozenset({"R", "D"})


@dataclass(slots=True)
class PersonRecord:
    """One funded member of Congress within a state."""

    name: str
    position: str
    party: str
    lobby_total: int = 0
    organizations: frozenset[str] = frozenset()
    photo: Optional[str] = None
    next_election: Optional[str] = None
    running_for: Optional[str] = None

    def key(self) -> tuple[str, str]:
        """Return the unique (name, position) key."""
        return (self.name, self.position)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "photo": self.photo,
            "position": self.position,
            "party": self.party,
            "lobbyTotal": self.lobby_total,
            "organizations": sorted(self.organizations),
            "nextElection": self.next_election,
            "runningFor": self.running_for,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "PersonRecord":
        return cls(
            name=payload["name"],
            position=payload["position"],
            party=payload["party"],
            lobby_total=int(payload.get("lobbyTotal") or 0),
            organizations=frozenset(payload.get("organizations") or ()),
            photo=payload.get("photo") or None,
            next_election=payload.get("nextElection") or None,
            running_for=payload.get("runningFor") or None,
        )


@dataclass(slots=True)
class RegionRecord:
    """All records for one state. ``total_amount`` is owned by the aggregator."""

    records: List[PersonRecord] = field(default_factory=list)
    total_amount: int = 0

    def names(self) -> set[str]:
        return {record.name for record in self.records}

    def ensure_unique_records(self) -> None:
        """Keep one record per (name, position), the latest occurrence winning."""
        latest: dict[tuple[str, str], PersonRecord] = {}
        for record in self.records:
            latest[record.key()] = record
        self.records = list(latest.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalAmount": self.total_amount,
            "congresspeople": [record.to_dict() for record in self.records],
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "RegionRecord":
        return cls(
            records=[PersonRecord.from_dict(item) for item in payload.get("congresspeople") or []],
            total_amount=int(payload.get("totalAmount") or 0),
        )


@dataclass(frozen=True, slots=True)
class Stats:
    region_count: int
    record_count: int
    total_amount: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalStates": self.region_count,
            "totalCongresspeople": self.record_count,
            "totalMoney": self.total_amount,
        }


@dataclass(slots=True)
class Snapshot:
    """The full dataset as of one pipeline run."""

    retrieved_at: datetime
    source: str
    stats: Stats
    regions: Dict[str, RegionRecord] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastUpdated": _isoformat(self.retrieved_at),
            "source": self.source,
            **self.stats.to_dict(),
            "states": {name: region.to_dict() for name, region in self.regions.items()},
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Snapshot":
        return cls(
            retrieved_at=datetime.fromisoformat(payload["lastUpdated"].replace("Z", "+00:00")),
            source=payload.get("source", ""),
            stats=Stats(
                region_count=int(payload.get("totalStates") or 0),
                record_count=int(payload.get("totalCongresspeople") or 0),
                total_amount=int(payload.get("totalMoney") or 0),
            ),
            regions={
                name: RegionRecord.from_dict(region)
                for name, region in (payload.get("states") or {}).items()
            },
        )


@dataclass(frozen=True, slots=True)
class RecordChange:
    state: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {"state": self.state, "name": self.name}


@dataclass(frozen=True, slots=True)
class AmountChange:
    state: str
    old_amount: int
    new_amount: int

    @property
    def delta(self) -> int:
        return self.new_amount - self.old_amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "oldAmount": self.old_amount,
            "newAmount": self.new_amount,
            "delta": self.delta,
        }


@dataclass(slots=True)
class ChangeReport:
    new_records: List[RecordChange] = field(default_factory=list)
    removed_records: List[RecordChange] = field(default_factory=list)
    amount_changes: List[AmountChange] = field(default_factory=list)

    @property
    def total_delta(self) -> int:
        return sum(change.delta for change in self.amount_changes)

    def is_empty(self) -> bool:
        return not (self.new_records or self.removed_records or self.amount_changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "newCongresspeople": [change.to_dict() for change in self.new_records],
            "removedCongresspeople": [change.to_dict() for change in self.removed_records],
            "amountChanges": [change.to_dict() for change in self.amount_changes],
            "totalDelta": self.total_delta,
        }


@dataclass(slots=True)
class RunResult:
    """Outcome of one pipeline run, returned instead of raising."""

    success: bool
    timestamp: datetime
    trigger: str
    error: Optional[str] = None
    error_code: Optional[str] = None
    stats: Optional[Stats] = None
    changes: Optional[ChangeReport] = None
    committed: Optional[bool] = None
    publish_error: Optional[str] = None
    backup: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "trigger": self.trigger,
            "timestamp": _isoformat(self.timestamp),
        }
        if self.error is not None:
            payload["error"] = self.error
            payload["errorCode"] = self.error_code
        if self.stats is not None:
            payload["stats"] = self.stats.to_dict()
        if self.changes is not None:
            payload["changes"] = self.changes.to_dict()
        if self.committed is not None:
            payload["committed"] = self.committed
        if self.publish_error is not None:
            payload["publishError"] = self.publish_error
        if self.backup is not None:
            payload["backup"] = self.backup
        return payload


def _isoformat(moment: datetime) -> str:
    text = moment.isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")
