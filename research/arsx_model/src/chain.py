"""Simulated host chain: clock, contract registry, events and atomic transactions.

Every contract keeps its mutable data in a ``state`` dataclass holding plain
values only. A transaction snapshots the state of every registered contract
on entry and restores all of them if anything raises, so a failing call
leaves no partial effect behind, including in collaborator ledgers.
"""
import copy
import functools
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .errors import ReentrancyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """An emitted event, committed only with its transaction"""
    name: str
    args: Dict[str, Any]
    timestamp: int


class Contract:
    """Base for every object deployed on a Chain"""

    def __init__(self, chain: "Chain", state: Any):
        self.chain = chain
        self.state = state
        self.address = chain.register(self)

    def emit(self, name: str, **args: Any) -> None:
        self.chain.emit(name, **args)


@dataclass
class _PendingTransaction:
    snapshots: Dict[str, Any]
    events: List[Event] = field(default_factory=list)


class Chain:
    """Sequential host execution environment"""

    def __init__(self, timestamp: Optional[int] = None):
        self.timestamp = int(time.time()) if timestamp is None else timestamp
        self.contracts: Dict[str, Contract] = {}
        self.log: List[Event] = []
        self._pending: Optional[_PendingTransaction] = None

    def register(self, contract: Contract) -> str:
        address = f"0x{len(self.contracts) + 1:040x}"
        self.contracts[address] = contract
        logger.debug("Registered %s at %s", type(contract).__name__, address)
        return address

    def get(self, address: str) -> Contract:
        return self.contracts[address]

    # Clock

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        self.timestamp += seconds
        return self.timestamp

    def warp(self, timestamp: int) -> int:
        if timestamp < self.timestamp:
            raise ValueError("cannot move the clock backwards")
        self.timestamp = timestamp
        return self.timestamp

    # Transactions

    @property
    def in_transaction(self) -> bool:
        return self._pending is not None

    @contextmanager
    def transaction(self) -> Iterator["Chain"]:
        """All-or-nothing scope; nested scopes join the outermost one"""
        if self._pending is not None:
            yield self
            return

        pending = _PendingTransaction(
            snapshots={
                address: copy.deepcopy(contract.state)
                for address, contract in self.contracts.items()
            }
        )
        self._pending = pending
        try:
            yield self
        except Exception as e:
            for address, snapshot in pending.snapshots.items():
                self.contracts[address].state = snapshot
            logger.warning("Transaction reverted: %s: %s", type(e).__name__, e)
            raise
        finally:
            self._pending = None
        self.log.extend(pending.events)

    def emit(self, name: str, **args: Any) -> None:
        event = Event(name=name, args=args, timestamp=self.timestamp)
        if self._pending is None:
            self.log.append(event)
        else:
            self._pending.events.append(event)

    def events(self, name: Optional[str] = None) -> List[Event]:
        if name is None:
            return list(self.log)
        return [event for event in self.log if event.name == name]


def transactional(method):
    """Run a contract entry point inside the chain's transaction scope"""

    @functools.wraps(method)
    def wrapper(self: Contract, *args, **kwargs):
        with self.chain.transaction():
            return method(self, *args, **kwargs)

    return wrapper


def non_reentrant(method):
    """Refuse nested calls into any guarded entry point of the same contract"""

    @functools.wraps(method)
    def wrapper(self: Contract, *args, **kwargs):
        if getattr(self, "_entered", False):
            raise ReentrancyError(f"reentrant call to {type(self).__name__}.{method.__name__}")
        self._entered = True
        try:
            return method(self, *args, **kwargs)
        finally:
            self._entered = False

    return wrapper
