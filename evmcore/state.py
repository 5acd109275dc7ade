"""Execution state, host interface and the data types they exchange."""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Iterator

from .traits import MAX_REVISION, Revision

WORD_MASK = (1 << 256) - 1
ADDRESS_SIZE = 20
ZERO_ADDRESS = bytes(ADDRESS_SIZE)
# The largest memory offset or size an instruction may request.
MAX_BUFFER_SIZE = 0xFFFFFFFF
# EIP-2681: the nonce may not reach this value.
MAX_NONCE = (1 << 64) - 1


class StatusCode(IntEnum):
    """Outcome of executing an instruction, a call or a whole message."""

    INTERNAL_ERROR = -1
    REJECTED = -2
    OUT_OF_MEMORY = -3
    SUCCESS = 0
    FAILURE = 1
    REVERT = 2
    OUT_OF_GAS = 3
    INVALID_INSTRUCTION = 4
    UNDEFINED_INSTRUCTION = 5
    STACK_OVERFLOW = 6
    STACK_UNDERFLOW = 7
    BAD_JUMP_DESTINATION = 8
    INVALID_MEMORY_ACCESS = 9
    CALL_DEPTH_EXCEEDED = 10
    STATIC_MODE_VIOLATION = 11
    PRECOMPILE_FAILURE = 12
    CONTRACT_VALIDATION_FAILURE = 13
    ARGUMENT_OUT_OF_RANGE = 14


class AccessStatus(IntEnum):
    """EIP-2929 access status of an account or a storage slot."""

    COLD = 0
    WARM = 1


class StorageStatus(IntEnum):
    """Effect of a storage write, as classified by EIP-2200."""

    ASSIGNED = 0
    ADDED = 1
    DELETED = 2
    MODIFIED = 3
    DELETED_ADDED = 4
    MODIFIED_DELETED = 5
    DELETED_RESTORED = 6
    ADDED_DELETED = 7
    MODIFIED_RESTORED = 8


class CallKind(IntEnum):
    """Kind of a message sent to the host."""

    CALL = 0
    DELEGATECALL = 1
    CALLCODE = 2
    CREATE = 3
    CREATE2 = 4


def _check_word(value: int) -> int:
    value = operator.index(value)
    if not 0 <= value <= WORD_MASK:
        raise ValueError(f"value does not fit in 256 bits: {value}")
    return value


def _check_address(address: bytes) -> bytes:
    address = bytes(address)
    if len(address) != ADDRESS_SIZE:
        raise ValueError(f"address must be {ADDRESS_SIZE} bytes, got {len(address)}")
    return address


@dataclass(frozen=True)
class Message:
    """A call or create request passed between frames."""

    kind: CallKind = CallKind.CALL
    is_static: bool = False
    depth: int = 0
    gas: int = 0
    recipient: bytes = ZERO_ADDRESS
    sender: bytes = ZERO_ADDRESS
    input_data: bytes = b""
    value: int = 0
    create2_salt: int = 0
    code_address: bytes = ZERO_ADDRESS


@dataclass(frozen=True)
class Result:
    """Outcome of a message execution as reported by the host."""

    status_code: StatusCode = StatusCode.SUCCESS
    gas_left: int = 0
    gas_refund: int = 0
    output: bytes = b""
    create_address: bytes = ZERO_ADDRESS


@dataclass
class _Slot:
    current: int = 0
    original: int = 0


@dataclass
class _Account:
    balance: int = 0
    nonce: int = 0
    storage: dict[int, _Slot] = field(default_factory=dict)


def _classify_store(original: int, current: int, value: int) -> StorageStatus:
    if current == value:
        return StorageStatus.ASSIGNED
    if original == current:
        if original == 0:
            return StorageStatus.ADDED
        return StorageStatus.DELETED if value == 0 else StorageStatus.MODIFIED
    # The slot is dirty.
    if original != 0:
        if current == 0:
            return (
                StorageStatus.DELETED_RESTORED
                if value == original
                else StorageStatus.DELETED_ADDED
            )
        if value == 0:
            return StorageStatus.MODIFIED_DELETED
        if value == original:
            return StorageStatus.MODIFIED_RESTORED
        return StorageStatus.ASSIGNED
    return StorageStatus.ADDED_DELETED if value == 0 else StorageStatus.ASSIGNED


class Host:
    """In-memory world state that answers the queries of executing code.

    Calls are not executed: every message is recorded and answered with
    ``call_result``.
    """

    def __init__(self) -> None:
        self._accounts: dict[bytes, _Account] = {}
        self._warm_accounts: set[bytes] = set()
        self._warm_slots: set[tuple[bytes, int]] = set()
        self.call_result = Result()
        self.recorded_calls: list[Message] = []
        self.recorded_account_accesses: list[bytes] = []

    def add_account(
        self,
        address: bytes,
        *,
        balance: int = 0,
        nonce: int = 0,
        storage: dict[int, int] | None = None,
    ) -> None:
        """Create or replace an account; ``storage`` becomes its original values."""
        slots = {
            _check_word(k): _Slot(_check_word(v), _check_word(v))
            for k, v in (storage or {}).items()
        }
        self._accounts[_check_address(address)] = _Account(
            _check_word(balance), operator.index(nonce), slots
        )

    def _account(self, address: bytes) -> _Account:
        return self._accounts.setdefault(_check_address(address), _Account())

    def account_exists(self, address: bytes) -> bool:
        address = _check_address(address)
        self.recorded_account_accesses.append(address)
        return address in self._accounts

    def access_account(self, address: bytes) -> AccessStatus:
        """Mark the account warm and report its status before the access."""
        address = _check_address(address)
        self.recorded_account_accesses.append(address)
        if address in self._warm_accounts:
            return AccessStatus.WARM
        self._warm_accounts.add(address)
        return AccessStatus.COLD

    def get_balance(self, address: bytes) -> int:
        address = _check_address(address)
        self.recorded_account_accesses.append(address)
        account = self._accounts.get(address)
        return account.balance if account else 0

    def check_nonce(self, address: bytes) -> bool:
        """Tell whether the account's nonce may still be incremented."""
        account = self._accounts.get(_check_address(address))
        return (account.nonce if account else 0) < MAX_NONCE

    def access_storage(self, address: bytes, key: int) -> AccessStatus:
        """Mark the slot warm and report its status before the access."""
        slot = (_check_address(address), _check_word(key))
        if slot in self._warm_slots:
            return AccessStatus.WARM
        self._warm_slots.add(slot)
        return AccessStatus.COLD

    def get_storage(self, address: bytes, key: int) -> int:
        account = self._accounts.get(_check_address(address))
        if account is None:
            return 0
        slot = account.storage.get(_check_word(key))
        return slot.current if slot else 0

    def set_storage(self, address: bytes, key: int, value: int) -> StorageStatus:
        """Write the slot and classify the change against its original value."""
        slot = self._account(address).storage.setdefault(_check_word(key), _Slot())
        value = _check_word(value)
        status = _classify_store(slot.original, slot.current, value)
        slot.current = value
        return status

    def call(self, msg: Message) -> Result:
        self.recorded_calls.append(msg)
        return self.call_result


class Stack:
    """The EVM operand stack of 256-bit words; iteration runs bottom to top."""

    def __init__(self, items: Iterable[int] = ()) -> None:
        self._items = [_check_word(v) for v in items]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[int]:
        return iter(self._items)

    def __repr__(self) -> str:
        return f"Stack({self._items!r})"

    def push(self, value: int) -> None:
        self._items.append(_check_word(value))

    def pop(self) -> int:
        if not self._items:
            raise IndexError("stack underflow")
        return self._items.pop()

    def top(self) -> int:
        if not self._items:
            raise IndexError("stack underflow")
        return self._items[-1]

    def set_top(self, value: int) -> None:
        if not self._items:
            raise IndexError("stack underflow")
        self._items[-1] = _check_word(value)


def _memory_cost(words: int) -> int:
    return 3 * words + words * words // 512


@dataclass
class ExecutionState:
    """The mutable state of one executing frame."""

    msg: Message = field(default_factory=Message)
    host: Host = field(default_factory=Host)
    rev: Revision = MAX_REVISION
    gas_left: int | None = None
    gas_refund: int = 0
    memory: bytearray = field(default_factory=bytearray)
    return_data: bytes = b""

    def __post_init__(self) -> None:
        self.rev = Revision(self.rev)
        if self.gas_left is None:
            self.gas_left = self.msg.gas

    def in_static_mode(self) -> bool:
        return self.msg.is_static

    def check_memory(self, offset: int, size: int) -> bool:
        """Grow memory to cover ``[offset, offset + size)``, charging gas.

        Returns False when the region is too large or gas runs out.
        """
        if size == 0:
            return True
        if size > MAX_BUFFER_SIZE or offset > MAX_BUFFER_SIZE:
            return False
        new_size = offset + size
        if new_size <= len(self.memory):
            return True
        new_words = (new_size + 31) // 32
        current_words = len(self.memory) // 32
        self.gas_left -= _memory_cost(new_words) - _memory_cost(current_words)
        if self.gas_left < 0:
            return False
        self.memory.extend(bytes(new_words * 32 - len(self.memory)))
        return True