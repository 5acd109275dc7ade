"""Storage instructions SLOAD and SSTORE with their gas schedules."""

from __future__ import annotations

from dataclasses import dataclass

from .state import AccessStatus, ExecutionState, Stack, StatusCode, StorageStatus
from .traits import COLD_SLOAD_COST, WARM_STORAGE_READ_COST, Revision

# Gas that must remain for SSTORE to run since Istanbul (EIP-2200).
_SSTORE_STIPEND = 2300


@dataclass(frozen=True)
class StorageCostSpec:
    """Gas parameters of storage writes in one revision."""

    net_cost: bool
    warm_access: int
    set: int
    reset: int
    clear: int


@dataclass(frozen=True)
class StoreCost:
    """Gas charged and refund granted for one SSTORE outcome."""

    gas_cost: int
    gas_refund: int


def _build_specs() -> dict[Revision, StorageCostSpec]:
    R = Revision
    legacy = StorageCostSpec(False, 200, 20000, 5000, 15000)
    specs = {
        rev: legacy
        for rev in (
            R.FRONTIER, R.HOMESTEAD, R.TANGERINE_WHISTLE, R.SPURIOUS_DRAGON,
            R.BYZANTIUM, R.PETERSBURG,
        )
    }
    specs[R.CONSTANTINOPLE] = StorageCostSpec(True, 200, 20000, 5000, 15000)
    specs[R.ISTANBUL] = StorageCostSpec(True, 800, 20000, 5000, 15000)
    specs[R.BERLIN] = StorageCostSpec(
        True, WARM_STORAGE_READ_COST, 20000, 5000 - COLD_SLOAD_COST, 15000
    )
    london = StorageCostSpec(
        True, WARM_STORAGE_READ_COST, 20000, 5000 - COLD_SLOAD_COST, 4800
    )
    for rev in (R.LONDON, R.PARIS, R.SHANGHAI, R.CANCUN):
        specs[rev] = london
    return specs


_SPECS = _build_specs()


def _build_costs(c: StorageCostSpec) -> dict[StorageStatus, StoreCost]:
    S = StorageStatus
    added = StoreCost(c.set, 0)
    deleted = StoreCost(c.reset, c.clear)
    modified = StoreCost(c.reset, 0)
    if not c.net_cost:
        return {
            S.ADDED: added,
            S.DELETED: deleted,
            S.MODIFIED: modified,
            S.ASSIGNED: modified,
            S.DELETED_ADDED: added,
            S.MODIFIED_DELETED: deleted,
            S.DELETED_RESTORED: added,
            S.ADDED_DELETED: deleted,
            S.MODIFIED_RESTORED: modified,
        }
    return {
        S.ASSIGNED: StoreCost(c.warm_access, 0),
        S.ADDED: added,
        S.DELETED: deleted,
        S.MODIFIED: modified,
        S.DELETED_ADDED: StoreCost(c.warm_access, -c.clear),
        S.MODIFIED_DELETED: StoreCost(c.warm_access, c.clear),
        S.DELETED_RESTORED: StoreCost(c.warm_access, c.reset - c.warm_access - c.clear),
        S.ADDED_DELETED: StoreCost(c.warm_access, c.set - c.warm_access),
        S.MODIFIED_RESTORED: StoreCost(c.warm_access, c.reset - c.warm_access),
    }


_SSTORE_COSTS = {rev: _build_costs(spec) for rev, spec in _SPECS.items()}


def storage_cost_spec(rev: int) -> StorageCostSpec:
    """Return the storage gas parameters of ``rev``."""
    return _SPECS[Revision(rev)]


def sstore_cost(rev: int, status: int) -> StoreCost:
    """Return the warm cost and refund of an SSTORE with the given outcome."""
    return _SSTORE_COSTS[Revision(rev)][StorageStatus(status)]


def sload(stack: Stack, state: ExecutionState) -> StatusCode:
    """Replace the key on top of the stack with the stored value."""
    key = stack.top()
    recipient = state.msg.recipient
    if (
        state.rev >= Revision.BERLIN
        and state.host.access_storage(recipient, key) is AccessStatus.COLD
    ):
        # The warm cost is part of the base cost; only the difference is charged here.
        state.gas_left -= COLD_SLOAD_COST - WARM_STORAGE_READ_COST
        if state.gas_left < 0:
            return StatusCode.OUT_OF_GAS
    stack.set_top(state.host.get_storage(recipient, key))
    return StatusCode.SUCCESS


def sstore(stack: Stack, state: ExecutionState) -> StatusCode:
    """Pop a key and a value and write the value to storage."""
    if state.in_static_mode():
        return StatusCode.STATIC_MODE_VIOLATION
    if state.rev >= Revision.ISTANBUL and state.gas_left <= _SSTORE_STIPEND:
        return StatusCode.OUT_OF_GAS

    key = stack.pop()
    value = stack.pop()
    recipient = state.msg.recipient

    cold_cost = (
        COLD_SLOAD_COST
        if state.rev >= Revision.BERLIN
        and state.host.access_storage(recipient, key) is AccessStatus.COLD
        else 0
    )
    status = state.host.set_storage(recipient, key, value)
    cost = sstore_cost(state.rev, status)
    state.gas_left -= cost.gas_cost + cold_cost
    if state.gas_left < 0:
        return StatusCode.OUT_OF_GAS
    state.gas_refund += cost.gas_refund
    return StatusCode.SUCCESS