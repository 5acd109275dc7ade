"""Opcode definitions, per-revision gas costs and instruction traits."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from enum import IntEnum


class Revision(IntEnum):
    """EVM specification revisions, in chronological order."""

    FRONTIER = 0
    HOMESTEAD = 1
    TANGERINE_WHISTLE = 2
    SPURIOUS_DRAGON = 3
    BYZANTIUM = 4
    CONSTANTINOPLE = 5
    PETERSBURG = 6
    ISTANBUL = 7
    BERLIN = 8
    LONDON = 9
    PARIS = 10
    SHANGHAI = 11
    CANCUN = 12


MAX_REVISION = Revision.CANCUN


class Opcode(IntEnum):
    """EVM instruction opcodes."""

    STOP = 0x00
    ADD = 0x01
    MUL = 0x02
    SUB = 0x03
    DIV = 0x04
    SDIV = 0x05
    MOD = 0x06
    SMOD = 0x07
    ADDMOD = 0x08
    MULMOD = 0x09
    EXP = 0x0A
    SIGNEXTEND = 0x0B

    LT = 0x10
    GT = 0x11
    SLT = 0x12
    SGT = 0x13
    EQ = 0x14
    ISZERO = 0x15
    AND = 0x16
    OR = 0x17
    XOR = 0x18
    NOT = 0x19
    BYTE = 0x1A
    SHL = 0x1B
    SHR = 0x1C
    SAR = 0x1D

    KECCAK256 = 0x20

    ADDRESS = 0x30
    BALANCE = 0x31
    ORIGIN = 0x32
    CALLER = 0x33
    CALLVALUE = 0x34
    CALLDATALOAD = 0x35
    CALLDATASIZE = 0x36
    CALLDATACOPY = 0x37
    CODESIZE = 0x38
    CODECOPY = 0x39
    GASPRICE = 0x3A
    EXTCODESIZE = 0x3B
    EXTCODECOPY = 0x3C
    RETURNDATASIZE = 0x3D
    RETURNDATACOPY = 0x3E
    EXTCODEHASH = 0x3F

    BLOCKHASH = 0x40
    COINBASE = 0x41
    TIMESTAMP = 0x42
    NUMBER = 0x43
    PREVRANDAO = 0x44
    GASLIMIT = 0x45
    CHAINID = 0x46
    SELFBALANCE = 0x47
    BASEFEE = 0x48

    POP = 0x50
    MLOAD = 0x51
    MSTORE = 0x52
    MSTORE8 = 0x53
    SLOAD = 0x54
    SSTORE = 0x55
    JUMP = 0x56
    JUMPI = 0x57
    PC = 0x58
    MSIZE = 0x59
    GAS = 0x5A
    JUMPDEST = 0x5B

    PUSH0 = 0x5F
    PUSH1 = 0x60
    PUSH2 = 0x61
    PUSH3 = 0x62
    PUSH4 = 0x63
    PUSH5 = 0x64
    PUSH6 = 0x65
    PUSH7 = 0x66
    PUSH8 = 0x67
    PUSH9 = 0x68
    PUSH10 = 0x69
    PUSH11 = 0x6A
    PUSH12 = 0x6B
    PUSH13 = 0x6C
    PUSH14 = 0x6D
    PUSH15 = 0x6E
    PUSH16 = 0x6F
    PUSH17 = 0x70
    PUSH18 = 0x71
    PUSH19 = 0x72
    PUSH20 = 0x73
    PUSH21 = 0x74
    PUSH22 = 0x75
    PUSH23 = 0x76
    PUSH24 = 0x77
    PUSH25 = 0x78
    PUSH26 = 0x79
    PUSH27 = 0x7A
    PUSH28 = 0x7B
    PUSH29 = 0x7C
    PUSH30 = 0x7D
    PUSH31 = 0x7E
    PUSH32 = 0x7F

    DUP1 = 0x80
    DUP2 = 0x81
    DUP3 = 0x82
    DUP4 = 0x83
    DUP5 = 0x84
    DUP6 = 0x85
    DUP7 = 0x86
    DUP8 = 0x87
    DUP9 = 0x88
    DUP10 = 0x89
    DUP11 = 0x8A
    DUP12 = 0x8B
    DUP13 = 0x8C
    DUP14 = 0x8D
    DUP15 = 0x8E
    DUP16 = 0x8F

    SWAP1 = 0x90
    SWAP2 = 0x91
    SWAP3 = 0x92
    SWAP4 = 0x93
    SWAP5 = 0x94
    SWAP6 = 0x95
    SWAP7 = 0x96
    SWAP8 = 0x97
    SWAP9 = 0x98
    SWAP10 = 0x99
    SWAP11 = 0x9A
    SWAP12 = 0x9B
    SWAP13 = 0x9C
    SWAP14 = 0x9D
    SWAP15 = 0x9E
    SWAP16 = 0x9F

    LOG0 = 0xA0
    LOG1 = 0xA1
    LOG2 = 0xA2
    LOG3 = 0xA3
    LOG4 = 0xA4

    CREATE = 0xF0
    CALL = 0xF1
    CALLCODE = 0xF2
    RETURN = 0xF3
    DELEGATECALL = 0xF4
    CREATE2 = 0xF5
    STATICCALL = 0xFA
    REVERT = 0xFD
    INVALID = 0xFE
    SELFDESTRUCT = 0xFF


# The special gas cost value marking an instruction as undefined in a revision.
UNDEFINED = -1

# EIP-2929 constants.
COLD_SLOAD_COST = 2100
COLD_ACCOUNT_ACCESS_COST = 2600
WARM_STORAGE_READ_COST = 100
# Applied on top of the warm access cost when an account access turns out cold.
ADDITIONAL_COLD_ACCOUNT_ACCESS_COST = COLD_ACCOUNT_ACCESS_COST - WARM_STORAGE_READ_COST


@dataclass(frozen=True)
class Traits:
    """Revision-independent properties of an instruction.

    ``name`` is None for opcodes that no revision defines; ``since`` is the
    revision that introduced the instruction.
    """

    name: str | None = None
    immediate_size: int = 0
    is_terminating: bool = False
    stack_height_required: int = 0
    stack_height_change: int = 0
    since: Revision | None = None


def _check_opcode(op: int) -> int:
    value = operator.index(op)
    if not 0 <= value <= 0xFF:
        raise ValueError(f"opcode out of range: {value}")
    return value


def _check_revision(rev: int) -> Revision:
    return Revision(operator.index(rev))


def _derive(base: list[int], changes: dict[Opcode, int]) -> list[int]:
    table = list(base)
    for op, cost in changes.items():
        table[op] = cost
    return table


def _build_gas_costs() -> tuple[tuple[int, ...], ...]:
    O = Opcode
    frontier = [UNDEFINED] * 256
    for op, cost in {
        O.STOP: 0, O.ADD: 3, O.MUL: 5, O.SUB: 3, O.DIV: 5, O.SDIV: 5, O.MOD: 5,
        O.SMOD: 5, O.ADDMOD: 8, O.MULMOD: 8, O.EXP: 10, O.SIGNEXTEND: 5,
        O.LT: 3, O.GT: 3, O.SLT: 3, O.SGT: 3, O.EQ: 3, O.ISZERO: 3, O.AND: 3,
        O.OR: 3, O.XOR: 3, O.NOT: 3, O.BYTE: 3, O.KECCAK256: 30,
        O.ADDRESS: 2, O.BALANCE: 20, O.ORIGIN: 2, O.CALLER: 2, O.CALLVALUE: 2,
        O.CALLDATALOAD: 3, O.CALLDATASIZE: 2, O.CALLDATACOPY: 3, O.CODESIZE: 2,
        O.CODECOPY: 3, O.GASPRICE: 2, O.EXTCODESIZE: 20, O.EXTCODECOPY: 20,
        O.BLOCKHASH: 20, O.COINBASE: 2, O.TIMESTAMP: 2, O.NUMBER: 2,
        O.PREVRANDAO: 2, O.GASLIMIT: 2, O.POP: 2, O.MLOAD: 3, O.MSTORE: 3,
        O.MSTORE8: 3, O.SLOAD: 50, O.SSTORE: 0, O.JUMP: 8, O.JUMPI: 10,
        O.PC: 2, O.MSIZE: 2, O.GAS: 2, O.JUMPDEST: 1,
        O.CREATE: 32000, O.CALL: 40, O.CALLCODE: 40, O.RETURN: 0,
        O.INVALID: 0, O.SELFDESTRUCT: 0,
    }.items():
        frontier[op] = cost
    for op in range(O.PUSH1, O.PUSH32 + 1):
        frontier[op] = 3
    for op in range(O.DUP1, O.DUP16 + 1):
        frontier[op] = 3
    for op in range(O.SWAP1, O.SWAP16 + 1):
        frontier[op] = 3
    for op in range(O.LOG0, O.LOG4 + 1):
        frontier[op] = (op - O.LOG0 + 1) * 375

    homestead = _derive(frontier, {O.DELEGATECALL: 40})
    tangerine_whistle = _derive(homestead, {
        O.BALANCE: 400, O.EXTCODESIZE: 700, O.EXTCODECOPY: 700, O.SLOAD: 200,
        O.CALL: 700, O.CALLCODE: 700, O.DELEGATECALL: 700, O.SELFDESTRUCT: 5000,
    })
    spurious_dragon = list(tangerine_whistle)
    byzantium = _derive(spurious_dragon, {
        O.RETURNDATASIZE: 2, O.RETURNDATACOPY: 3, O.STATICCALL: 700, O.REVERT: 0,
    })
    constantinople = _derive(byzantium, {
        O.SHL: 3, O.SHR: 3, O.SAR: 3, O.EXTCODEHASH: 400, O.CREATE2: 32000,
    })
    petersburg = list(constantinople)
    istanbul = _derive(petersburg, {
        O.BALANCE: 700, O.CHAINID: 2, O.EXTCODEHASH: 700, O.SELFBALANCE: 5,
        O.SLOAD: 800,
    })
    berlin = _derive(istanbul, {
        op: WARM_STORAGE_READ_COST
        for op in (
            O.EXTCODESIZE, O.EXTCODECOPY, O.EXTCODEHASH, O.BALANCE, O.CALL,
            O.CALLCODE, O.DELEGATECALL, O.STATICCALL, O.SLOAD,
        )
    })
    london = _derive(berlin, {O.BASEFEE: 2})
    paris = list(london)
    shanghai = _derive(paris, {O.PUSH0: 2})
    cancun = list(shanghai)

    tables = (
        frontier, homestead, tangerine_whistle, spurious_dragon, byzantium,
        constantinople, petersburg, istanbul, berlin, london, paris, shanghai,
        cancun,
    )
    assert len(tables) == len(Revision)
    return tuple(tuple(t) for t in tables)


_GAS_COSTS = _build_gas_costs()


def _build_traits() -> tuple[Traits, ...]:
    O = Opcode
    R = Revision
    table = [Traits()] * 256

    # (opcode, terminating, stack required, stack change, since)
    plain = [
        (O.STOP, True, 0, 0, R.FRONTIER),
        (O.ADD, False, 2, -1, R.FRONTIER),
        (O.MUL, False, 2, -1, R.FRONTIER),
        (O.SUB, False, 2, -1, R.FRONTIER),
        (O.DIV, False, 2, -1, R.FRONTIER),
        (O.SDIV, False, 2, -1, R.FRONTIER),
        (O.MOD, False, 2, -1, R.FRONTIER),
        (O.SMOD, False, 2, -1, R.FRONTIER),
        (O.ADDMOD, False, 3, -2, R.FRONTIER),
        (O.MULMOD, False, 3, -2, R.FRONTIER),
        (O.EXP, False, 2, -1, R.FRONTIER),
        (O.SIGNEXTEND, False, 2, -1, R.FRONTIER),
        (O.LT, False, 2, -1, R.FRONTIER),
        (O.GT, False, 2, -1, R.FRONTIER),
        (O.SLT, False, 2, -1, R.FRONTIER),
        (O.SGT, False, 2, -1, R.FRONTIER),
        (O.EQ, False, 2, -1, R.FRONTIER),
        (O.ISZERO, False, 1, 0, R.FRONTIER),
        (O.AND, False, 2, -1, R.FRONTIER),
        (O.OR, False, 2, -1, R.FRONTIER),
        (O.XOR, False, 2, -1, R.FRONTIER),
        (O.NOT, False, 1, 0, R.FRONTIER),
        (O.BYTE, False, 2, -1, R.FRONTIER),
        (O.SHL, False, 2, -1, R.CONSTANTINOPLE),
        (O.SHR, False, 2, -1, R.CONSTANTINOPLE),
        (O.SAR, False, 2, -1, R.CONSTANTINOPLE),
        (O.KECCAK256, False, 2, -1, R.FRONTIER),
        (O.ADDRESS, False, 0, 1, R.FRONTIER),
        (O.BALANCE, False, 1, 0, R.FRONTIER),
        (O.ORIGIN, False, 0, 1, R.FRONTIER),
        (O.CALLER, False, 0, 1, R.FRONTIER),
        (O.CALLVALUE, False, 0, 1, R.FRONTIER),
        (O.CALLDATALOAD, False, 1, 0, R.FRONTIER),
        (O.CALLDATASIZE, False, 0, 1, R.FRONTIER),
        (O.CALLDATACOPY, False, 3, -3, R.FRONTIER),
        (O.CODESIZE, False, 0, 1, R.FRONTIER),
        (O.CODECOPY, False, 3, -3, R.FRONTIER),
        (O.GASPRICE, False, 0, 1, R.FRONTIER),
        (O.EXTCODESIZE, False, 1, 0, R.FRONTIER),
        (O.EXTCODECOPY, False, 4, -4, R.FRONTIER),
        (O.RETURNDATASIZE, False, 0, 1, R.BYZANTIUM),
        (O.RETURNDATACOPY, False, 3, -3, R.BYZANTIUM),
        (O.EXTCODEHASH, False, 1, 0, R.CONSTANTINOPLE),
        (O.BLOCKHASH, False, 1, 0, R.FRONTIER),
        (O.COINBASE, False, 0, 1, R.FRONTIER),
        (O.TIMESTAMP, False, 0, 1, R.FRONTIER),
        (O.NUMBER, False, 0, 1, R.FRONTIER),
        (O.PREVRANDAO, False, 0, 1, R.FRONTIER),
        (O.GASLIMIT, False, 0, 1, R.FRONTIER),
        (O.CHAINID, False, 0, 1, R.ISTANBUL),
        (O.SELFBALANCE, False, 0, 1, R.ISTANBUL),
        (O.BASEFEE, False, 0, 1, R.LONDON),
        (O.POP, False, 1, -1, R.FRONTIER),
        (O.MLOAD, False, 1, 0, R.FRONTIER),
        (O.MSTORE, False, 2, -2, R.FRONTIER),
        (O.MSTORE8, False, 2, -2, R.FRONTIER),
        (O.SLOAD, False, 1, 0, R.FRONTIER),
        (O.SSTORE, False, 2, -2, R.FRONTIER),
        (O.JUMP, False, 1, -1, R.FRONTIER),
        (O.JUMPI, False, 2, -2, R.FRONTIER),
        (O.PC, False, 0, 1, R.FRONTIER),
        (O.MSIZE, False, 0, 1, R.FRONTIER),
        (O.GAS, False, 0, 1, R.FRONTIER),
        (O.JUMPDEST, False, 0, 0, R.FRONTIER),
        (O.PUSH0, False, 0, 1, R.SHANGHAI),
        (O.CREATE, False, 3, -2, R.FRONTIER),
        (O.CALL, False, 7, -6, R.FRONTIER),
        (O.CALLCODE, False, 7, -6, R.FRONTIER),
        (O.RETURN, True, 2, -2, R.FRONTIER),
        (O.DELEGATECALL, False, 6, -5, R.HOMESTEAD),
        (O.CREATE2, False, 4, -3, R.CONSTANTINOPLE),
        (O.STATICCALL, False, 6, -5, R.BYZANTIUM),
        (O.REVERT, True, 2, -2, R.BYZANTIUM),
        (O.INVALID, True, 0, 0, R.FRONTIER),
        (O.SELFDESTRUCT, True, 1, -1, R.FRONTIER),
    ]
    for op, terminating, required, change, since in plain:
        table[op] = Traits(op.name, 0, terminating, required, change, since)

    for n in range(1, 33):
        op = O(O.PUSH1 + n - 1)
        table[op] = Traits(op.name, n, False, 0, 1, R.FRONTIER)
    for n in range(1, 17):
        op = O(O.DUP1 + n - 1)
        table[op] = Traits(op.name, 0, False, n, 1, R.FRONTIER)
    for n in range(1, 17):
        op = O(O.SWAP1 + n - 1)
        table[op] = Traits(op.name, 0, False, n + 1, 0, R.FRONTIER)
    for n in range(5):
        op = O(O.LOG0 + n)
        table[op] = Traits(op.name, 0, False, n + 2, -(n + 2), R.FRONTIER)

    return tuple(table)


_TRAITS = _build_traits()


def gas_cost(rev: int, op: int) -> int:
    """Return the base gas cost of ``op`` in ``rev``, or UNDEFINED (-1)."""
    return _GAS_COSTS[_check_revision(rev)][_check_opcode(op)]


def has_const_gas_cost(op: int) -> bool:
    """Tell whether ``op`` has the same base gas cost in every revision.

    Instructions introduced after the first revision never qualify.
    """
    index = _check_opcode(op)
    first = _GAS_COSTS[Revision.FRONTIER][index]
    return all(table[index] == first for table in _GAS_COSTS)


def traits_of(op: int) -> Traits:
    """Return the traits of ``op``; unknown opcodes get empty traits."""
    return _TRAITS[_check_opcode(op)]


def is_small_push(op: int) -> bool:
    """Tell whether ``op`` is one of PUSH1 to PUSH8."""
    return Opcode.PUSH1 <= _check_opcode(op) <= Opcode.PUSH8


def is_large_push(op: int) -> bool:
    """Tell whether ``op`` is one of PUSH9 to PUSH32."""
    return Opcode.PUSH9 <= _check_opcode(op) <= Opcode.PUSH32


def opcode_name(op: int, rev: int = MAX_REVISION) -> str:
    """Return the mnemonic of ``op`` as defined in ``rev``.

    Instructions not available in ``rev`` are named
    ``UNDEFINED_INSTRUCTION:<hex>``.
    """
    index = _check_opcode(op)
    name = _TRAITS[index].name
    if name is None or gas_cost(rev, index) == UNDEFINED:
        return f"UNDEFINED_INSTRUCTION:{index:02x}"
    return name