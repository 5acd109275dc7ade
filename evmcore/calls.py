"""Instructions that send messages: the CALL family and CREATE/CREATE2."""

from __future__ import annotations

from .state import (
    AccessStatus,
    CallKind,
    ExecutionState,
    Message,
    Stack,
    StatusCode,
)
from .traits import ADDITIONAL_COLD_ACCOUNT_ACCESS_COST, Opcode, Revision

_CALL_OPS = frozenset({Opcode.CALL, Opcode.CALLCODE, Opcode.DELEGATECALL, Opcode.STATICCALL})
_CREATE_OPS = frozenset({Opcode.CREATE, Opcode.CREATE2})

_MAX_DEPTH = 1024
_INT64_MAX = (1 << 63) - 1
_VALUE_TRANSFER_COST = 9000
_NEW_ACCOUNT_COST = 25000
_CALL_STIPEND = 2300
_ADDRESS_MASK = (1 << 160) - 1


def _to_address(word: int) -> bytes:
    return (word & _ADDRESS_MASK).to_bytes(20, "big")


def _slice(state: ExecutionState, offset: int, size: int) -> bytes:
    return bytes(state.memory[offset:offset + size]) if size > 0 else b""


def _all_but_one_64th(gas: int) -> int:
    return gas - gas // 64


def call(op: int, stack: Stack, state: ExecutionState) -> StatusCode:
    """Execute CALL, CALLCODE, DELEGATECALL or STATICCALL."""
    op = Opcode(op)
    if op not in _CALL_OPS:
        raise ValueError(f"not a call instruction: {op.name}")

    gas = stack.pop()
    dst = _to_address(stack.pop())
    value = 0 if op in (Opcode.STATICCALL, Opcode.DELEGATECALL) else stack.pop()
    has_value = value != 0
    input_offset = stack.pop()
    input_size = stack.pop()
    output_offset = stack.pop()
    output_size = stack.pop()

    stack.push(0)  # Assume failure.

    if state.rev >= Revision.BERLIN and state.host.access_account(dst) is AccessStatus.COLD:
        state.gas_left -= ADDITIONAL_COLD_ACCOUNT_ACCESS_COST
        if state.gas_left < 0:
            return StatusCode.OUT_OF_GAS

    if not state.check_memory(input_offset, input_size):
        return StatusCode.OUT_OF_GAS
    if not state.check_memory(output_offset, output_size):
        return StatusCode.OUT_OF_GAS

    parent = state.msg
    if op is Opcode.DELEGATECALL:
        kind = CallKind.DELEGATECALL
    elif op is Opcode.CALLCODE:
        kind = CallKind.CALLCODE
    else:
        kind = CallKind.CALL

    cost = _VALUE_TRANSFER_COST if has_value else 0
    if op is Opcode.CALL:
        if has_value and state.in_static_mode():
            return StatusCode.STATIC_MODE_VIOLATION
        if (has_value or state.rev < Revision.SPURIOUS_DRAGON) and not state.host.account_exists(dst):
            cost += _NEW_ACCOUNT_COST

    state.gas_left -= cost
    if state.gas_left < 0:
        return StatusCode.OUT_OF_GAS

    msg_gas = min(gas, _INT64_MAX)
    if state.rev >= Revision.TANGERINE_WHISTLE:
        msg_gas = min(msg_gas, _all_but_one_64th(state.gas_left))
    elif msg_gas > state.gas_left:
        return StatusCode.OUT_OF_GAS

    if has_value:
        msg_gas += _CALL_STIPEND
        state.gas_left += _CALL_STIPEND

    state.return_data = b""

    if parent.depth >= _MAX_DEPTH:
        return StatusCode.SUCCESS
    if has_value and state.host.get_balance(parent.recipient) < value:
        return StatusCode.SUCCESS

    msg = Message(
        kind=kind,
        is_static=True if op is Opcode.STATICCALL else parent.is_static,
        depth=parent.depth + 1,
        gas=msg_gas,
        recipient=dst if op in (Opcode.CALL, Opcode.STATICCALL) else parent.recipient,
        sender=parent.sender if op is Opcode.DELEGATECALL else parent.recipient,
        input_data=_slice(state, input_offset, input_size),
        value=parent.value if op is Opcode.DELEGATECALL else value,
        code_address=dst,
    )
    result = state.host.call(msg)
    state.return_data = bytes(result.output)
    stack.set_top(1 if result.status_code is StatusCode.SUCCESS else 0)

    copy_size = min(output_size, len(result.output))
    if copy_size > 0:
        state.memory[output_offset:output_offset + copy_size] = result.output[:copy_size]

    state.gas_left -= msg_gas - result.gas_left
    state.gas_refund += result.gas_refund
    return StatusCode.SUCCESS


def create(op: int, stack: Stack, state: ExecutionState) -> StatusCode:
    """Execute CREATE or CREATE2."""
    op = Opcode(op)
    if op not in _CREATE_OPS:
        raise ValueError(f"not a create instruction: {op.name}")

    if state.in_static_mode():
        return StatusCode.STATIC_MODE_VIOLATION

    endowment = stack.pop()
    init_code_offset = stack.pop()
    init_code_size = stack.pop()

    if not state.check_memory(init_code_offset, init_code_size):
        return StatusCode.OUT_OF_GAS

    salt = 0
    if op is Opcode.CREATE2:
        salt = stack.pop()
        state.gas_left -= (init_code_size + 31) // 32 * 6
        if state.gas_left < 0:
            return StatusCode.OUT_OF_GAS

    stack.push(0)
    state.return_data = b""

    parent = state.msg
    if not state.host.check_nonce(parent.recipient):  # EIP-2681
        return StatusCode.SUCCESS
    if parent.depth >= _MAX_DEPTH:
        return StatusCode.SUCCESS
    if endowment != 0 and state.host.get_balance(parent.recipient) < endowment:
        return StatusCode.SUCCESS

    msg_gas = state.gas_left
    if state.rev >= Revision.TANGERINE_WHISTLE:
        msg_gas = _all_but_one_64th(msg_gas)

    msg = Message(
        kind=CallKind.CREATE if op is Opcode.CREATE else CallKind.CREATE2,
        depth=parent.depth + 1,
        gas=msg_gas,
        sender=parent.recipient,
        input_data=_slice(state, init_code_offset, init_code_size),
        value=endowment,
        create2_salt=salt,
    )
    result = state.host.call(msg)
    state.gas_left -= msg_gas - result.gas_left
    state.gas_refund += result.gas_refund

    state.return_data = bytes(result.output)
    if result.status_code is StatusCode.SUCCESS:
        stack.set_top(int.from_bytes(result.create_address, "big"))
    return StatusCode.SUCCESS