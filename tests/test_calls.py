import pytest

from evmcore.calls import call, create
from evmcore.state import (
    CallKind,
    ExecutionState,
    Host,
    Message,
    Result,
    Stack,
    StatusCode,
)
from evmcore.traits import Opcode, Revision, gas_cost

SENDER = bytes(19) + b"\x0a"
RECIPIENT = bytes(19) + b"\x0b"
DST = 0xDE
DST_ADDR = bytes(19) + b"\xde"


def _state(rev=Revision.ISTANBUL, gas_left=1_000_000, host=None, **msg_fields):
    msg = Message(sender=SENDER, recipient=RECIPIENT, **msg_fields)
    return ExecutionState(msg=msg, host=host or Host(), rev=rev, gas_left=gas_left)


def _call_stack(gas=0, dst=DST, value=0, in_off=0, in_size=0, out_off=0, out_size=0):
    return Stack([out_size, out_off, in_size, in_off, value, dst, gas])


def _no_value_stack(gas=0, dst=DST, in_off=0, in_size=0, out_off=0, out_size=0):
    return Stack([out_size, out_off, in_size, in_off, dst, gas])


def test_delegatecall_cold_berlin():
    rev = Revision.BERLIN
    code_gas = 2618 - 6 * gas_cost(rev, Opcode.PUSH1) - gas_cost(rev, Opcode.DELEGATECALL)

    host = Host()
    state = _state(rev, code_gas, host)
    assert call(Opcode.DELEGATECALL, _no_value_stack(), state) is StatusCode.SUCCESS
    assert state.gas_left == 0
    assert DST_ADDR in host.recorded_account_accesses

    state = _state(rev, code_gas - 1, Host())
    assert call(Opcode.DELEGATECALL, _no_value_stack(), state) is StatusCode.OUT_OF_GAS


def test_call_sends_message_and_copies_output():
    host = Host()
    host.call_result = Result(output=b"\x01\x02\x03", gas_left=0)
    state = _state(host=host, depth=3)
    state.memory = bytearray(range(64))
    stack = _call_stack(gas=100, in_off=4, in_size=3, out_off=10, out_size=2)

    assert call(Opcode.CALL, stack, state) is StatusCode.SUCCESS
    assert list(stack) == [1]
    (msg,) = host.recorded_calls
    assert msg.kind is CallKind.CALL
    assert msg.depth == 4
    assert msg.recipient == DST_ADDR
    assert msg.code_address == DST_ADDR
    assert msg.sender == RECIPIENT
    assert msg.input_data == bytes([4, 5, 6])
    assert msg.gas == 100
    assert state.memory[10:12] == b"\x01\x02"
    assert state.memory[12] == 12
    assert state.return_data == b"\x01\x02\x03"


def test_call_gas_accounting_returns_unused():
    host = Host()
    host.call_result = Result(gas_left=40, gas_refund=7)
    state = _state(host=host, gas_left=1000)
    call(Opcode.CALL, _call_stack(gas=100), state)
    assert state.gas_left == 1000 - (100 - 40)
    assert state.gas_refund == 7


def test_delegatecall_keeps_sender_and_value():
    host = Host()
    state = _state(host=host, value=77)
    assert call(Opcode.DELEGATECALL, _no_value_stack(), state) is StatusCode.SUCCESS
    (msg,) = host.recorded_calls
    assert msg.kind is CallKind.DELEGATECALL
    assert msg.sender == SENDER
    assert msg.recipient == RECIPIENT
    assert msg.value == 77
    assert msg.code_address == DST_ADDR


def test_callcode_runs_in_caller_context():
    host = Host()
    host.add_account(RECIPIENT, balance=10)
    state = _state(host=host)
    call(Opcode.CALLCODE, _call_stack(value=5), state)
    (msg,) = host.recorded_calls
    assert msg.kind is CallKind.CALLCODE
    assert msg.recipient == RECIPIENT
    assert msg.sender == RECIPIENT
    assert msg.value == 5


def test_staticcall_sets_static_flag():
    host = Host()
    state = _state(host=host)
    call(Opcode.STATICCALL, _no_value_stack(), state)
    (msg,) = host.recorded_calls
    assert msg.is_static is True
    assert msg.recipient == DST_ADDR


def test_failed_call_leaves_zero_and_keeps_return_data():
    host = Host()
    host.call_result = Result(status_code=StatusCode.REVERT, output=b"\xee")
    state = _state(host=host)
    stack = _call_stack()
    assert call(Opcode.CALL, stack, state) is StatusCode.SUCCESS
    assert stack.top() == 0
    assert state.return_data == b"\xee"


def test_call_depth_limit():
    host = Host()
    state = _state(host=host, depth=1024)
    stack = _call_stack()
    assert call(Opcode.CALL, stack, state) is StatusCode.SUCCESS
    assert stack.top() == 0
    assert host.recorded_calls == []


def test_call_with_insufficient_balance():
    host = Host()
    host.add_account(DST_ADDR)
    host.add_account(RECIPIENT, balance=1)
    state = _state(host=host)
    stack = _call_stack(value=2)
    assert call(Opcode.CALL, stack, state) is StatusCode.SUCCESS
    assert stack.top() == 0
    assert host.recorded_calls == []


def test_call_with_value_in_static_mode():
    state = _state(is_static=True)
    assert call(Opcode.CALL, _call_stack(value=1), state) is StatusCode.STATIC_MODE_VIOLATION


def test_value_transfer_to_new_account_cost():
    host = Host()
    host.add_account(RECIPIENT, balance=10)
    state = _state(host=host, gas_left=100000)
    assert call(Opcode.CALL, _call_stack(value=1), state) is StatusCode.SUCCESS
    (msg,) = host.recorded_calls
    assert msg.gas == 2300
    assert state.gas_left == 100000 - 9000 - 25000


def test_call_gas_capped_at_all_but_one_64th():
    host = Host()
    host.call_result = Result(gas_left=0)
    state = _state(host=host, gas_left=6400)
    call(Opcode.STATICCALL, _no_value_stack(gas=(1 << 256) - 1), state)
    (msg,) = host.recorded_calls
    assert msg.gas == 6400 - 6400 // 64
    assert state.gas_left == 6400 // 64


def test_call_pre_tangerine_requires_enough_gas():
    state = _state(Revision.HOMESTEAD, gas_left=50)
    assert call(Opcode.CALLCODE, _call_stack(gas=51), state) is StatusCode.OUT_OF_GAS


def test_call_memory_out_of_gas():
    state = _state()
    stack = _call_stack(in_size=0x100000000)
    assert call(Opcode.CALL, stack, state) is StatusCode.OUT_OF_GAS
    assert stack.top() == 0


def test_call_rejects_other_opcodes():
    with pytest.raises(ValueError):
        call(Opcode.CREATE, _call_stack(), _state())


def _create_stack(endowment=0, offset=0, size=0):
    return Stack([size, offset, endowment])


def test_create_in_static_mode():
    state = _state(is_static=True)
    assert create(Opcode.CREATE, _create_stack(), state) is StatusCode.STATIC_MODE_VIOLATION


def test_create_success_pushes_address():
    host = Host()
    host.add_account(RECIPIENT, balance=100)
    created = bytes(19) + b"\xcc"
    host.call_result = Result(create_address=created, output=b"\x99")
    state = _state(host=host, gas_left=6400, depth=2)
    state.memory = bytearray(b"\xaa\xbb" + bytes(30))
    stack = _create_stack(endowment=5, offset=0, size=2)

    assert create(Opcode.CREATE, stack, state) is StatusCode.SUCCESS
    assert stack.top() == int.from_bytes(created, "big")
    (msg,) = host.recorded_calls
    assert msg.kind is CallKind.CREATE
    assert msg.sender == RECIPIENT
    assert msg.depth == 3
    assert msg.value == 5
    assert msg.input_data == b"\xaa\xbb"
    assert msg.gas == 6400 - 6400 // 64
    assert state.return_data == b"\x99"


def test_create2_salt_and_cost():
    host = Host()
    state = _state(host=host, gas_left=11)
    state.memory = bytearray(64)
    stack = Stack([0x5A, 33, 0, 0])
    assert create(Opcode.CREATE2, stack, state) is StatusCode.OUT_OF_GAS
    assert host.recorded_calls == []

    state = _state(host=host, gas_left=12)
    state.memory = bytearray(64)
    assert create(Opcode.CREATE2, Stack([0x5A, 33, 0, 0]), state) is StatusCode.SUCCESS
    (msg,) = host.recorded_calls
    assert msg.kind is CallKind.CREATE2
    assert msg.create2_salt == 0x5A


def test_create_failure_keeps_zero():
    host = Host()
    host.call_result = Result(status_code=StatusCode.REVERT, create_address=bytes(19) + b"\x01")
    state = _state(host=host)
    stack = _create_stack()
    assert create(Opcode.CREATE, stack, state) is StatusCode.SUCCESS
    assert stack.top() == 0


def test_create_nonce_exhausted():
    host = Host()
    host.add_account(RECIPIENT, nonce=(1 << 64) - 1)
    state = _state(host=host)
    stack = _create_stack()
    assert create(Opcode.CREATE, stack, state) is StatusCode.SUCCESS
    assert stack.top() == 0
    assert host.recorded_calls == []


def test_create_insufficient_endowment():
    host = Host()
    state = _state(host=host)
    stack = _create_stack(endowment=1)
    assert create(Opcode.CREATE, stack, state) is StatusCode.SUCCESS
    assert host.recorded_calls == []


def test_create_rejects_other_opcodes():
    with pytest.raises(ValueError):
        create(Opcode.CALL, _create_stack(), _state())