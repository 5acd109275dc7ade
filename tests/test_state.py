import pytest

from evmcore.state import (
    AccessStatus,
    ExecutionState,
    Host,
    Message,
    Stack,
    StorageStatus,
)

ADDR = bytes(19) + b"\x07"


def test_stack_push_pop_top():
    stack = Stack([1, 2])
    stack.push(3)
    assert stack.top() == 3
    assert stack.pop() == 3
    assert list(stack) == [1, 2]
    stack.set_top(9)
    assert list(stack) == [1, 9]
    assert len(stack) == 2


def test_stack_underflow():
    stack = Stack()
    with pytest.raises(IndexError):
        stack.pop()
    with pytest.raises(IndexError):
        stack.top()
    with pytest.raises(IndexError):
        stack.set_top(1)


@pytest.mark.parametrize("value", [-1, 1 << 256])
def test_stack_rejects_out_of_range(value):
    with pytest.raises(ValueError):
        Stack().push(value)


def test_state_gas_defaults_to_message_gas():
    state = ExecutionState(msg=Message(gas=1234))
    assert state.gas_left == 1234
    assert ExecutionState(msg=Message(gas=1234), gas_left=5).gas_left == 5


def test_static_mode_follows_message():
    assert ExecutionState(msg=Message(is_static=True)).in_static_mode() is True
    assert ExecutionState().in_static_mode() is False


def test_check_memory_zero_size_at_huge_offset():
    state = ExecutionState(gas_left=100)
    assert state.check_memory(1 << 255, 0) is True
    assert len(state.memory) == 0
    assert state.gas_left == 100


@pytest.mark.parametrize(
    "offset,size",
    [(0, 0x100000000), (0x100000000, 1), (0xFFFFFFFFFFFFFFFF, 1), (0, (1 << 256) - 1)],
)
def test_check_memory_rejects_too_large(offset, size):
    state = ExecutionState(gas_left=8796294610952)
    assert state.check_memory(offset, size) is False


def test_check_memory_grows_by_words():
    state = ExecutionState(gas_left=1000)
    assert state.check_memory(0, 1) is True
    assert len(state.memory) == 32
    assert state.gas_left == 1000 - 3
    assert state.check_memory(0, 33) is True
    assert len(state.memory) == 64
    assert bytes(state.memory) == bytes(len(state.memory))


def test_check_memory_within_existing_is_free():
    state = ExecutionState(gas_left=50, memory=bytearray(64))
    assert state.check_memory(10, 40) is True
    assert state.gas_left == 50
    assert len(state.memory) == 64


def test_check_memory_out_of_gas():
    state = ExecutionState(gas_left=2)
    assert state.check_memory(0, 1) is False
    assert state.gas_left < 0


def test_access_account_cold_then_warm():
    host = Host()
    assert host.access_account(ADDR) is AccessStatus.COLD
    assert host.access_account(ADDR) is AccessStatus.WARM
    assert host.recorded_account_accesses == [ADDR, ADDR]


def test_access_storage_cold_then_warm():
    host = Host()
    assert host.access_storage(ADDR, 1) is AccessStatus.COLD
    assert host.access_storage(ADDR, 1) is AccessStatus.WARM
    assert host.access_storage(ADDR, 2) is AccessStatus.COLD


def test_account_queries():
    host = Host()
    assert host.account_exists(ADDR) is False
    assert host.get_balance(ADDR) == 0
    host.add_account(ADDR, balance=0x0504030201)
    assert host.account_exists(ADDR) is True
    assert host.get_balance(ADDR) == 0x0504030201


def test_check_nonce_limit():
    host = Host()
    assert host.check_nonce(ADDR) is True
    host.add_account(ADDR, nonce=(1 << 64) - 1)
    assert host.check_nonce(ADDR) is False


def test_bad_address_rejected():
    with pytest.raises(ValueError):
        Host().get_balance(b"\x01")


@pytest.mark.parametrize(
    "original,writes,expected",
    [
        (2, [2], StorageStatus.ASSIGNED),
        (0, [7], StorageStatus.ADDED),
        (2, [0], StorageStatus.DELETED),
        (2, [3], StorageStatus.MODIFIED),
        (2, [3, 0], StorageStatus.MODIFIED_DELETED),
        (2, [0, 2], StorageStatus.DELETED_RESTORED),
        (2, [0, 5], StorageStatus.DELETED_ADDED),
        (2, [3, 2], StorageStatus.MODIFIED_RESTORED),
        (0, [7, 0], StorageStatus.ADDED_DELETED),
        (0, [7, 8], StorageStatus.ASSIGNED),
        (2, [3, 4], StorageStatus.ASSIGNED),
    ],
)
def test_set_storage_classification(original, writes, expected):
    host = Host()
    host.add_account(ADDR, storage={1: original} if original else None)
    statuses = [host.set_storage(ADDR, 1, v) for v in writes]
    assert statuses[-1] is expected
    assert host.get_storage(ADDR, 1) == writes[-1]


def test_call_records_message_and_returns_result():
    host = Host()
    msg = Message(gas=10, input_data=b"\x01")
    assert host.call(msg) is host.call_result
    assert host.recorded_calls == [msg]