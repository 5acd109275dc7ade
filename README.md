# evmcore

Parts of an Ethereum Virtual Machine interpreter, written in plain Python with no
dependencies:

- `evmcore.traits` holds the opcode set (`Opcode`) and the protocol revisions
  (`Revision`, from Frontier to Cancun). It also has the per-revision base gas cost
  table (`gas_cost`, `has_const_gas_cost`) and per-instruction metadata (`Traits`,
  `traits_of`, `opcode_name`, `is_small_push`, `is_large_push`).
- `evmcore.state` holds the execution model. It has `Message`, `Result`, `Stack`,
  `ExecutionState`, an in-memory `Host`, and the enums `StatusCode`, `AccessStatus`,
  `StorageStatus` and `CallKind`.
- `evmcore.storage` implements `SLOAD` and `SSTORE` with their per-revision gas
  schedules. Its functions are `sload`, `sstore`, `sstore_cost` and
  `storage_cost_spec`, and it defines `StorageCostSpec` and `StoreCost`.
- `evmcore.calls` implements `CALL`, `CALLCODE`, `DELEGATECALL` and `STATICCALL`
  through `call(op, stack, state)`, and `CREATE` and `CREATE2` through
  `create(op, stack, state)`.
- `evmcore.tracing` provides execution tracers:
  - `create_histogram_tracer(out)` writes a CSV histogram of executed opcodes for each
    frame.
  - `create_instruction_tracer(out)` writes one JSON object per line for each frame
    start, instruction and frame end.

  You can chain tracers with `Tracer.add`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

### Instruction tables

```python
from evmcore.traits import Opcode, Revision, gas_cost, opcode_name, traits_of

gas_cost(Revision.BERLIN, Opcode.SLOAD)        # 100
gas_cost(Revision.HOMESTEAD, Opcode.SHL)       # -1: undefined in that revision
traits_of(Opcode.CALL).stack_height_required   # 7
opcode_name(Opcode.SAR)                        # 'SAR'
opcode_name(Opcode.SAR, Revision.HOMESTEAD)    # 'UNDEFINED_INSTRUCTION:1d'
```

### Storage cost tables

```python
from evmcore.state import StorageStatus
from evmcore.storage import sstore_cost
from evmcore.traits import Revision

sstore_cost(Revision.LONDON, StorageStatus.DELETED)
# StoreCost(gas_cost=2900, gas_refund=4800)
```

### Running an instruction

An instruction works on a `Stack` and an `ExecutionState`, and it returns a
`StatusCode`. The state's `Host` keeps accounts, balances, nonces and storage in
memory. It also tracks warm and cold accounts and slots, and classifies each storage
write against the original value of the slot.

```python
from evmcore.state import ExecutionState, Host, Message, Stack
from evmcore.storage import sstore
from evmcore.traits import Revision

contract = bytes(19) + b"\x01"
host = Host()
host.add_account(contract)
state = ExecutionState(msg=Message(recipient=contract, gas=30000), host=host,
                       rev=Revision.BERLIN)

stack = Stack([3, 1])          # bottom to top: value 3, key 1
sstore(stack, state)           # StatusCode.SUCCESS
host.get_storage(contract, 1)  # 3
state.gas_left                 # 7900: cold slot (2100) plus a new value (20000)
```

`ExecutionState.check_memory` grows memory and charges gas for the growth. The
instructions in `evmcore.calls` use it before they build a `Message` and pass it to
`Host.call`.

### Tracing

```python
import io
from evmcore.state import ExecutionState, Message, Result
from evmcore.tracing import create_histogram_tracer, create_instruction_tracer

out = io.StringIO()
tracer = create_instruction_tracer(out)
tracer.add(create_histogram_tracer(out))

code = bytes([0x60, 0x01, 0x00])  # PUSH1 1, STOP
msg = Message(gas=100)
state = ExecutionState(msg=msg)
tracer.notify_execution_start(state.rev, msg, code)
tracer.notify_instruction_start(0, [], state)
tracer.notify_execution_end(Result(gas_left=97))
print(out.getvalue())
```

## What this package does not do

- It has no interpreter loop. Nothing here decodes bytecode, dispatches opcodes,
  charges base gas costs or calls the tracers. The caller does all of that.
- `Host.call` does not execute nested calls or deploy contracts. It records each
  `Message` in `recorded_calls` and answers every message with the same preset
  `call_result`.
- It has no command-line tool.