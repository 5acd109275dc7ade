"""Execution tracers that observe messages and instructions as they run."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Protocol

from .state import ExecutionState, Message, Result, StatusCode
from .traits import UNDEFINED, Revision, gas_cost, traits_of


class _Writable(Protocol):
    def write(self, text: str, /) -> object: ...


_REVISION_NAMES = {
    Revision.FRONTIER: "Frontier",
    Revision.HOMESTEAD: "Homestead",
    Revision.TANGERINE_WHISTLE: "Tangerine Whistle",
    Revision.SPURIOUS_DRAGON: "Spurious Dragon",
    Revision.BYZANTIUM: "Byzantium",
    Revision.CONSTANTINOPLE: "Constantinople",
    Revision.PETERSBURG: "Petersburg",
    Revision.ISTANBUL: "Istanbul",
    Revision.BERLIN: "Berlin",
    Revision.LONDON: "London",
    Revision.PARIS: "Paris",
    Revision.SHANGHAI: "Shanghai",
    Revision.CANCUN: "Cancun",
}

_STATUS_NAMES = {
    StatusCode.SUCCESS: "success",
    StatusCode.FAILURE: "failure",
    StatusCode.REVERT: "revert",
    StatusCode.OUT_OF_GAS: "out of gas",
    StatusCode.INVALID_INSTRUCTION: "invalid instruction",
    StatusCode.UNDEFINED_INSTRUCTION: "undefined instruction",
    StatusCode.STACK_OVERFLOW: "stack overflow",
    StatusCode.STACK_UNDERFLOW: "stack underflow",
    StatusCode.BAD_JUMP_DESTINATION: "bad jump destination",
    StatusCode.INVALID_MEMORY_ACCESS: "invalid memory access",
    StatusCode.CALL_DEPTH_EXCEEDED: "call depth exceeded",
    StatusCode.STATIC_MODE_VIOLATION: "static mode violation",
    StatusCode.PRECOMPILE_FAILURE: "precompile failure",
    StatusCode.CONTRACT_VALIDATION_FAILURE: "contract validation failure",
    StatusCode.ARGUMENT_OUT_OF_RANGE: "argument out of range",
    StatusCode.INTERNAL_ERROR: "internal error",
    StatusCode.REJECTED: "rejected",
    StatusCode.OUT_OF_MEMORY: "out of memory",
}


def _instruction_name(rev: Revision, opcode: int) -> str:
    """Name of ``opcode`` in ``rev``, or its hex form when undefined there."""
    name = traits_of(opcode).name
    if name is None or gas_cost(rev, opcode) == UNDEFINED:
        return f"0x{opcode:02x}"
    return name


class Tracer(ABC):
    """Base of a chain of tracers; notifications go to every tracer in order."""

    def __init__(self) -> None:
        self._next: Tracer | None = None

    def _chain(self) -> Iterator[Tracer]:
        tracer: Tracer | None = self
        while tracer is not None:
            yield tracer
            tracer = tracer._next

    def add(self, tracer: Tracer) -> None:
        """Append ``tracer`` to the end of this chain."""
        chain = list(self._chain())
        if any(t is tracer for t in chain):
            raise ValueError("tracer is already in the chain")
        chain[-1]._next = tracer

    def notify_execution_start(self, rev: int, msg: Message, code: bytes) -> None:
        rev = Revision(rev)
        code = bytes(code)
        for tracer in self._chain():
            tracer._on_execution_start(rev, msg, code)

    def notify_instruction_start(
        self, pc: int, stack: Iterable[int], state: ExecutionState
    ) -> None:
        items = list(stack)
        for tracer in self._chain():
            tracer._on_instruction_start(pc, items, state)

    def notify_execution_end(self, result: Result) -> None:
        for tracer in self._chain():
            tracer._on_execution_end(result)

    @abstractmethod
    def _on_execution_start(self, rev: Revision, msg: Message, code: bytes) -> None: ...

    @abstractmethod
    def _on_instruction_start(
        self, pc: int, stack: list[int], state: ExecutionState
    ) -> None: ...

    @abstractmethod
    def _on_execution_end(self, result: Result) -> None: ...


@dataclass
class _HistogramContext:
    depth: int
    code: bytes
    rev: Revision
    counts: Counter = field(default_factory=Counter)


class HistogramTracer(Tracer):
    """Counts executed opcodes per frame and reports them as CSV."""

    def __init__(self, out: _Writable) -> None:
        super().__init__()
        self._out = out
        self._contexts: list[_HistogramContext] = []

    def _on_execution_start(self, rev: Revision, msg: Message, code: bytes) -> None:
        self._contexts.append(_HistogramContext(msg.depth, code, rev))

    def _on_instruction_start(
        self, pc: int, stack: list[int], state: ExecutionState
    ) -> None:
        ctx = self._contexts[-1]
        ctx.counts[ctx.code[pc]] += 1

    def _on_execution_end(self, result: Result) -> None:
        ctx = self._contexts.pop()
        lines = [f"--- # HISTOGRAM depth={ctx.depth}\nopcode,count\n"]
        lines.extend(
            f"{_instruction_name(ctx.rev, opcode)},{count}\n"
            for opcode, count in sorted(ctx.counts.items())
            if count
        )
        self._out.write("".join(lines))


@dataclass
class _InstructionContext:
    code: bytes
    start_gas: int


class InstructionTracer(Tracer):
    """Writes one JSON object per line for every frame and instruction."""

    def __init__(self, out: _Writable) -> None:
        super().__init__()
        self._out = out
        self._contexts: list[_InstructionContext] = []
        self._rev: Revision | None = None

    def _on_execution_start(self, rev: Revision, msg: Message, code: bytes) -> None:
        if not self._contexts:
            self._rev = rev
        self._contexts.append(_InstructionContext(code, msg.gas))
        static = "true" if msg.is_static else "false"
        self._out.write(
            f'{{"depth":{msg.depth},"rev":"{_REVISION_NAMES[rev]}","static":{static}}}\n'
        )

    def _on_instruction_start(
        self, pc: int, stack: list[int], state: ExecutionState
    ) -> None:
        ctx = self._contexts[-1]
        opcode = ctx.code[pc]
        name = _instruction_name(self._rev, opcode)
        items = ",".join(f'"0x{v:x}"' for v in stack)
        self._out.write(
            f'{{"pc":{pc},"op":{opcode},"opName":"{name}","gas":{state.gas_left}'
            f',"stack":[{items}],"memorySize":{len(state.memory)}}}\n'
        )

    def _on_execution_end(self, result: Result) -> None:
        ctx = self._contexts.pop()
        status = StatusCode(result.status_code)
        error = "null" if status is StatusCode.SUCCESS else f'"{_STATUS_NAMES[status]}"'
        self._out.write(
            f'{{"error":{error},"gas":{result.gas_left}'
            f',"gasUsed":{ctx.start_gas - result.gas_left}'
            f',"output":"{bytes(result.output).hex()}"}}\n'
        )
        if not self._contexts:
            self._rev = None


def create_histogram_tracer(out: _Writable) -> HistogramTracer:
    """Create a tracer reporting opcode counts per frame in CSV to ``out``."""
    return HistogramTracer(out)


def create_instruction_tracer(out: _Writable) -> InstructionTracer:
    """Create a tracer writing a JSON line per instruction to ``out``."""
    return InstructionTracer(out)