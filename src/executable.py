"""
Instruction model for the stack VM.

Source format (one statement per line):
  .label              Label declaration, marks the next instruction
  MNEMONIC [arg]      Instruction, at most one argument

Instructions:
  LOAD_VAL n          Push the 16-bit unsigned value n
  WRITE_VAR name      Pop a value and bind it to variable name
  READ_VAR name       Push the value bound to variable name
  ADD, MULTIPLY       Pop a, pop b, push a+b / a*b (wrapping at 16 bits)
  GREATER, LESS       Pop a, pop b, push 1 if a>b / a<b else 0
  EQUAL               Pop a, pop b, push 1 if a==b else 0
  DUP                 Pop a value and push it twice
  POP                 Pop and discard a value
  GOTO .label         Pop a value, jump to .label if it is non-zero
  RETURN_VALUE        Pop a value and stop with it as the result

Every value on the stack, in a variable or used as an instruction index is
a 16-bit unsigned word.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

WORD_BITS = 16
WORD_MASK = (1 << WORD_BITS) - 1
WORD_MAX = WORD_MASK

# Grammar matchers, always applied with fullmatch
VAR_NAME_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')
LABEL_NAME_RE = re.compile(r'\.[A-Za-z0-9_][A-Za-z0-9_]*')
NUMBER_RE = re.compile(r'\+?[0-9]+')


class StackVMError(Exception):
    """Base class for assembler and VM errors."""


class InstructionError(StackVMError):
    """An instruction could not be built from a mnemonic and its arguments."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class Opcode(Enum):
    LOAD = 'LOAD_VAL'
    WRITE = 'WRITE_VAR'
    READ = 'READ_VAR'
    ADD = 'ADD'
    MULTIPLY = 'MULTIPLY'
    RETURN = 'RETURN_VALUE'
    EQUAL = 'EQUAL'
    GREATER = 'GREATER'
    LESS = 'LESS'
    DUP = 'DUP'
    POP = 'POP'
    GOTO = 'GOTO'

    @property
    def mnemonic(self) -> str:
        return self.value


# Argument kinds
ARG_NONE = 'none'
ARG_NUMBER = 'number'
ARG_VAR = 'var'
ARG_LABEL = 'label'

OPERANDS = {
    Opcode.LOAD:     ARG_NUMBER,
    Opcode.WRITE:    ARG_VAR,
    Opcode.READ:     ARG_VAR,
    Opcode.ADD:      ARG_NONE,
    Opcode.MULTIPLY: ARG_NONE,
    Opcode.RETURN:   ARG_NONE,
    Opcode.EQUAL:    ARG_NONE,
    Opcode.GREATER:  ARG_NONE,
    Opcode.LESS:     ARG_NONE,
    Opcode.DUP:      ARG_NONE,
    Opcode.POP:      ARG_NONE,
    Opcode.GOTO:     ARG_LABEL,
}

MNEMONICS = {op.mnemonic: op for op in Opcode}


def is_var_name(token: str) -> bool:
    return VAR_NAME_RE.fullmatch(token) is not None


def is_label_name(token: str) -> bool:
    return LABEL_NAME_RE.fullmatch(token) is not None


def parse_number(token: str) -> Optional[int]:
    """Parse a decimal word, or return None if it is not one."""
    if NUMBER_RE.fullmatch(token) is None:
        return None
    # Bound the digit count before int(), which rejects very long strings
    digits = token.lstrip('+').lstrip('0') or '0'
    if len(digits) > len(str(WORD_MAX)):
        return None
    value = int(digits)
    if value > WORD_MAX:
        return None
    return value


@dataclass(frozen=True)
class Instruction:
    """A single instruction: an opcode and at most one argument.

    ``arg`` is an int for LOAD_VAL, a variable name for WRITE_VAR/READ_VAR,
    a label name for GOTO and None for everything else.
    """
    opcode: Opcode
    arg: Union[int, str, None] = None

    def __post_init__(self):
        kind = OPERANDS[self.opcode]
        if kind == ARG_NONE:
            ok = self.arg is None
        elif kind == ARG_NUMBER:
            ok = (isinstance(self.arg, int) and not isinstance(self.arg, bool)
                  and 0 <= self.arg <= WORD_MAX)
        elif kind == ARG_VAR:
            ok = isinstance(self.arg, str) and is_var_name(self.arg)
        else:
            ok = isinstance(self.arg, str) and is_label_name(self.arg)
        if not ok:
            raise InstructionError(
                f"Invalid argument for {self.opcode.mnemonic}: {self.arg!r}")

    @classmethod
    def new(cls, name: str, args: List[str]) -> 'Instruction':
        """Build an instruction from a mnemonic and its raw argument tokens."""
        opcode = MNEMONICS.get(name)
        if opcode is None:
            raise InstructionError(f"Unknown instruction: {name}")

        kind = OPERANDS[opcode]
        word = opcode.name.lower()
        expected = 0 if kind == ARG_NONE else 1
        if len(args) != expected:
            raise InstructionError(
                f"Error creating {word} instruction: "
                f"expected {expected} argument, got {len(args)}")

        if kind == ARG_NONE:
            return cls(opcode)

        token = args[0]
        if kind == ARG_NUMBER:
            value = parse_number(token)
            if value is None:
                raise InstructionError(
                    f"Error creating {word} instruction: invalid number {token}")
            return cls(opcode, value)
        if kind == ARG_VAR:
            if not is_var_name(token):
                raise InstructionError(f"Invalid variable name {token}")
            return cls(opcode, token)
        if not is_label_name(token):
            raise InstructionError(f"Invalid label name: {token}")
        return cls(opcode, token)

    def __str__(self) -> str:
        if self.arg is None:
            return self.opcode.mnemonic
        return f"{self.opcode.mnemonic} {self.arg}"


@dataclass(frozen=True)
class Program:
    """Assembled program: instruction sequence plus label table.

    Labels map to the index of the instruction that follows the
    declaration, which may equal ``len(instructions)`` for trailing labels.
    """
    instructions: Tuple[Instruction, ...] = ()
    labels: Mapping[str, int] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, 'instructions', tuple(self.instructions))
        object.__setattr__(self, 'labels', MappingProxyType(dict(self.labels)))

    def __len__(self) -> int:
        return len(self.instructions)

    def get_instruction(self, index: int) -> Optional[Instruction]:
        if 0 <= index < len(self.instructions):
            return self.instructions[index]
        return None

    def get_label(self, name: str) -> Optional[int]:
        return self.labels.get(name)


def disassemble(program: Program) -> str:
    """Render a program as a human-readable listing."""
    lines = [
        f"; Instructions: {len(program.instructions)}",
        f"; Labels: {len(program.labels)}",
        "",
    ]

    by_index: Dict[int, List[str]] = {}
    for name, index in program.labels.items():
        by_index.setdefault(index, []).append(name)

    for i, instr in enumerate(program.instructions):
        for name in by_index.get(i, []):
            lines.append(name)
        lines.append(f"{i:04d}: {instr}")

    # Labels declared after the last instruction
    for name in by_index.get(len(program.instructions), []):
        lines.append(name)

    return '\n'.join(lines)
