#!/usr/bin/env python3
"""
Stack VM

Usage: python vm.py <program.asm> [--debug] [--trace] [--disasm]

Assembles the program and runs it from instruction 0 with an empty
operand stack and no variables. Execution stops when:
  - RETURN_VALUE pops the result
  - the instruction pointer runs past the last instruction (no result)
  - a runtime error occurs (stack underflow, unbound variable, unknown label)

The result, if any, is printed to stdout. There is no cycle limit: a
program that jumps back unconditionally runs forever.
"""

import sys
from typing import Dict, List, Optional

from assemble import AssemblerError, SourceReadError, assemble_file
from executable import WORD_MASK, Instruction, Opcode, Program, StackVMError


class VMError(StackVMError):
    """Runtime error. ``instruction`` is the 1-based number of the failing instruction."""
    def __init__(self, message: str, instruction: Optional[int] = None):
        self.message = message
        self.instruction = instruction
        super().__init__(message)


class LabelError(VMError):
    """GOTO target is not declared anywhere in the program."""
    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Label with name: {label} doesn't exist")


class EvalState:
    """Operand stack, variables and instruction pointer for one run."""

    def __init__(self):
        self.stack: List[int] = []
        self.vars: Dict[str, int] = {}
        self.ip = 0

    def push(self, value: int):
        self.stack.append(value)

    def pop(self) -> Optional[int]:
        """Pop the top value, or return None if the stack is empty."""
        if not self.stack:
            return None
        return self.stack.pop()

    def get_var(self, name: str) -> Optional[int]:
        return self.vars.get(name)

    def set_var(self, name: str, value: int):
        self.vars[name] = value

    def advance(self):
        self.ip += 1


class VM:
    """Stack VM."""

    def __init__(self, program: Program, trace: bool = False, debug: bool = False):
        self.program = program
        self.state = EvalState()

        # Execution state
        self.halted = False
        self.result: Optional[int] = None
        self.cycles = 0

        # Debug options
        self.trace = trace
        self.debug = debug

    def reset(self):
        """Discard any previous run and start from instruction 0."""
        self.state = EvalState()
        self.halted = False
        self.result = None
        self.cycles = 0

    def fetch(self) -> Optional[Instruction]:
        """Fetch the instruction at the current IP, None past the end."""
        return self.program.get_instruction(self.state.ip)

    def pop_value(self) -> int:
        value = self.state.pop()
        if value is None:
            raise VMError(
                f"Runtime error: unable to process instruction #{self.state.ip + 1}: "
                f"no value on stack",
                self.state.ip + 1)
        return value

    def read_var(self, name: str) -> int:
        value = self.state.get_var(name)
        if value is None:
            raise VMError(
                f"Runtime error: unable to get variable: doesn't exist, "
                f"instruction#{self.state.ip + 1}",
                self.state.ip + 1)
        return value

    def execute(self, instr: Instruction):
        """Execute one instruction."""
        state = self.state
        op = instr.opcode

        if op == Opcode.LOAD:
            state.push(instr.arg)
        elif op == Opcode.WRITE:
            state.set_var(instr.arg, self.pop_value())
        elif op == Opcode.READ:
            state.push(self.read_var(instr.arg))
        elif op == Opcode.ADD:
            a = self.pop_value()
            b = self.pop_value()
            state.push((a + b) & WORD_MASK)
        elif op == Opcode.MULTIPLY:
            a = self.pop_value()
            b = self.pop_value()
            state.push((a * b) & WORD_MASK)
        elif op == Opcode.GREATER:
            a = self.pop_value()
            b = self.pop_value()
            state.push(int(a > b))
        elif op == Opcode.LESS:
            a = self.pop_value()
            b = self.pop_value()
            state.push(int(a < b))
        elif op == Opcode.EQUAL:
            a = self.pop_value()
            b = self.pop_value()
            state.push(int(a == b))
        elif op == Opcode.DUP:
            value = self.pop_value()
            state.push(value)
            state.push(value)
        elif op == Opcode.POP:
            self.pop_value()
        elif op == Opcode.GOTO:
            # Resolved only when executed, so unreachable bad jumps never fail
            target = self.program.get_label(instr.arg)
            if target is None:
                raise LabelError(instr.arg)
            if self.pop_value() != 0:
                state.ip = target
                return
        elif op == Opcode.RETURN:
            self.result = self.pop_value()
            self.halted = True
            return

        state.advance()

    def step(self) -> bool:
        """Execute one instruction. Returns False if halted."""
        if self.halted:
            return False

        instr = self.fetch()
        if instr is None:
            # Fell off the end
            self.halted = True
            return False

        if self.trace:
            self.print_state(instr)

        self.execute(instr)
        self.cycles += 1
        return not self.halted

    def run(self) -> Optional[int]:
        """Run from a fresh state until halted. Returns the result, if any."""
        self.reset()

        if self.debug:
            print(f"Loaded program: {len(self.program)} instructions, {len(self.program.labels)} labels")

        while self.step():
            pass

        if self.debug:
            print(f"\nExecution finished after {self.cycles} cycles")
            self.print_state()

        return self.result

    def print_state(self, instr: Optional[Instruction] = None):
        """Print current VM state."""
        stack_str = ' '.join(f"{v:04X}" for v in self.state.stack)
        vars_str = ' '.join(f"{k}={v:04X}" for k, v in self.state.vars.items())

        print(f"[{self.cycles:06d}] IP={self.state.ip:04d} STACK=[{stack_str}] VARS={{{vars_str}}}")
        if instr is not None:
            print(f"         {instr}")


def interpret(source_file: str) -> Optional[int]:
    """Assemble and run a source file."""
    return VM(assemble_file(source_file)).run()


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description='Stack VM')
    parser.add_argument('--debug', '-d', action='store_true', help='Enable debug mode')
    parser.add_argument('--trace', '-t', action='store_true', help='Trace execution')
    parser.add_argument('--disasm', action='store_true', help='Disassemble and exit')
    parser.add_argument('program', help='Program source file')

    args = parser.parse_args(argv)

    try:
        program = assemble_file(args.program)
    except SourceReadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except AssemblerError as e:
        print(f"Assembler error: {e}", file=sys.stderr)
        return 1

    if args.disasm:
        from executable import disassemble
        print(disassemble(program))
        return 0

    vm = VM(program, trace=args.trace, debug=args.debug)

    try:
        result = vm.run()
    except VMError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if result is not None:
        print(result)
    return 0


if __name__ == '__main__':
    sys.exit(main())
