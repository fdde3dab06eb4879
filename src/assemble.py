#!/usr/bin/env python3
"""
Stack VM Assembler

Usage: python assemble.py <infile> [--verbose] [--dump-labels]

Assembly language syntax:
    .label
    MNEMONIC [argument]

Blank lines are skipped. A line whose first token is a label name
declares that label; anything after it on the same line is ignored.

Labels:
    .name       Starts with '.', then letters, digits and underscores.
                Points at the next instruction line; labels do not take
                an instruction slot.

Arguments:
    LOAD_VAL    decimal number 0..65535
    WRITE_VAR   variable name (letter or '_' first)
    READ_VAR    variable name
    GOTO        label name, resolved when the jump executes
"""

import sys
from typing import Dict, Iterable, List

from executable import (
    InstructionError, Instruction, Program, StackVMError, is_label_name,
)


class AssemblerError(StackVMError):
    """Assembler error with line information.

    ``line_num`` is 1-based; 0 means the error concerns the whole program.
    """
    def __init__(self, message: str, line_num: int = 0, line: str = ""):
        self.message = message
        self.line_num = line_num
        self.line = line
        if line_num:
            super().__init__(f"Unable to parse line #{line_num}: {message}")
        else:
            super().__init__(message)


class SourceReadError(StackVMError):
    """Source file could not be opened or read."""
    def __init__(self, path: str, cause: Exception, action: str = "Unable to open file"):
        self.path = path
        self.cause = cause
        super().__init__(f"{action}: {cause}")


class Assembler:
    """Stack VM Assembler."""

    def __init__(self):
        self.labels: Dict[str, int] = {}
        self.code: List[Instruction] = []
        self.line_num = 0
        self.current_line = ""

    def error(self, message: str):
        """Raise an assembler error."""
        raise AssemblerError(message, self.line_num, self.current_line)

    def current_index(self) -> int:
        """Index the next instruction will occupy."""
        return len(self.code)

    def declare_label(self, label: str):
        if label in self.labels:
            self.error(f"duplicated label: {label}")
        self.labels[label] = self.current_index()

    def assemble_line(self, line: str):
        """Assemble a single line."""
        tokens = line.split()
        if not tokens:
            return

        if is_label_name(tokens[0]):
            self.declare_label(tokens[0])
            return

        try:
            instr = Instruction.new(tokens[0], tokens[1:])
        except InstructionError as e:
            raise AssemblerError(e.message, self.line_num, self.current_line) from e
        self.code.append(instr)

    def assemble(self, lines: Iterable[str]) -> Program:
        """Assemble an ordered sequence of source lines into a program."""
        self.code = []
        self.labels = {}

        for i, line in enumerate(lines, 1):
            self.line_num = i
            self.current_line = line
            self.assemble_line(line)

        if not self.code:
            raise AssemblerError("Empty program")

        return Program(self.code, self.labels)

    def assemble_source(self, source: str) -> Program:
        """Assemble source text."""
        return self.assemble(source.split('\n'))


def read_source(path: str) -> List[str]:
    """Read a source file and return its lines."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
    except OSError as e:
        raise SourceReadError(path, e) from e
    except UnicodeDecodeError as e:
        raise SourceReadError(path, e, "Unable to read file") from e
    return source.split('\n')


def assemble_file(path: str) -> Program:
    return Assembler().assemble(read_source(path))


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description='Stack VM Assembler')
    parser.add_argument('infile', help='Input assembly file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--dump-labels', action='store_true', help='Print label indices after assembly')

    args = parser.parse_args(argv)

    try:
        lines = read_source(args.infile)
    except SourceReadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    assembler = Assembler()
    try:
        program = assembler.assemble(lines)
    except AssemblerError as e:
        print(f"Assembler error: {e}", file=sys.stderr)
        return 1

    print(f"Assembled {len(program)} instructions")

    if args.verbose:
        print(f"Source lines: {assembler.line_num}")
        print(f"Labels: {dict(program.labels)}")

    if args.dump_labels:
        for name, index in sorted(program.labels.items(), key=lambda kv: kv[1]):
            print(f"{name}: {index}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
