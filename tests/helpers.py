"""Shared sample programs."""

SIMPLE_PROGRAM = """\
LOAD_VAL 10
WRITE_VAR x
LOAD_VAL 20
WRITE_VAR y
READ_VAR x
READ_VAR y
LOAD_VAL 10
MULTIPLY
ADD
RETURN_VALUE
"""

NESTED_LOOP_PROGRAM = """\
LOAD_VAL 0
WRITE_VAR x
LOAD_VAL 0
WRITE_VAR y
LOAD_VAL 0
.first
LOAD_VAL 1
READ_VAR x
ADD
WRITE_VAR x
LOAD_VAL 0
.second
LOAD_VAL 1
READ_VAR y
ADD
WRITE_VAR y
LOAD_VAL 1
ADD
DUP
LOAD_VAL 10
GREATER
GOTO .second
POP
LOAD_VAL 1
ADD
DUP
LOAD_VAL 10
GREATER
GOTO .first
READ_VAR x
READ_VAR y
ADD
RETURN_VALUE
"""
