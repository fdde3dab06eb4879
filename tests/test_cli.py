from __future__ import annotations

import assemble
import vm

from helpers import NESTED_LOOP_PROGRAM, SIMPLE_PROGRAM


def test_vm_prints_result(write_program, capsys) -> None:
    assert vm.main([write_program(SIMPLE_PROGRAM)]) == 0
    assert capsys.readouterr().out == "210\n"


def test_vm_prints_nothing_without_result(write_program, capsys) -> None:
    assert vm.main([write_program("LOAD_VAL 1\n")]) == 0
    assert capsys.readouterr().out == ""


def test_vm_reports_runtime_error(write_program, capsys) -> None:
    assert vm.main([write_program("ADD\n")]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "instruction #1: no value on stack" in captured.err


def test_vm_reports_assembler_error(write_program, capsys) -> None:
    assert vm.main([write_program("LOAD_VAL x\n")]) == 1
    assert "Assembler error: Unable to parse line #1" in capsys.readouterr().err


def test_vm_reports_missing_file(tmp_path, capsys) -> None:
    assert vm.main([str(tmp_path / "nope.asm")]) == 1
    assert "Unable to open file" in capsys.readouterr().err


def test_vm_disasm(write_program, capsys) -> None:
    assert vm.main(["--disasm", write_program(NESTED_LOOP_PROGRAM)]) == 0
    out = capsys.readouterr().out
    assert ".first\n0005: LOAD_VAL 1" in out
    assert "0019: GOTO .second" in out


def test_vm_debug_summary(write_program, capsys) -> None:
    assert vm.main(["--debug", write_program(SIMPLE_PROGRAM)]) == 0
    out = capsys.readouterr().out
    assert "Loaded program: 10 instructions, 0 labels" in out
    assert "Execution finished after 10 cycles" in out
    assert out.endswith("210\n")


def test_assembler_cli(write_program, capsys) -> None:
    path = write_program(NESTED_LOOP_PROGRAM)
    assert assemble.main(["--dump-labels", path]) == 0
    out = capsys.readouterr().out
    assert "Assembled 31 instructions" in out
    assert ".first: 5" in out
    assert ".second: 10" in out


def test_assembler_cli_error(write_program, capsys) -> None:
    assert assemble.main([write_program(".a\n.a\n")]) == 1
    assert "duplicated label: .a" in capsys.readouterr().err
