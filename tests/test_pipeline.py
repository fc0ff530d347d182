import json

import pytest
from typer.testing import CliRunner

from specc.diagnostics import CompilationError
from specc.main import app
from specc.pipeline import CompilerPipeline

GOOD = """
use hacspec::prelude::*;

fn xor(a: u8, b: u8) -> u8 { a ^ b }

fn first(s: &Seq<u8>) -> u8 {
    let x = s[0usize];
    xor(x, 1u8)
}
"""

runner = CliRunner()

def write(tmp_path, source, name="prog.rs"):
    path = tmp_path / name
    path.write_text(source)
    return path

def test_pipeline_checks_program(tmp_path):
    pipeline = CompilerPipeline(str(write(tmp_path, GOOD)), quiet=True)
    program = pipeline.run()

    assert [f.name for f in program.functions] == ["xor", "first"]
    summary = pipeline.artifacts["semantic"]
    assert summary[1] == {
        "function": "first",
        "params": [{"name": "s", "type": "&Seq<u8>"}],
        "returns": "u8",
        "block_type": "u8",
        "mutated_vars": [],
    }
    assert pipeline.artifacts["tokens"][-1]["type"] == "EOF"

def test_pipeline_reports_each_stage(tmp_path):
    with pytest.raises(CompilationError, match="Lexing failed"):
        CompilerPipeline(str(write(tmp_path, "fn f() { $ }")), quiet=True).run()

    with pytest.raises(CompilationError, match="Parsing failed"):
        CompilerPipeline(str(write(tmp_path, "fn f( {")), quiet=True).run()

    with pytest.raises(CompilationError, match="Semantic analysis failed"):
        CompilerPipeline(str(write(tmp_path, "fn f() { g(); }")), quiet=True).run()

def test_pipeline_arity_mismatch_fails(tmp_path):
    pipeline = CompilerPipeline(str(write(tmp_path, "fn g(a: u8) {} fn f() { g(); }")), quiet=True)

    with pytest.raises(CompilationError):
        pipeline.run()
    assert pipeline.checked_program is None

def test_pipeline_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        CompilerPipeline(str(tmp_path / "missing.rs")).run()

def test_pipeline_visualization_export(tmp_path):
    path = write(tmp_path, GOOD)
    CompilerPipeline(str(path), visualize=True, quiet=True).run()

    data = json.loads(path.with_suffix(".json").read_text())
    assert data["filename"] == "prog.rs"
    assert data["source"] == GOOD
    assert [stage["stage"] for stage in data["timeline"]] == ["Lexer", "Semantic Analysis"]
    assert data["timeline"][1]["data"][0]["function"] == "xor"

def test_cli_check_success(tmp_path):
    result = runner.invoke(app, ["check", str(write(tmp_path, GOOD))])

    assert result.exit_code == 0
    assert "Successfully checked" in result.output

def test_cli_check_failure(tmp_path):
    result = runner.invoke(app, ["--log-level", "DEBUG", "check", "--quiet", str(write(tmp_path, "fn f(s: Seq<u8>) { let a = s; let b = s; }"))])

    assert result.exit_code == 1
    assert "Semantic analysis failed" in result.output

def test_cli_missing_file(tmp_path):
    result = runner.invoke(app, ["check", str(tmp_path / "missing.rs")])

    assert result.exit_code == 1
    assert "Error:" in result.output
