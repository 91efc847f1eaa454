"""Tests for the bsc-backed toolchain (the compiler itself is mocked)."""

import sys
from unittest.mock import patch

import pytest

from dolly.errors import BuildError, TestExecutionError
from dolly.subprocess_utils import ProcessOutput
from dolly.toolchain import BscToolchain, Toolchain


def test_bsc_toolchain_satisfies_protocol():
    assert isinstance(BscToolchain(), Toolchain)


@pytest.fixture
def sources(tmp_path):
    (tmp_path / "src" / "child").mkdir(parents=True)
    child = tmp_path / "src" / "child" / "child.bsv"
    root = tmp_path / "src" / "Top.bsv"
    child.write_text("")
    root.write_text("//!submodule child\n")
    out = tmp_path / "target" / "mkTop"
    out.mkdir(parents=True)
    return [child, root], out


def test_compile_verilog_command_line(sources):
    files, out = sources

    def fake_run(cmd, cwd=None, timeout=None):
        (out / "mkTop.v").write_text("module mkTop(); endmodule")
        return ProcessOutput(exit_code=0, output="")

    with patch("dolly.toolchain.run_with_timeout", side_effect=fake_run) as mock_run:
        artifact = BscToolchain("bsc", timeout=42).compile_verilog(files, "mkTop", out, [])

    assert artifact == out / "mkTop.v"
    cmd = mock_run.call_args[0][0]
    assert cmd[:5] == ["bsc", "-u", "-verilog", "-g", "mkTop"]
    assert cmd[-2:] == [str(files[0].resolve()), str(files[1].resolve())]
    search_path = cmd[cmd.index("-p") + 1]
    assert search_path.split(":") == [str(files[0].parent.resolve()), str(files[1].parent.resolve()), "+"]
    assert mock_run.call_args[1] == {"cwd": out, "timeout": 42}


def test_compile_verilog_failure_raises_build_error(sources):
    files, out = sources
    failed = ProcessOutput(exit_code=1, output="Error: Top.bsv, line 3: syntax error")
    with patch("dolly.toolchain.run_with_timeout", return_value=failed):
        with pytest.raises(BuildError) as exc_info:
            BscToolchain().compile_verilog(files, "mkTop", out, [])

    assert exc_info.value.top_module_name == "mkTop"
    assert exc_info.value.exit_code == 1
    assert "syntax error" in exc_info.value.captured_output


def test_compile_verilog_missing_artifact(sources):
    files, out = sources
    with patch("dolly.toolchain.run_with_timeout", return_value=ProcessOutput(exit_code=0, output="")):
        with pytest.raises(BuildError, match="mkTop"):
            BscToolchain().compile_verilog(files, "mkTop", out, [])


def test_compiler_not_installed(sources):
    files, out = sources
    with patch("dolly.toolchain.run_with_timeout", side_effect=FileNotFoundError("bsc")):
        with pytest.raises(BuildError) as exc_info:
            BscToolchain().compile_simulation(files, "mkTop", out, [])
    assert exc_info.value.exit_code == -1


def test_compile_simulation_compiles_then_links(sources, tmp_path):
    files, out = sources
    lib = tmp_path / "lib"
    lib.mkdir()
    with patch("dolly.toolchain.run_with_timeout", return_value=ProcessOutput(exit_code=0, output="")) as mock_run:
        executable = BscToolchain().compile_simulation(files, "mkTop", out, [lib])

    assert executable == out / "mkTop"
    compile_cmd, link_cmd = (c[0][0] for c in mock_run.call_args_list)
    assert "-sim" in compile_cmd and "-g" in compile_cmd
    assert compile_cmd[compile_cmd.index("-p") + 1].endswith(f":{lib.resolve()}:+")
    assert link_cmd[:4] == ["bsc", "-sim", "-e", "mkTop"]


def test_run_missing_executable(tmp_path):
    with pytest.raises(TestExecutionError, match="not found"):
        BscToolchain().run(tmp_path / "mkTop", timeout=1)


@pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as the executable")
def test_run_captures_output(tmp_path):
    executable = tmp_path / "mkTop"
    executable.write_text("#!/bin/sh\necho '>>>PASS'\n")
    executable.chmod(0o755)

    result = BscToolchain().run(executable, timeout=30)
    assert result.exit_code == 0
    assert ">>>PASS" in result.output
