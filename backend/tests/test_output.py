from unity_checks.output import JobOutputs

def test_step_summary_appends(tmp_path):
    path = tmp_path / "summary.md"
    outputs = JobOutputs(summary_path=str(path))
    outputs.write_step_summary("## first")
    outputs.write_step_summary("## second\n")
    assert path.read_text() == "## first\n## second\n"

def test_set_output_single_and_multi_line(tmp_path):
    path = tmp_path / "output"
    outputs = JobOutputs(output_path=str(path))
    outputs.set_engine_exit_code(0)
    outputs.set_exit_summary("line one\nline two")

    lines = path.read_text().splitlines()
    assert lines[0] == "engineExitCode=0"
    assert lines[1].startswith("exitSummary<<ghadelimiter_")
    delimiter = lines[1].split("<<", 1)[1]
    assert lines[2:] == ["line one", "line two", delimiter]
