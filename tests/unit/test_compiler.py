"""Unit tests for compilation status and diagnostics (no typst needed)."""

import os
from dataclasses import replace

import pytest

from noter.contexts.configuration.schema import default_config
from noter.contexts.rendering import compiler
from noter.contexts.rendering.compiler import (
    CompilationStatus,
    _parse_diagnostics,
    check_status,
    clean_pdfs,
    compile_note,
    output_path_for,
    resolve_source,
)


def config_with_output(output_dir):
    config = default_config()
    return replace(config, typst=replace(config.typst, output_dir=output_dir))


@pytest.fixture
def note(tmp_path):
    path = tmp_path / "02101" / "lectures" / "2026-10-19-02101-lecture.typ"
    path.parent.mkdir(parents=True)
    path.write_text("= Notes\n")
    return path


@pytest.mark.unit
def test_resolve_source_adds_extension(tmp_path):
    """Test that the .typ extension is optional."""
    assert resolve_source(tmp_path / "note") == tmp_path / "note.typ"
    assert resolve_source(tmp_path / "note.typ") == tmp_path / "note.typ"


@pytest.mark.unit
def test_output_next_to_source(note):
    """Test the default PDF location."""
    assert output_path_for(note, default_config()) == note.with_suffix(".pdf")


@pytest.mark.unit
def test_relative_output_dir(note):
    """Test that a relative output_dir is resolved against the note's directory."""
    output = output_path_for(note, config_with_output("pdf"))
    assert output == note.parent / "pdf" / "2026-10-19-02101-lecture.pdf"


@pytest.mark.unit
def test_absolute_output_dir(note, tmp_path):
    """Test an absolute output_dir."""
    output = output_path_for(note, config_with_output(str(tmp_path / "out")))
    assert output == tmp_path / "out" / "2026-10-19-02101-lecture.pdf"


@pytest.mark.unit
def test_status_source_not_found(tmp_path):
    """Test status for a missing note."""
    assert check_status(tmp_path / "missing.typ", default_config()) is CompilationStatus.SOURCE_NOT_FOUND


@pytest.mark.unit
def test_status_not_compiled(note):
    """Test status before the first compile."""
    assert check_status(note, default_config()) is CompilationStatus.NOT_COMPILED


@pytest.mark.unit
def test_status_up_to_date_and_out_of_date(note):
    """Test status by modification time."""
    pdf = note.with_suffix(".pdf")
    pdf.write_bytes(b"%PDF-1.7")

    os.utime(note, (1_000_000, 1_000_000))
    os.utime(pdf, (2_000_000, 2_000_000))
    assert check_status(note, default_config()) is CompilationStatus.UP_TO_DATE

    os.utime(note, (3_000_000, 3_000_000))
    assert check_status(note, default_config()) is CompilationStatus.OUT_OF_DATE


@pytest.mark.unit
def test_parse_diagnostics():
    """Test splitting typst output into errors and warnings."""
    stderr = (
        "error: unknown variable: foo\n"
        "  ┌─ note.typ:3:1\n"
        "warning: unused import\n"
        "error: file not found\n"
    )
    errors, warnings = _parse_diagnostics(stderr)

    assert errors == ["unknown variable: foo", "file not found"]
    assert warnings == ["unused import"]


@pytest.mark.unit
def test_compile_missing_source(tmp_path):
    """Test that compiling a missing note fails without running typst."""
    result = compile_note(tmp_path / "missing", default_config())

    assert not result.success
    assert "File not found" in result.errors[0]


@pytest.mark.unit
def test_compile_missing_binary(note, monkeypatch):
    """Test the result when the typst binary cannot be executed."""
    monkeypatch.setattr(compiler, "TYPST_BINARY", "noter-test-no-such-typst")

    result = compile_note(note, default_config())

    assert not result.success
    assert "Typst binary not found" in result.errors[0]


@pytest.mark.unit
def test_clean_pdfs(tmp_path):
    """Test PDF cleanup, recursive and flat."""
    (tmp_path / "sub").mkdir()
    (tmp_path / "a.pdf").write_bytes(b"%PDF")
    (tmp_path / "sub" / "b.pdf").write_bytes(b"%PDF")
    (tmp_path / "a.typ").write_text("")

    assert clean_pdfs(tmp_path, recursive=False) == 1
    assert (tmp_path / "sub" / "b.pdf").exists()
    assert clean_pdfs(tmp_path) == 1
    assert (tmp_path / "a.typ").exists()
    assert clean_pdfs(tmp_path / "missing") == 0
