"""
Tests for the output writer.
"""

import pytest

from fhir_schema_to_code.errors import EmissionError
from fhir_schema_to_code.pipeline import AtomicWriter


class TestAtomicWriter:
    def test_creates_parent_directories(self, tmp_path):
        target = tmp_path / "a" / "b" / "module.py"
        AtomicWriter().write(target, b"X = 1\n")
        assert target.read_bytes() == b"X = 1\n"

    def test_replaces_existing_file(self, tmp_path):
        target = tmp_path / "module.py"
        target.write_text("OLD = 1\n")
        AtomicWriter().write(target, b"NEW = 1\n")
        assert target.read_text() == "NEW = 1\n"

    def test_leaves_no_temporary_files(self, tmp_path):
        AtomicWriter().write(tmp_path / "module.py", b"X = 1\n")
        assert [p.name for p in tmp_path.iterdir()] == ["module.py"]

    def test_invalid_python_is_rejected(self, tmp_path):
        target = tmp_path / "module.py"
        target.write_text("KEEP = 1\n")
        with pytest.raises(EmissionError, match="line 1"):
            AtomicWriter().write(target, b"def broken(:\n")
        assert target.read_text() == "KEEP = 1\n"
        assert [p.name for p in tmp_path.iterdir()] == ["module.py"]

    def test_validation_can_be_disabled(self, tmp_path):
        target = tmp_path / "module.py"
        AtomicWriter(validate=False).write(target, b"def broken(:\n")
        assert target.read_bytes() == b"def broken(:\n"

    def test_non_python_files_are_not_validated(self, tmp_path):
        target = tmp_path / "notes.txt"
        AtomicWriter().write(target, b"def broken(:\n")
        assert target.read_bytes() == b"def broken(:\n"

    def test_non_atomic_mode(self, tmp_path):
        target = tmp_path / "pkg" / "module.py"
        AtomicWriter(atomic=False).write(target, b"X = 2\n")
        assert target.read_bytes() == b"X = 2\n"

    def test_failed_replace_removes_temporary_file(self, tmp_path, monkeypatch):
        def fail(self, target):
            raise OSError("replace failed")

        monkeypatch.setattr("pathlib.Path.replace", fail)
        with pytest.raises(OSError, match="replace failed"):
            AtomicWriter().write(tmp_path / "module.py", b"X = 1\n")
        assert list(tmp_path.iterdir()) == []
