"""
Tests that enforce coding standards.

These tests verify that the codebase follows our import conventions.
"""

import pathlib as _pathlib

import pytest as _pytest

# Directories to check
SRC_DIR = _pathlib.Path(__file__).parent.parent / "src" / "tokenweave"
TESTS_DIR = _pathlib.Path(__file__).parent.parent / "tests"


def _get_python_files(directory: _pathlib.Path) -> list[_pathlib.Path]:
    """Get all Python files in a directory, recursively."""
    return list(directory.rglob("*.py"))


def _extract_imports(content: str) -> list[tuple[int, str]]:
    """
    Extract 'from X import Y' statements from file content.

    Returns list of (line_number, line_content) tuples.
    Excludes:
    - 'from __future__ import' (allowed)
    - Lines inside TYPE_CHECKING blocks (allowed)
    """
    imports: list[tuple[int, str]] = []
    in_type_checking = False

    for i, line in enumerate(content.split("\n"), start=1):
        stripped = line.strip()

        if "if TYPE_CHECKING:" in line or "if _typing.TYPE_CHECKING:" in line:
            in_type_checking = True
            continue

        # End of TYPE_CHECKING block (simplistic detection)
        if in_type_checking and stripped and not line.startswith((" ", "\t", "#")):
            in_type_checking = False

        if in_type_checking:
            continue

        if stripped.startswith("from ") and " import " in stripped:
            if "from __future__ import" in stripped:
                continue
            imports.append((i, stripped))

    return imports


def _check_file_imports(path: _pathlib.Path) -> list[str]:
    """Return import violations in a file. __init__.py re-exports are allowed."""
    if path.name == "__init__.py":
        return []
    content = path.read_text(encoding="utf-8")
    return [f"{path}:{line_num}: {line}" for line_num, line in _extract_imports(content)]


def _fail_with(violations: list[str]) -> None:
    msg = "Found forbidden 'from X import Y' imports:\n"
    msg += "\n".join(f"  {v}" for v in violations)
    msg += "\n\nUse 'import X as _x' (external) or 'import X as x' (internal) instead."
    _pytest.fail(msg)


class TestImportStyle:
    """Tests for import style compliance."""

    def test_src_no_from_imports(self) -> None:
        """Source files should not use 'from X import Y' pattern."""
        violations: list[str] = []
        for path in _get_python_files(SRC_DIR):
            violations.extend(_check_file_imports(path))
        if violations:
            _fail_with(violations)

    def test_tests_no_from_imports(self) -> None:
        """Test files should not use 'from X import Y' pattern."""
        violations: list[str] = []
        for path in _get_python_files(TESTS_DIR):
            if path.name == "test_coding_standards.py":
                continue
            violations.extend(_check_file_imports(path))
        if violations:
            _fail_with(violations)


class TestImportExtraction:
    """Tests for the import extraction logic itself."""

    def test_detects_from_import(self) -> None:
        """Should detect basic from imports."""
        imports = _extract_imports("from pathlib import Path")
        assert imports == [(1, "from pathlib import Path")]

    def test_allows_future_imports(self) -> None:
        """Should allow __future__ imports."""
        assert _extract_imports("from __future__ import annotations") == []

    def test_ignores_type_checking_block(self) -> None:
        """Should ignore imports inside TYPE_CHECKING blocks."""
        content = """
import typing as _typing

if _typing.TYPE_CHECKING:
    from some_module import SomeType

def foo():
    pass
"""
        assert _extract_imports(content) == []

    def test_detects_import_after_type_checking(self) -> None:
        """Should still detect imports after TYPE_CHECKING block ends."""
        content = """
import typing as _typing

if _typing.TYPE_CHECKING:
    from allowed import Type

from forbidden import Other
"""
        imports = _extract_imports(content)
        assert len(imports) == 1
        assert "from forbidden import Other" in imports[0][1]
