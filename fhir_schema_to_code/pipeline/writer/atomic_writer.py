"""
Atomic file writer for generated output.

An interrupted run never leaves a half-written module behind: content goes to
a temporary file in the target directory and replaces the target in one step.
"""

from __future__ import annotations

import ast
import logging
import os
import tempfile
from pathlib import Path

from ...errors import EmissionError

logger = logging.getLogger(__name__)


class AtomicWriter:
    """Writes generated files with optional validation.

    Uses a two-phase commit approach:
    1. Write to a temporary file in the same directory
    2. Validate the content
    3. Atomically replace the target file

    Concurrent calls are safe as long as they target distinct paths.
    """

    def __init__(self, validate: bool = True, atomic: bool = True):
        """Initialize the writer.

        Args:
            validate: Syntax-check ``.py`` content before it is committed
            atomic: Write through a temporary file; otherwise write in place
        """
        self.validate = validate
        self.atomic = atomic

    def write(self, path: Path, content: bytes) -> None:
        """Write content to ``path``, creating parent directories.

        Args:
            path: Target file path
            content: UTF-8 encoded file content

        Raises:
            EmissionError: If validation fails
            OSError: If file operations fail
        """
        path = Path(path)
        if self.validate and path.suffix == ".py":
            self._validate_python(path, content)

        path.parent.mkdir(parents=True, exist_ok=True)
        if not self.atomic:
            path.write_bytes(content)
            return

        # Same directory ensures the rename stays on one filesystem
        temp_fd, temp_path_str = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        temp_path = Path(temp_path_str)
        try:
            with os.fdopen(temp_fd, "wb") as f:
                f.write(content)
            temp_path.replace(path)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise
        logger.debug("Wrote %s (%d bytes)", path, len(content))

    def _validate_python(self, path: Path, content: bytes) -> None:
        try:
            ast.parse(content, filename=str(path))
        except SyntaxError as e:
            raise EmissionError(f"Generated Python code is not valid ({path.name}, line {e.lineno}): {e.msg}") from e
