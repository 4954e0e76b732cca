"""
Ruff formatter for generated modules.
"""

from __future__ import annotations

import logging
import subprocess
import threading

from ..config import FormatterConfig
from .base import Formatter

logger = logging.getLogger(__name__)


class RuffFormatter(Formatter):
    """Pipes generated source through ``ruff format``."""

    def __init__(self):
        self._available = None
        self._lock = threading.Lock()

    def is_available(self) -> bool:
        with self._lock:
            if self._available is None:
                try:
                    result = subprocess.run(
                        ["ruff", "--version"],
                        capture_output=True,
                        text=True,
                        timeout=5,
                    )
                    self._available = result.returncode == 0
                except (subprocess.SubprocessError, FileNotFoundError):
                    self._available = False
                if not self._available:
                    logger.warning("ruff is not installed; generated modules are left unformatted")
            return self._available

    def format(self, code: str, config: FormatterConfig) -> str:
        if not self.is_available():
            return code

        cmd = ["ruff", "format", "--stdin-filename", "generated.py"]
        if config.line_length:
            cmd.extend(["--line-length", str(config.line_length)])
        if config.target_version:
            cmd.extend(["--target-version", config.target_version])

        try:
            result = subprocess.run(cmd, input=code, capture_output=True, text=True, timeout=30)
        except subprocess.SubprocessError as e:
            logger.debug("ruff format failed: %s", e)
            return code

        if result.returncode != 0:
            logger.debug("ruff format exited with %d: %s", result.returncode, result.stderr.strip())
            return code
        return result.stdout
