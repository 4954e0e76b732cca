"""
Schema ingestion: turns a directory of XSD documents into a set of stubs.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ...errors import SchemaParseError
from ..config import CodeGeneratorConfig
from .nodes import TypeStub
from .parser import SchemaDocumentParser

logger = logging.getLogger(__name__)


class SchemaIngestor:
    """Reads every schema document of a directory into unresolved stubs."""

    def __init__(self, config: CodeGeneratorConfig):
        self.config = config
        self.parser = SchemaDocumentParser(config.recursive_container_types)

    def ingest(self, directory: str | Path) -> frozenset[TypeStub]:
        """
        Parse all eligible documents of ``directory``.

        The configured base document is parsed first; the remaining documents
        are parsed in sorted order. Resolution does not depend on that order,
        sorting only keeps the logs stable.

        Args:
            directory: Directory holding ``*.xsd`` documents

        Returns:
            Every stub found

        Raises:
            SchemaParseError: If the base document is missing or any document is malformed
        """
        directory = Path(directory)
        logger.info("Creating in-memory representation of schema documents in %s", directory)

        base_path = directory / self.config.base_document
        if not base_path.is_file():
            raise SchemaParseError(
                f'Unable to locate "{self.config.base_document}" at expected path "{base_path}"',
                str(base_path),
            )

        stubs: list[TypeStub] = list(self.parser.parse_file(base_path))

        for path in self.documents(directory):
            if path.name == self.config.base_document:
                continue
            stubs.extend(self.parser.parse_file(path))

        logger.info("Ingested %d type stubs", len(stubs))
        return frozenset(stubs)

    def documents(self, directory: Path) -> list[Path]:
        """List the documents to parse, leaving out umbrella and excluded ones."""
        selected = []
        for path in sorted(directory.glob("*.xsd")):
            if self.is_aggregate(path.name):
                logger.debug('Skipping "aggregate" file "%s"', path)
                continue
            if path.name in self.config.excluded_documents:
                logger.debug('Skipping file "%s"', path)
                continue
            selected.append(path)
        return selected

    def is_aggregate(self, file_name: str) -> bool:
        return file_name != self.config.base_document and any(
            file_name.startswith(prefix) for prefix in self.config.aggregate_prefixes
        )
