"""
Build orchestrator.

Drives the phases of a run in a fixed order:

    UNINITIALIZED -> DEFINITION_BUILT -> CLASSES_EMITTED
        -> STATIC_ARTIFACTS_EMITTED -> (TESTS_EMITTED) -> DONE

Any failure aborts the run. Files already written stay on disk; there is no
rollback.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path

from ..errors import EmissionError
from .analyzer.ir_nodes import Type
from .analyzer.type_graph import TypeGraph
from .backends import STATIC_ARTIFACTS, STATIC_TEST_ARTIFACTS, ArtifactKind, Emitter
from .config import CodeGeneratorConfig
from .schema_ast.ingestor import SchemaIngestor
from .writer import AtomicWriter

logger = logging.getLogger(__name__)


class BuildState(str, Enum):
    UNINITIALIZED = "uninitialized"
    DEFINITION_BUILT = "definition_built"
    CLASSES_EMITTED = "classes_emitted"
    STATIC_ARTIFACTS_EMITTED = "static_artifacts_emitted"
    TESTS_EMITTED = "tests_emitted"
    DONE = "done"


class BuildOrchestrator:
    """Runs ingestion, resolution and emission for one output tree."""

    def __init__(self, config: CodeGeneratorConfig, writer: AtomicWriter | None = None):
        """
        Initialize the orchestrator.

        Templates are loaded here, so a broken template set fails before any
        schema document is read.

        Args:
            config: Code generation configuration
            writer: Output writer; defaults to one built from ``config.output``
        """
        self.config = config
        self.writer = writer or AtomicWriter(
            validate=config.output.validate_before_write,
            atomic=config.output.atomic_write,
        )
        self.emitter = Emitter(config)
        self.state = BuildState.UNINITIALIZED
        self._definition: TypeGraph | None = None
        self._written: list[Path] = []
        self._claimed: dict[Path, str] = {}

    @property
    def output_root(self) -> Path:
        return Path(self.config.output_path)

    @property
    def written_files(self) -> list[Path]:
        return list(self._written)

    def get_definition(self) -> TypeGraph:
        """
        Ingest the schema directory and resolve it into a type graph.

        The graph is built once per orchestrator; later calls return the same
        object.
        """
        if self._definition is not None:
            return self._definition

        self.config.validate()
        logger.info("--- XSD Parsing ---")
        stubs = SchemaIngestor(self.config).ingest(Path(self.config.schema_source_path))
        logger.info("--- XSD Parsing complete: %d types located ---", len(stubs))

        logger.info("--- Type Graph Resolution ---")
        self._definition = TypeGraph.resolve(stubs, self.config)
        logger.info("--- Type Graph Resolution complete ---")

        self.state = BuildState.DEFINITION_BUILT
        return self._definition

    def build_classes(self) -> list[Path]:
        """Emit one class module per type, in qualified-name order."""
        graph = self.get_definition()
        self._require(BuildState.DEFINITION_BUILT, "build_classes")

        logger.info("--- Class Generation ---")
        jobs = [(t, ArtifactKind.CLASS, self.class_path(t)) for t in graph.types()]
        written = self._emit_all(jobs, graph)
        logger.info("--- Class Generation complete: %d classes ---", len(written))

        self.state = BuildState.CLASSES_EMITTED
        return written

    def build_static_artifacts(self) -> list[Path]:
        """Emit the cross-cutting modules. Requires classes to have been emitted."""
        self._require(BuildState.CLASSES_EMITTED, "build_static_artifacts")
        graph = self.get_definition()

        logger.info("--- Static Artifact Generation ---")
        written = []
        for name in STATIC_ARTIFACTS:
            path = self.static_path(name)
            self._claim(path, name)
            self._write(path, self.emitter.emit_static(name, graph), name)
            self._written.append(path)
            written.append(path)
        logger.info("--- Static Artifact Generation complete: %d files ---", len(written))

        self.state = BuildState.STATIC_ARTIFACTS_EMITTED
        return written

    def build_tests(self) -> list[Path]:
        """
        Emit unit tests for every type and for the constants and type map.

        Integration tests are emitted only when a test endpoint is configured,
        and only for top-level resources.
        """
        self._require(BuildState.STATIC_ARTIFACTS_EMITTED, "build_tests")
        graph = self.get_definition()

        logger.info("--- Test Generation ---")
        jobs = [(t, ArtifactKind.UNIT_TEST, self.unit_test_path(t)) for t in graph.types()]
        if self.config.test_endpoint:
            jobs.extend(
                (t, ArtifactKind.INTEGRATION_TEST, self.integration_test_path(t))
                for t in graph.types()
                if graph.is_top_level_resource(t)
            )
        else:
            logger.info("No test endpoint configured; integration tests will not be generated")
        written = self._emit_all(jobs, graph)

        for name in STATIC_TEST_ARTIFACTS:
            path = self.static_test_path(name)
            self._claim(path, f"{name} test")
            self._write(path, self.emitter.emit_static(name, graph, test=True), name)
            self._written.append(path)
            written.append(path)
        logger.info("--- Test Generation complete: %d files ---", len(written))

        self.state = BuildState.TESTS_EMITTED
        return written

    def build(self) -> list[Path]:
        """
        Run every phase.

        Returns:
            Paths of all written files, in write order
        """
        self.get_definition()
        self.build_classes()
        self.build_static_artifacts()
        if self.config.skip_tests:
            logger.info("Skipping test generation")
        else:
            self.build_tests()
        self.state = BuildState.DONE
        logger.info("Wrote %d files to %s", len(self._written), self.output_root)
        return self.written_files

    # -- paths -------------------------------------------------------------

    def class_path(self, t: Type) -> Path:
        return self._layout_path(self.config.layout.class_path_template, t.namespace, t.module_name)

    def static_path(self, name: str) -> Path:
        return self._layout_path(self.config.layout.static_path_template, self.config.layout.namespace_root, name)

    def unit_test_path(self, t: Type) -> Path:
        return self._layout_path(self.config.layout.unit_test_path_template, t.namespace, t.module_name)

    def integration_test_path(self, t: Type) -> Path:
        return self._layout_path(self.config.layout.integration_test_path_template, t.namespace, t.module_name)

    def static_test_path(self, name: str) -> Path:
        return self._layout_path(self.config.layout.static_test_path_template, self.config.layout.namespace_root, name)

    def _layout_path(self, template: str, namespace: str, module_name: str) -> Path:
        relative = template.format(
            namespace_path=namespace.replace(".", "/"),
            module_name=module_name,
            root_path=self.config.layout.namespace_root,
        )
        return self.output_root / relative

    # -- internals ---------------------------------------------------------

    def _require(self, state: BuildState, phase: str) -> None:
        if self.state is not state:
            raise RuntimeError(f"{phase}() requires state {state.value}, current state is {self.state.value}")

    def _claim(self, path: Path, owner: str) -> None:
        """Reserve an output path; two artifacts never share a file."""
        if path in self._claimed:
            raise EmissionError(
                f'Output path {path} is produced by both "{self._claimed[path]}" and "{owner}"',
                owner,
            )
        self._claimed[path] = owner

    def _emit_all(self, jobs: Iterable[tuple[Type, ArtifactKind, Path]], graph: TypeGraph) -> list[Path]:
        jobs = list(jobs)
        for t, kind, path in jobs:
            self._claim(path, f"{t.name} {kind.value}")

        def emit_one(job: tuple[Type, ArtifactKind, Path]) -> Path:
            t, kind, path = job
            self._write(path, self.emitter.emit(t, kind, graph), t.name, kind.value)
            return path

        written = self._run(emit_one, jobs)
        self._written.extend(written)
        return written

    def _run(self, fn: Callable, jobs: list) -> list[Path]:
        if self.config.workers <= 1 or len(jobs) <= 1:
            return [fn(job) for job in jobs]
        with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
            # map() yields in submission order and re-raises the first failure
            return list(executor.map(fn, jobs))

    def _write(self, path: Path, content: bytes, owner: str, artifact_kind: str = "static") -> None:
        try:
            self.writer.write(path, content)
        except OSError as e:
            raise EmissionError(f"Failed to write {path}: {e}", owner, artifact_kind) from e
        logger.info("Wrote %s", path.relative_to(self.output_root) if path.is_relative_to(self.output_root) else path)
