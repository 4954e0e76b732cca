"""
Configuration for the generator pipeline.

All file-layout decisions live here so that the orchestrator and emitter
never consult module-level constants for output paths.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..errors import ConfigurationError


@dataclass
class LayoutConfig:
    """Namespace root and per-artifact-kind path templates.

    Path templates are relative to the output directory and are formatted with
    ``namespace_path``, ``module_name`` and ``root_path``.
    """

    # Root package of the generated library
    namespace_root: str = "fhir"

    class_path_template: str = "{namespace_path}/{module_name}.py"
    static_path_template: str = "{root_path}/{module_name}.py"
    unit_test_path_template: str = "tests/unit/test_{module_name}.py"
    integration_test_path_template: str = "tests/integration/test_{module_name}.py"
    static_test_path_template: str = "tests/test_{module_name}.py"


@dataclass
class OutputConfig:
    """Configuration for output file handling.

    Attributes:
        validate_before_write: Whether to syntax-check generated Python before writing
        atomic_write: Whether to write through a temporary file and replace
    """

    validate_before_write: bool = True
    atomic_write: bool = True


@dataclass
class FormatterConfig:
    """Configuration for post-processing formatters."""

    # Whether formatting is enabled
    enabled: bool = False

    # Line length for the formatter
    line_length: int = 100

    # Python version target (e.g., "py312", "py313")
    target_version: str = "py312"


@dataclass
class CodeGeneratorConfig:
    """Configuration options for code generation."""

    # Where schema documents are read from
    schema_source_path: str = ""

    # Where generated files are written
    output_path: str = ""

    # Skip unit/integration test generation
    skip_tests: bool = False

    # Enables integration-test generation for top-level resources
    test_endpoint: str | None = None

    # Default parse options rendered into every generated XML codec
    xml_parse_options: dict[str, bool] = field(default_factory=dict)

    # Document parsed before all others; must exist
    base_document: str = "fhir-base.xsd"

    # File name prefixes of umbrella documents that only re-export others
    aggregate_prefixes: list[str] = field(default_factory=lambda: ["fhir-"])

    # Documents never parsed
    excluded_documents: list[str] = field(default_factory=lambda: ["xml.xsd"])

    # Container types allowed to take part in self-referential structures
    recursive_container_types: list[str] = field(default_factory=lambda: ["ResourceContainer"])

    # Namespace declared on XML documents written by the generated codecs
    xml_namespace: str = "http://hl7.org/fhir"

    # Prefix prepended to every generated class name
    class_prefix: str = "FHIR"

    # Add generation comment at top of file
    add_generation_comment: bool = True

    # Emission workers; 1 emits sequentially
    workers: int = 1

    layout: LayoutConfig = field(default_factory=LayoutConfig)
    formatter: FormatterConfig = field(default_factory=FormatterConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @staticmethod
    def from_dict(d: dict) -> CodeGeneratorConfig:
        """Create a config from a dictionary."""
        config = CodeGeneratorConfig()
        for k, v in d.items():
            if k == "layout" and isinstance(v, dict):
                config.layout = LayoutConfig(**v)
            elif k == "formatter" and isinstance(v, dict):
                config.formatter = FormatterConfig(**v)
            elif k == "output" and isinstance(v, dict):
                config.output = OutputConfig(**v)
            elif hasattr(config, k):
                setattr(config, k, v)
        return config

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "schema_source_path": self.schema_source_path,
            "output_path": self.output_path,
            "skip_tests": self.skip_tests,
            "test_endpoint": self.test_endpoint,
            "xml_parse_options": dict(self.xml_parse_options),
            "base_document": self.base_document,
            "aggregate_prefixes": list(self.aggregate_prefixes),
            "excluded_documents": list(self.excluded_documents),
            "recursive_container_types": list(self.recursive_container_types),
            "class_prefix": self.class_prefix,
            "xml_namespace": self.xml_namespace,
            "add_generation_comment": self.add_generation_comment,
            "workers": self.workers,
            "layout": {
                "namespace_root": self.layout.namespace_root,
                "class_path_template": self.layout.class_path_template,
                "static_path_template": self.layout.static_path_template,
                "unit_test_path_template": self.layout.unit_test_path_template,
                "integration_test_path_template": self.layout.integration_test_path_template,
                "static_test_path_template": self.layout.static_test_path_template,
            },
            "formatter": {
                "enabled": self.formatter.enabled,
                "line_length": self.formatter.line_length,
                "target_version": self.formatter.target_version,
            },
            "output": {
                "validate_before_write": self.output.validate_before_write,
                "atomic_write": self.output.atomic_write,
            },
        }

    def validate(self) -> None:
        """Check the options the run cannot start without.

        Raises:
            ConfigurationError: If a required path is missing or a value is out of range
        """
        if not self.schema_source_path:
            raise ConfigurationError("schema_source_path is required")
        if not Path(self.schema_source_path).is_dir():
            raise ConfigurationError(f"Schema source path is not a directory: {self.schema_source_path}")
        if not self.output_path:
            raise ConfigurationError("output_path is required")
        if self.workers < 1:
            raise ConfigurationError(f"workers must be at least 1, got {self.workers}")
        if not self.layout.namespace_root.isidentifier():
            raise ConfigurationError(f"namespace_root must be a Python identifier, got {self.layout.namespace_root!r}")
        for name, value in self.xml_parse_options.items():
            if not isinstance(value, bool):
                raise ConfigurationError(f"xml_parse_options[{name!r}] must be a boolean")
