import importlib
import re
import sys
from pathlib import Path

import pytest

from fhir_schema_to_code.pipeline import BuildOrchestrator, CodeGeneratorConfig

SCHEMAS_DIR = Path(__file__).parent / "test_data" / "schemas"


@pytest.fixture
def schemas_dir() -> Path:
    return SCHEMAS_DIR


@pytest.fixture
def fhir_like_dir() -> Path:
    return SCHEMAS_DIR / "fhir_like"


@pytest.fixture
def make_config(tmp_path):
    """Build a config reading ``fhir_like`` (or another fixture directory) into ``tmp_path``."""

    def _make(schema_dir: str = "fhir_like", **overrides) -> CodeGeneratorConfig:
        config = CodeGeneratorConfig(
            schema_source_path=str(SCHEMAS_DIR / schema_dir),
            output_path=str(tmp_path / "out"),
        )
        for key, value in overrides.items():
            setattr(config, key, value)
        return config

    return _make


@pytest.fixture
def generated_library(tmp_path, request):
    """Generate the ``fhir_like`` library under a unique root package and make it importable."""
    root = "fhirgen_" + re.sub(r"\W", "_", request.node.nodeid)
    output = tmp_path / "library"
    config = CodeGeneratorConfig(
        schema_source_path=str(SCHEMAS_DIR / "fhir_like"),
        output_path=str(output),
    )
    config.layout.namespace_root = root
    BuildOrchestrator(config).build()

    sys.path.insert(0, str(output))
    importlib.invalidate_caches()
    try:
        yield root, output
    finally:
        sys.path.remove(str(output))
        for name in [m for m in sys.modules if m == root or m.startswith(f"{root}.")]:
            del sys.modules[name]
