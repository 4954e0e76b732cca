import json
import logging

import click

from .errors import CodegenError
from .pipeline import BuildOrchestrator, CodeGeneratorConfig

logger = logging.getLogger(__name__)


def load_config(config_path: str | None) -> CodeGeneratorConfig:
    if config_path is None:
        return CodeGeneratorConfig()
    with open(config_path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"Invalid JSON in {config_path}: {e}", param_hint="--config") from e
    return CodeGeneratorConfig.from_dict(data)


@click.command()
@click.option("--config", "-c", default=None, type=click.Path(exists=True, dir_okay=False, resolve_path=True))
@click.option("--skip-tests", is_flag=True, default=False, help="Do not generate unit or integration tests")
@click.option("--test-endpoint", default=None, type=str, help="Server URL; enables integration test generation")
@click.option("--namespace-root", default=None, type=str, help="Root package of the generated library")
@click.option("--workers", "-w", default=None, type=click.IntRange(min=1), help="Emission threads")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
@click.argument("schema_path", type=click.Path(exists=True, file_okay=False, resolve_path=True))
@click.argument("output", type=click.Path(file_okay=False, resolve_path=True))
def fhir_schema_to_code(config, skip_tests, test_endpoint, namespace_root, workers, verbose, schema_path, output):
    """Generate a Python library from the XSD documents in SCHEMA_PATH into OUTPUT."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(config)

    # Command-line values override the config file
    config.schema_source_path = schema_path
    config.output_path = output
    if skip_tests:
        config.skip_tests = True
    if test_endpoint is not None:
        config.test_endpoint = test_endpoint
    if namespace_root is not None:
        config.layout.namespace_root = namespace_root
    if workers is not None:
        config.workers = workers

    try:
        written = BuildOrchestrator(config).build()
    except CodegenError as e:
        logger.error("Generation failed: %s", e)
        raise click.ClickException(str(e)) from e

    click.echo(f"Generated {len(written)} files in {output}")


if __name__ == "__main__":
    fhir_schema_to_code()
