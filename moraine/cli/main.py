"""
Moraine CLI - Command-line interface for declaring stacks and settling exports.
"""

import json
import logging
import sys

import click

from moraine import __version__
from moraine.config.loader import dump_stack_config, load_stack_config
from moraine.config.project import StackConfig
from moraine.config.provider import LocalConfig
from moraine.core.errors import MoraineError
from moraine.core.run import ProvisioningRun
from moraine.providers.local import LocalProvider
from moraine.stacks.builder import declare_stack
from moraine.stacks.church_sas import REPOSITORY, church_sas_config

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool):
    """
    Moraine - Declare hosted projects and export URLs derived from them.

    Values the platform assigns on creation are composed without blocking
    and settled once every project is created.
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_failures(values: tuple[str, ...]) -> dict[str, str]:
    failures = {}
    for value in values:
        name, sep, message = value.partition("=")
        if not sep or not name or not message:
            raise click.BadParameter(f"expected NAME=MESSAGE, got '{value}'", param_hint="--fail")
        failures[name] = message
    return failures


def _declare(config: StackConfig) -> ProvisioningRun:
    run = ProvisioningRun(name=config.name)
    declare_stack(run, config)
    return run


@cli.command()
@click.argument("stack_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--fail",
    "failures",
    multiple=True,
    metavar="NAME=MESSAGE",
    help="Make creation of project NAME fail with MESSAGE (repeatable)",
)
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Worker threads")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="Seconds before aborting")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text")
def up(stack_file: str, failures: tuple[str, ...], workers: int, timeout: float, output_format: str):
    """
    Create a stack with the local provider and print its exports.

    Exits non-zero if any export failed.

    Example:
        moraine up stack.yaml
        moraine up stack.yaml --fail church-sas-api-prod="creation quota exceeded"
        moraine up stack.yaml --format json
    """
    try:
        config = load_stack_config(stack_file)
        run = _declare(config)
        provider = LocalProvider(
            config=LocalConfig.from_env(
                failures=_parse_failures(failures),
                max_workers=workers,
                timeout=timeout,
            )
        )
        provider.apply(run)
        result = run.complete()
    except MoraineError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        click.echo(f"\n Stack: {result.run_name}")
        click.echo(f"{'=' * 50}")
        click.echo(f"\n Outputs:")
        for name, export in result.results.items():
            if export.ok:
                click.echo(f"  {name}: {export.value}")
            else:
                click.echo(f"  {name}: ✗ {export.error}")

    if not result.ok:
        click.echo(f"✗ {len(result.failures)} export(s) failed", err=True)
        sys.exit(1)


@cli.command()
@click.argument("stack_file", type=click.Path(exists=True, dir_okay=False))
def preview(stack_file: str):
    """
    Show the creation order and exports of a stack without creating anything.

    Example:
        moraine preview stack.yaml
    """
    try:
        config = load_stack_config(stack_file)
        run = _declare(config)
        levels = run.creation_order()
    except MoraineError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    click.echo(f"\n Stack: {config.name}")
    click.echo(f"{'=' * 50}")

    click.echo(f"\n Creation Order:")
    for i, level in enumerate(levels, 1):
        click.echo(f"  {i}. {', '.join(handle.urn for handle in level)}")

    click.echo(f"\n Exports: {len(run.registry)}")
    for name in run.registry.list_exports():
        click.echo(f"  - {name}")

    # Nothing was applied; settle so no export is left pending.
    run.abort("preview only")


@cli.command()
@click.argument("stack_file", type=click.Path(exists=True, dir_okay=False))
def validate(stack_file: str):
    """
    Validate a stack definition without creating anything.

    Checks the YAML schema, name uniqueness, export references and the
    dependency graph.

    Example:
        moraine validate stack.yaml
    """
    try:
        config = load_stack_config(stack_file)
        run = _declare(config)
        run.creation_order()
        run.abort("validation only")
    except MoraineError as e:
        click.echo(f"✗ Validation failed: {e}", err=True)
        sys.exit(1)

    click.echo(
        f"✓ Stack '{config.name}' is valid "
        f"({len(config.projects)} projects, {len(config.exports)} exports)"
    )


@cli.command()
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="File to write (default: stdout)")
@click.option("--repository", default=None, help=f"Wire projects to a GitHub repository (e.g. {REPOSITORY})")
@click.option("--api-framework", default="other", show_default=True, help="Framework preset for the API projects")
def init(output: str, repository: str, api_framework: str):
    """
    Write the church-sas stack definition as YAML.

    Example:
        moraine init -o stack.yaml
        moraine init --repository PabloReca/church-sas -o stack.yaml
    """
    text = dump_stack_config(church_sas_config(repository=repository, api_framework=api_framework))
    if output:
        with open(output, "w") as f:
            f.write(text)
        click.echo(f"✓ Wrote {output}")
    else:
        click.echo(text, nl=False)


if __name__ == "__main__":
    cli()
