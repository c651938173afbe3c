"""Secure Score Report (ssr) - Microsoft Secure Score HTML/CSV report.

Entry point: runs a report when invoked without a subcommand.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click


@click.group(invoke_without_command=True)
@click.pass_context
@click.option("--tenant-id", "-t", type=str, help="Tenant ID (GUID) or primary domain")
@click.option("--client-id", "-c", type=str, help="App registration (client) ID")
@click.option("--client-secret", type=str, help="Client secret (default: env var named by graph.client_secret_env)")
@click.option("--cloud", type=click.Choice(["commercial", "usgov", "china"]), help="Microsoft cloud instance")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="YAML config file")
@click.option("--mappings", "mappings_path", type=click.Path(dir_okay=False), help="URL mapping JSON (default: bundled)")
@click.option("--output-dir", "-o", type=click.Path(file_okay=False), help="Directory for report files")
@click.option("--csv", "csv_export", is_flag=True, help="Also export CSV")
@click.option("--include-deprecated", is_flag=True, help="Include deprecated controls")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Save console output to this file")
@click.option("--dry-run", is_flag=True, help="Use bundled sample data (no API calls)")
def ssr_cli(
    ctx: click.Context,
    tenant_id: str | None,
    client_id: str | None,
    client_secret: str | None,
    cloud: str | None,
    config_path: str | None,
    mappings_path: str | None,
    output_dir: str | None,
    csv_export: bool,
    include_deprecated: bool,
    log_file: str | None,
    dry_run: bool,
) -> None:
    """Secure Score Report - tenant Secure Score controls as an HTML report."""
    if ctx.invoked_subcommand is not None:
        return

    from ..core.orchestrator import run_report

    exit_code = asyncio.run(
        run_report(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret,
            cloud=cloud,
            config_path=Path(config_path) if config_path else None,
            mappings_path=Path(mappings_path) if mappings_path else None,
            output_dir=Path(output_dir) if output_dir else None,
            csv=csv_export,
            include_deprecated=include_deprecated,
            dry_run=dry_run,
            log_file=Path(log_file) if log_file else None,
        )
    )
    sys.exit(exit_code)


@ssr_cli.command()
@click.option("--directory", "-d", type=click.Path(exists=True, file_okay=False), default=".")
def init(directory: str) -> None:
    """Write a securescore.yaml config template."""
    from ..core.orchestrator import initialize_config

    initialize_config(Path(directory))


@ssr_cli.command("check-mappings")
@click.argument("path", type=click.Path(dir_okay=False), required=False)
def check_mappings(path: str | None) -> None:
    """Validate a URL mapping file (default: the bundled table).

    Example: ssr check-mappings ./url-mappings.json
    """
    from ..core.errors import ConfigurationError
    from ..core.orchestrator import EXIT_CONFIG, load_mappings

    try:
        table = load_mappings(Path(path) if path else None)
    except ConfigurationError as e:
        click.echo(f"Invalid mapping file: {e}", err=True)
        sys.exit(EXIT_CONFIG)

    click.echo(f"Source: {table.source}")
    for rule in table.fallback_rules:
        click.echo(f"  {rule.name}: {len(rule.keywords)} keywords -> {rule.url}")
    if table.duplicate_keys:
        click.echo(f"{len(table.duplicate_keys)} duplicate control mappings")


def main() -> None:
    ssr_cli()


if __name__ == "__main__":
    main()
