"""Main report orchestrator.

Load configuration and URL mappings, fetch Secure Score data, build the
report, write HTML (and optionally CSV). Returns an exit code.
"""

from __future__ import annotations

import re
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from .. import __version__
from ..formatters.csv_export import export_csv
from ..formatters.html_report import export_html
from ..graph.client import GraphClient
from ..graph.sample import load_sample_tenant
from ..mappings.loader import get_mapping_table
from ..models.control import ControlDefinition, SecureScoreSnapshot
from ..models.mapping import UrlMappingTable
from ..models.report import ReportData
from ..utils.sanitize import sanitize_error
from .assembler import compliance_percentage, score_percentage, set_metadata
from .builder import build_report
from .config import get_client_secret, get_effective_config
from .errors import ConfigurationError, GraphError
from .normalizer import UrlNormalizer

console = Console(record=True)

EXIT_OK = 0
EXIT_USAGE = 11
EXIT_CONFIG = 12
EXIT_GRAPH = 13

CONFIG_TEMPLATE = """\
# Secure Score report configuration
# Secrets are read from the environment, never from this file.

graph:
  cloud: commercial          # commercial | usgov | china
  tenant_id: ""
  client_id: ""
  client_secret_env: SECURESCORE_CLIENT_SECRET

report:
  output_dir: reports
  csv: false
  include_deprecated: false

mappings:
  path: ""                   # empty = bundled url-mappings.json
"""


def initialize_config(directory: Path) -> Path:
    """Write a commented securescore.yaml template if none exists."""
    config_path = directory / "securescore.yaml"
    if config_path.exists():
        console.print(f"  [yellow]WARN[/yellow] {config_path.name} already exists, left unchanged")
        return config_path
    config_path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
    console.print(f"  [green]Initialized[/green] {config_path}")
    return config_path


def load_mappings(path: Optional[Path]) -> UrlMappingTable:
    """Load the URL mapping table and report duplicate control names."""
    table = get_mapping_table(path)
    console.print(
        f"  [green]OK[/green] URL mappings: {len(table.control_mappings)} controls, "
        f"{len(table.fallback_rules)} fallback rules, "
        f"{len(table.url_replacements)} replacements"
    )
    for key in table.duplicate_keys:
        console.print(
            f"  [yellow]WARN[/yellow] Duplicate control mapping '{escape(key)}': "
            f"later category overrides earlier one"
        )
    return table


def _file_slug(name: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9._-]+", "-", name).strip("-")
    return slug or "tenant"


async def fetch_tenant_data(
    graph_config: dict,
    tenant_id: str,
    client_id: str,
    client_secret: str,
) -> tuple[dict, SecureScoreSnapshot, list[ControlDefinition]]:
    """Fetch organization, latest Secure Score and control profiles from Graph."""
    async with GraphClient(
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
        cloud=graph_config.get("cloud", "commercial"),
        timeout=graph_config.get("timeout_seconds", 60),
        retry_attempts=graph_config.get("retry_attempts", 3),
        retry_delay=graph_config.get("retry_delay_seconds", 5),
    ) as client:
        await client.authenticate()
        console.print("  [green]OK[/green] Authenticated to Microsoft Graph")

        organization = await client.get_organization()
        snapshot = await client.get_latest_secure_score()
        profiles = await client.list_control_profiles()

    return organization, snapshot, profiles


def write_outputs(
    report: ReportData,
    output_dir: Path,
    file_stem: str,
    title: str,
    csv: bool,
) -> list[Path]:
    written = [export_html(report, output_dir / f"{file_stem}.html", title=title)]
    if csv:
        written.append(export_csv(report, output_dir / f"{file_stem}.csv"))
    return written


async def run_report(
    tenant_id: Optional[str] = None,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    cloud: Optional[str] = None,
    config_path: Optional[Path] = None,
    mappings_path: Optional[Path] = None,
    output_dir: Optional[Path] = None,
    csv: bool = False,
    include_deprecated: bool = False,
    dry_run: bool = False,
    log_file: Optional[Path] = None,
) -> int:
    """Run one report for one tenant. Returns exit code."""
    try:
        return await _run_report(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret,
            cloud=cloud,
            config_path=config_path,
            mappings_path=mappings_path,
            output_dir=output_dir,
            csv=csv,
            include_deprecated=include_deprecated,
            dry_run=dry_run,
        )
    finally:
        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            console.save_text(str(log_file))


async def _run_report(
    tenant_id: Optional[str],
    client_id: Optional[str],
    client_secret: Optional[str],
    cloud: Optional[str],
    config_path: Optional[Path],
    mappings_path: Optional[Path],
    output_dir: Optional[Path],
    csv: bool,
    include_deprecated: bool,
    dry_run: bool,
) -> int:
    start_time = time.time()

    console.print()
    console.print(f"  [bold cyan]SECURE SCORE REPORT[/bold cyan] v{__version__}")
    if dry_run:
        console.print("  Mode:    [yellow]DRY RUN[/yellow] (sample data)")
    console.print()

    # Load config
    cli_overrides: dict = {}
    graph_overrides = {
        k: v for k, v in (("tenant_id", tenant_id), ("client_id", client_id), ("cloud", cloud)) if v
    }
    if graph_overrides:
        cli_overrides["graph"] = graph_overrides
    report_overrides: dict = {}
    if output_dir:
        report_overrides["output_dir"] = str(output_dir)
    if csv:
        report_overrides["csv"] = True
    if include_deprecated:
        report_overrides["include_deprecated"] = True
    if report_overrides:
        cli_overrides["report"] = report_overrides
    if mappings_path:
        cli_overrides["mappings"] = {"path": str(mappings_path)}

    try:
        config = get_effective_config(config_path, cli_overrides=cli_overrides or None)
        mapping_file = config["mappings"].get("path") or None
        table = load_mappings(Path(mapping_file) if mapping_file else None)
    except ConfigurationError as e:
        console.print(f"  [red]ERROR[/red] {escape(str(e))}")
        return EXIT_CONFIG

    graph_config = config["graph"]
    report_config = config["report"]

    # Fetch
    if dry_run:
        organization, snapshot, profiles = load_sample_tenant()
        tenant = organization.get("id", "")
        generated_by = report_config.get("generated_by") or "dry-run"
    else:
        tenant = graph_config.get("tenant_id") or ""
        app_id = graph_config.get("client_id") or ""
        secret = client_secret or get_client_secret(graph_config)
        missing = [
            name for name, value in (
                ("tenant id", tenant),
                ("client id", app_id),
                (f"client secret (${graph_config.get('client_secret_env')})", secret),
            ) if not value
        ]
        if missing:
            console.print(f"  [red]ERROR[/red] Missing credentials: {', '.join(missing)}")
            return EXIT_USAGE

        console.print(f"  [cyan]Connecting to Microsoft Graph ({graph_config.get('cloud')})...[/cyan]")
        try:
            organization, snapshot, profiles = await fetch_tenant_data(
                graph_config, tenant, app_id, secret
            )
        except GraphError as e:
            console.print(f"  [red]ERROR[/red] Microsoft Graph: {escape(sanitize_error(str(e), [secret]))}")
            return EXIT_GRAPH
        generated_by = report_config.get("generated_by") or f"app:{app_id}"

    tenant_name = organization.get("displayName", "")
    console.print(
        f"  [green]OK[/green] Tenant: {tenant_name or tenant} - "
        f"{len(profiles)} controls, score {snapshot.current_score:g}/{snapshot.max_score:g}"
    )

    # Build
    console.print("\n  [cyan]Evaluating controls...[/cyan]")
    report = build_report(
        profiles,
        snapshot.control_scores,
        UrlNormalizer(table),
        tenant_id=tenant,
        total_max_score=snapshot.max_score,
        include_deprecated=bool(report_config.get("include_deprecated")),
        console=console,
    )
    generated_at = datetime.now()
    set_metadata(
        report,
        tenant_id=tenant,
        tenant_name=tenant_name,
        generated_by=generated_by,
        generated_at=generated_at.strftime("%Y-%m-%d %H:%M:%S"),
        current_score=snapshot.current_score,
        max_score=snapshot.max_score,
    )

    # Render
    file_stem = (
        f"SecureScoreReport-{_file_slug(tenant_name or tenant or 'sample')}"
        f"-{generated_at.strftime('%Y%m%d-%H%M%S')}"
    )
    written = write_outputs(
        report,
        Path(report_config.get("output_dir") or "reports"),
        file_stem,
        title=report_config.get("title") or "Microsoft Secure Score Report",
        csv=bool(report_config.get("csv")),
    )

    s = report.summary
    console.print(
        f"  [green]OK[/green] {s.total_checks} controls: "
        f"{s.compliant} compliant / {s.non_compliant} non-compliant / "
        f"{s.not_applicable} not applicable "
        f"({s.high_risk}H/{s.medium_risk}M/{s.low_risk}L)"
    )
    if s.skipped:
        console.print(f"  [yellow]WARN[/yellow] {s.skipped} controls skipped (invalid data)")
    console.print(
        f"  Secure Score: {score_percentage(report)}%  "
        f"Controls compliant: {compliance_percentage(report)}%"
    )
    for path in written:
        console.print(f"  Report: {path}")
    console.print(f"  Done in {round(time.time() - start_time, 1)}s")
    console.print()

    return EXIT_OK
