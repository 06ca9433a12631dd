"""Acumatica Import Tool - command line interface."""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click
from colorama import Fore, Style, init

from acuimport import __version__
from acuimport.api.auth import Credentials
from acuimport.api.errors import AcumaticaError
from acuimport.api.error_parser import humanize_error
from acuimport.api.factory import GatewayFactory, encode_credentials
from acuimport.cli.interactive import MappingEditor, print_header, print_mappings
from acuimport.config import AppConfig
from acuimport.exporter.csv_exporter import CsvLogExporter
from acuimport.importer.errors import ImportPipelineError, SessionConflictError
from acuimport.importer.events import CANCELLED, COMPLETE, ERROR, PROGRESS
from acuimport.importer.processor import ImportProcessor, ImportRequest, cancel_import
from acuimport.mapper.heuristic import auto_map, missing_required_fields
from acuimport.mapper.mapping import FieldMapping
from acuimport.mapper.templates import apply_template, template_from_mappings
from acuimport.parser.base import ParsedFile, ParseError
from acuimport.parser.parser_factory import ParserFactory
from acuimport.schema.adapters import EntityAdapter, get_entity_adapter
from acuimport.schema.models import IMPORT_MODE_LABELS, ImportMode, entity_type_from_slug
from acuimport.store.sql_store import SqlStore
from acuimport.store.models import Connection, RowStatus, SessionStatus, new_id
from acuimport.validator.models import RowStatus as ValidationStatus
from acuimport.validator.service import ValidationRequest, ValidationService

logger = logging.getLogger(__name__)

# Initialize colorama
init(autoreset=True)

STATUS_COLORS = {
    SessionStatus.RUNNING: Fore.CYAN,
    SessionStatus.COMPLETED: Fore.GREEN,
    SessionStatus.FAILED: Fore.RED,
    SessionStatus.CANCELLED: Fore.YELLOW,
}


@dataclass
class CliContext:
    """Objects shared by every command."""

    config: AppConfig
    store: SqlStore
    gateways: GatewayFactory
    user_id: str


def print_banner():
    """Print application banner."""
    click.echo(f"{Fore.CYAN}{'=' * 44}")
    click.echo(f"{Fore.CYAN}║   {Fore.WHITE}Acumatica Import Tool{Fore.CYAN}                ║")
    click.echo(f"{Fore.CYAN}║   {Fore.WHITE}Spreadsheet to ERP record loader{Fore.CYAN}     ║")
    click.echo(f"{Fore.CYAN}{'=' * 44}{Style.RESET_ALL}")
    click.echo()


def fail(message: str):
    """Print an error in red and exit with status 1."""
    click.echo(f"{Fore.RED}❌ {message}", err=True)
    raise SystemExit(1)


def resolve_adapter(entity: str) -> EntityAdapter:
    """Accept an entity type (``StockItem``) or a slug (``stock-items``)."""
    entity_type = entity_type_from_slug(entity)
    try:
        return get_entity_adapter(entity_type or entity)
    except ImportPipelineError as e:
        fail(e.message)


def load_file(path: str, sheet: Optional[str]) -> ParsedFile:
    try:
        parsed = ParserFactory.parse_file(path, sheet=sheet)
    except (ParseError, ValueError) as e:
        fail(str(e))

    sheet_info = f", sheet {parsed.selected_sheet}" if parsed.selected_sheet else ""
    click.echo(
        f"{Fore.GREEN}✅ Parsed {parsed.file_name}: "
        f"{parsed.total_rows} rows, {parsed.total_columns} columns{sheet_info}"
    )
    return parsed


def load_mapping_file(path: str) -> Tuple[List[FieldMapping], Dict[str, str]]:
    """Read ``{"mappings": [...], "default_values": {...}}``."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    mappings = [FieldMapping.from_dict(m) for m in data.get("mappings", [])]
    return mappings, dict(data.get("default_values") or {})


def save_mapping_file(path: str, entity_type: str, mappings: List[FieldMapping], default_values: Dict[str, str]):
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        json.dump(
            {
                "entity_type": entity_type,
                "mappings": [m.to_dict() for m in mappings],
                "default_values": default_values,
            },
            f,
            indent=2,
        )


def build_mappings(
    ctx: CliContext,
    adapter: EntityAdapter,
    parsed: ParsedFile,
    mapping_path: Optional[str],
    template_name: Optional[str],
) -> Tuple[List[FieldMapping], Dict[str, str]]:
    """Mappings from a mapping file, a saved template, or the auto-mapper."""
    if mapping_path:
        return load_mapping_file(mapping_path)

    if template_name:
        templates = ctx.store.list_templates(ctx.user_id, adapter.entity_type.value)
        template = next((t for t in templates if t.name == template_name), None)
        if template is None:
            fail(f"Template not found: {template_name}")
        click.echo(f"{Fore.CYAN}Applying template '{template.name}'")
        return apply_template(parsed.headers, template), {}

    return auto_map(parsed.headers, adapter.fields, adapter.aliases), {}


@click.group()
@click.version_option(version=__version__)
@click.option("--data-dir", type=click.Path(), default=None, help="Directory for the local SQLite store")
@click.option("--user", "user_id", default=None, help="User id owning connections and sessions")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, data_dir, user_id, verbose):
    """Acumatica Import Tool - load CSV/Excel files into Acumatica."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = AppConfig.from_env()
    if data_dir is None and config.imports.database_url:
        store = SqlStore(config.imports.database_url)
    else:
        store = SqlStore.from_data_dir(data_dir or config.imports.data_dir)
    gateways = GatewayFactory(config.acumatica)
    ctx.obj = CliContext(
        config=config,
        store=store,
        gateways=gateways,
        user_id=user_id or os.getenv("ACUIMPORT_USER", "local"),
    )
    ctx.call_on_close(gateways.close)
    ctx.call_on_close(store.close)


# Connections


@cli.group()
def connection():
    """Manage Acumatica connections."""
    pass


@connection.command("add")
@click.argument("name")
@click.option("--url", "instance_url", required=True, help="Instance URL, e.g. https://erp.example.com")
@click.option("--username", required=True)
@click.option("--password", prompt=True, hide_input=True)
@click.option("--company", default=None)
@click.option("--branch", default=None)
@click.option("--api-version", default=None, help="Endpoint version (default 24.200.001)")
@click.pass_obj
def connection_add(obj: CliContext, name, instance_url, username, password, company, branch, api_version):
    """Save a connection."""
    credentials = Credentials(username=username, password=password, company=company, branch=branch)
    saved = obj.store.save_connection(
        Connection(
            id=new_id(),
            user_id=obj.user_id,
            name=name,
            instance_url=instance_url.rstrip("/"),
            credentials=encode_credentials(credentials),
            api_version=api_version or obj.config.acumatica.api_version,
        )
    )
    click.echo(f"{Fore.GREEN}✅ Connection saved: {saved.name} ({saved.id})")


@connection.command("list")
@click.pass_obj
def connection_list(obj: CliContext):
    """List saved connections."""
    connections = obj.store.list_connections(obj.user_id)
    if not connections:
        click.echo(f"{Fore.YELLOW}No connections saved. Add one with 'connection add'.")
        return

    for c in connections:
        state = "" if c.is_active else f" {Fore.YELLOW}(inactive)"
        click.echo(f"{c.id}  {c.name:20s} {c.instance_url} [{c.api_version}]{state}")


@connection.command("test")
@click.argument("connection_id")
@click.pass_obj
def connection_test(obj: CliContext, connection_id):
    """Log in with a saved connection."""
    conn = obj.store.get_connection(connection_id, obj.user_id)
    if conn is None:
        fail(f"Connection not found: {connection_id}")

    click.echo(f"{Fore.CYAN}Connecting to {conn.instance_url}...")
    try:
        gateway = obj.gateways.create(conn)
        gateway.auth.refresh_session()
    except (AcumaticaError, ImportPipelineError) as e:
        fail(humanize_error(e.message))

    click.echo(f"{Fore.GREEN}✅ Connection successful")


# Mapping


@cli.command("map")
@click.argument("file", type=click.Path(exists=True))
@click.option("--entity", required=True, help="StockItem, Customer, Vendor (or stock-items, ...)")
@click.option("--sheet", default=None, help="Excel sheet name")
@click.option("--template", "template_name", default=None, help="Start from a saved template")
@click.option("--interactive", is_flag=True, help="Review and edit mappings")
@click.option("--output", "-o", type=click.Path(), default=None, help="Write the mapping to a JSON file")
@click.pass_obj
def map_columns(obj: CliContext, file, entity, sheet, template_name, interactive, output):
    """Auto-map the columns of a file to entity fields."""
    print_banner()
    adapter = resolve_adapter(entity)
    parsed = load_file(file, sheet)

    mappings, default_values = build_mappings(obj, adapter, parsed, None, template_name)

    if interactive:
        editor = MappingEditor(adapter, mappings, parsed.rows, default_values)
        mappings = editor.run()
        default_values = editor.default_values
    else:
        print_header(f"Column Mapping: {adapter.label}")
        print_mappings(mappings)

    missing = missing_required_fields(mappings, adapter.fields, default_values)
    if missing:
        click.echo(f"{Fore.RED}Missing required fields: {', '.join(f.name for f in missing)}")

    if output:
        save_mapping_file(output, adapter.entity_type.value, mappings, default_values)
        click.echo(f"{Fore.GREEN}✅ Mapping saved to {output}")


# Validation and import


@cli.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--connection", "connection_id", required=True)
@click.option("--entity", required=True)
@click.option("--mode", type=click.Choice([m.value for m in ImportMode]), default=ImportMode.CREATE_OR_UPDATE.value)
@click.option("--mapping", "mapping_path", type=click.Path(exists=True), default=None)
@click.option("--template", "template_name", default=None)
@click.option("--sheet", default=None)
@click.option("--show", type=click.IntRange(0), default=20, help="Problem rows to print")
@click.pass_obj
def validate(obj: CliContext, file, connection_id, entity, mode, mapping_path, template_name, sheet, show):
    """Validate a file against live Acumatica reference data."""
    print_banner()
    adapter = resolve_adapter(entity)
    parsed = load_file(file, sheet)
    mappings, default_values = build_mappings(obj, adapter, parsed, mapping_path, template_name)

    service = ValidationService(obj.store, obj.gateways)
    click.echo(f"{Fore.CYAN}Fetching reference data...")
    try:
        response = service.validate(
            ValidationRequest(
                connection_id=connection_id,
                entity_type=adapter.entity_type.value,
                mode=ImportMode(mode),
                rows=parsed.rows,
                mappings=mappings,
                default_values=default_values,
                user_id=obj.user_id,
            ),
            on_progress=lambda p: logger.debug(f"Lookups {p.completed}/{p.total}: {p.current}"),
        )
    except ImportPipelineError as e:
        fail(e.message)
    except AcumaticaError as e:
        fail(humanize_error(e.message))

    for warning in response.lookup_warnings:
        click.echo(f"{Fore.YELLOW}⚠ {warning}")

    shown = 0
    for result in response.validation_results:
        if result.status == ValidationStatus.PASS or shown >= show:
            continue
        shown += 1
        for error in result.errors:
            click.echo(f"{Fore.RED}  Row {result.row_index + 1}: {error.message}")
        for warning in result.warnings:
            hint = f" (did you mean {warning.suggestion}?)" if warning.suggestion else ""
            click.echo(f"{Fore.YELLOW}  Row {result.row_index + 1}: {warning.message}{hint}")

    summary = response.summary
    click.echo(
        f"\n{Fore.CYAN}{summary['total']} rows: "
        f"{Fore.GREEN}{summary['pass']} pass, {Fore.YELLOW}{summary['warn']} warn, "
        f"{Fore.RED}{summary['fail']} fail"
    )
    if summary["fail"]:
        raise SystemExit(1)


@cli.command("import")
@click.argument("file", type=click.Path(exists=True))
@click.option("--connection", "connection_id", required=True)
@click.option("--entity", required=True)
@click.option("--mode", type=click.Choice([m.value for m in ImportMode]), default=ImportMode.CREATE_OR_UPDATE.value)
@click.option("--mapping", "mapping_path", type=click.Path(exists=True), default=None)
@click.option("--template", "template_name", default=None)
@click.option("--sheet", default=None)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def import_file(obj: CliContext, file, connection_id, entity, mode, mapping_path, template_name, sheet, yes):
    """Import a file into Acumatica."""
    print_banner()
    adapter = resolve_adapter(entity)
    parsed = load_file(file, sheet)
    mappings, default_values = build_mappings(obj, adapter, parsed, mapping_path, template_name)

    missing = missing_required_fields(mappings, adapter.fields, default_values)
    if missing:
        fail(f"Missing required fields: {', '.join(f.name for f in missing)}")

    label, description = IMPORT_MODE_LABELS[ImportMode(mode)]
    click.echo(f"{Fore.CYAN}Mode: {label}. {description}")
    if not yes and not click.confirm(f"Import {parsed.total_rows} {adapter.label}?", default=True):
        click.echo(f"{Fore.YELLOW}Import aborted.")
        return

    processor = ImportProcessor(obj.store, obj.gateways, obj.config.imports)
    try:
        run = processor.start(
            ImportRequest(
                user_id=obj.user_id,
                connection_id=connection_id,
                entity_type=adapter.entity_type.value,
                mode=ImportMode(mode),
                rows=parsed.rows,
                mappings=mappings,
                default_values=default_values,
                file_name=parsed.file_name,
            )
        )
    except SessionConflictError as e:
        fail(f"{e.message} (session {e.session_id})")
    except ImportPipelineError as e:
        fail(e.message)

    click.echo(f"{Fore.CYAN}Session {run.session_id} started")

    try:
        for event in run:
            if event.name == PROGRESS:
                data = event.data
                for row in data["batch_results"]:
                    if row.get("error"):
                        click.echo(f"{Fore.RED}  Row {row['row_index'] + 1} ({row['key_value']}): {row['error']}")
                click.echo(
                    f"   ✓ {data['processed']}/{data['total']} processed: "
                    f"{data['succeeded']} succeeded, {data['failed']} failed"
                )
            elif event.name == COMPLETE:
                summary = event.data["summary"]
                click.echo(
                    f"\n{Fore.GREEN}✅ Import complete: {summary['succeeded']} succeeded "
                    f"({summary['created_count']} created, {summary['updated_count']} updated), "
                    f"{summary['failed']} failed in {summary['duration_ms'] / 1000:.1f}s"
                )
            elif event.name == CANCELLED:
                click.echo(f"\n{Fore.YELLOW}{event.data['message']} after {event.data['processed']} rows")
            elif event.name == ERROR:
                fail(event.data["message"])
    except KeyboardInterrupt:
        current = obj.store.get_session(run.session_id)
        if current is not None and current.status == SessionStatus.RUNNING:
            cancel_import(obj.store, run.session_id)
        click.echo(f"\n{Fore.YELLOW}Import interrupted, session {run.session_id} cancelled")
        raise SystemExit(130)


@cli.command()
@click.argument("session_id")
@click.pass_obj
def cancel(obj: CliContext, session_id):
    """Cancel a running import."""
    try:
        session = cancel_import(obj.store, session_id, obj.user_id)
    except ImportPipelineError as e:
        fail(e.message)
    click.echo(f"{Fore.YELLOW}Cancellation requested for {session.id}; it stops after the current batch.")


# Sessions and logs


@cli.command()
@click.option("--limit", type=click.IntRange(1), default=20)
@click.pass_obj
def sessions(obj: CliContext, limit):
    """List import sessions."""
    items = obj.store.list_sessions(obj.user_id)[:limit]
    if not items:
        click.echo(f"{Fore.YELLOW}No imports yet.")
        return

    for s in items:
        color = STATUS_COLORS[SessionStatus(s.status)]
        started = s.started_at.strftime("%Y-%m-%d %H:%M")
        click.echo(
            f"{s.id}  {started}  {color}{SessionStatus(s.status).value:10s}{Style.RESET_ALL} "
            f"{s.entity_type:10s} {s.file_name}  "
            f"{s.success_count}/{s.total_rows} ok, {s.fail_count} failed"
        )


@cli.command()
@click.argument("session_id")
@click.option("--failed-only", is_flag=True)
@click.pass_obj
def logs(obj: CliContext, session_id, failed_only):
    """Show row logs of an import session."""
    session = obj.store.get_session(session_id)
    if session is None or session.user_id != obj.user_id:
        fail(f"Import session not found: {session_id}")

    for log in obj.store.list_row_logs(session_id):
        status = RowStatus(log.status)
        if failed_only and status != RowStatus.FAILED:
            continue
        color = {RowStatus.SUCCESS: Fore.GREEN, RowStatus.FAILED: Fore.RED}.get(status, Fore.WHITE)
        operation = f" {log.operation.value}" if log.operation else ""
        error = f": {log.error_message}" if log.error_message else ""
        click.echo(f"{color}{log.row_number:5d} {log.key_value:20s} {status.value}{operation}{error}")


@cli.command("export-log")
@click.argument("session_id")
@click.argument("output", type=click.Path())
@click.pass_obj
def export_log(obj: CliContext, session_id, output):
    """Export row logs of an import session to CSV."""
    session = obj.store.get_session(session_id)
    if session is None or session.user_id != obj.user_id:
        fail(f"Import session not found: {session_id}")

    row_logs = obj.store.list_row_logs(session_id)
    CsvLogExporter().export(Path(output), row_logs)
    click.echo(f"{Fore.GREEN}✅ Exported {len(row_logs)} rows to {output}")


# Templates


@cli.group()
def template():
    """Manage mapping templates."""
    pass


@template.command("save")
@click.argument("name")
@click.option("--entity", required=True)
@click.option("--mapping", "mapping_path", type=click.Path(exists=True), required=True)
@click.pass_obj
def template_save(obj: CliContext, name, entity, mapping_path):
    """Save a mapping file as a named template."""
    adapter = resolve_adapter(entity)
    mappings, _ = load_mapping_file(mapping_path)
    saved = obj.store.save_template(
        template_from_mappings(obj.user_id, adapter.entity_type.value, name, mappings)
    )
    click.echo(f"{Fore.GREEN}✅ Template saved: {saved.name} ({saved.id})")


@template.command("list")
@click.option("--entity", default=None)
@click.pass_obj
def template_list(obj: CliContext, entity):
    """List mapping templates."""
    entity_type = resolve_adapter(entity).entity_type.value if entity else None
    templates = obj.store.list_templates(obj.user_id, entity_type)
    if not templates:
        click.echo(f"{Fore.YELLOW}No templates saved.")
        return

    for t in templates:
        click.echo(f"{t.id}  {t.entity_type:10s} {t.name}  ({len(t.mappings)} columns)")


@template.command("delete")
@click.argument("template_id")
@click.pass_obj
def template_delete(obj: CliContext, template_id):
    """Delete a mapping template."""
    if not obj.store.delete_template(template_id, obj.user_id):
        fail(f"Template not found: {template_id}")
    click.echo(f"{Fore.GREEN}✅ Template deleted")


if __name__ == "__main__":
    cli()
