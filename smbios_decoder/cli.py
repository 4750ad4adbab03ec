"""CLI entry point for the SMBIOS decoder."""

import json
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table as RichTable

from smbios_decoder import __version__
from smbios_decoder.errors import TableParseError, TruncatedRecord
from smbios_decoder.records import decode_table
from smbios_decoder.shared import DEFAULT_LOG_LEVEL, DEFAULT_TABLE_PATH, ConfigManager, LogManager
from smbios_decoder.table import TABLE_TYPE_PROCESSOR_INFORMATION, Table, parse_tables, table_type_name

console = Console()

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

table_file_option = click.option(
    "--file",
    "-f",
    "table_file",
    type=click.Path(dir_okay=False),
    default=None,
    help=f"Raw SMBIOS structure table dump (default: [input] table_path, {DEFAULT_TABLE_PATH})",
)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="INI configuration file",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help=f"Logging level (default: [logging] log_level, {DEFAULT_LOG_LEVEL})",
)
@click.pass_context
def cli(ctx, config_path, log_level):
    """SMBIOS Decoder - decode firmware structure tables from a captured dump."""
    config = ConfigManager(config_path)
    config.load()

    level = log_level or config.get("logging", "log_level", DEFAULT_LOG_LEVEL)
    log_dir = config.get("logging", "log_dir") or None
    logger = LogManager("smbios_decoder", level, log_dir).get_logger()

    ctx.obj = {"config": config, "logger": logger}


def _load_tables(ctx, table_file: Optional[str]) -> Tuple[Path, List[Table]]:
    """Read a dump file and split it into structures, aborting on bad input."""
    config = ctx.obj["config"]
    logger = ctx.obj["logger"]

    path = Path(table_file or config.get("input", "table_path", DEFAULT_TABLE_PATH))
    logger.info(f"Reading structure table from {path}")

    try:
        data = path.read_bytes()
    except OSError as e:
        console.print(f"[red]✗ Cannot read {escape(str(path))}: {escape(str(e))}[/red]")
        raise click.Abort()

    try:
        tables = parse_tables(data)
    except TableParseError as e:
        console.print(f"[red]✗ Malformed structure table in {escape(str(path))}: {escape(str(e))}[/red]")
        raise click.Abort()

    logger.info(f"Found {len(tables)} structures")
    return path, tables


@cli.command("list")
@table_file_option
@click.pass_context
def list_tables(ctx, table_file):
    """List every structure in a structure table dump."""
    path, tables = _load_tables(ctx, table_file)

    table = RichTable(title=f"SMBIOS structures in {path.name}")
    table.add_column("Handle", style="cyan")
    table.add_column("Type", justify="right")
    table.add_column("Name")
    table.add_column("Length", justify="right")
    table.add_column("Strings", justify="right")
    for t in tables:
        table.add_row(
            f"0x{t.handle:04X}",
            str(t.type),
            table_type_name(t.type),
            str(len(t)),
            str(len(t.strings)),
        )
    console.print(table)


@cli.command()
@table_file_option
@click.option("--json", "as_json", is_flag=True, help="Emit a JSON array instead of the text report")
@click.pass_context
def processor(ctx, table_file, as_json):
    """Decode Processor Information (type 4) structures."""
    logger = ctx.obj["logger"]
    _, tables = _load_tables(ctx, table_file)

    records = []
    for table in tables:
        if table.type != TABLE_TYPE_PROCESSOR_INFORMATION:
            continue
        try:
            records.append(decode_table(table))
        except TruncatedRecord as e:
            logger.warning(f"Skipping processor structure 0x{table.handle:04x}: {e}")

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
        return

    if not records:
        console.print("[yellow]⚠️  No Processor Information structures found[/yellow]")
        return

    # Tabs in the report must survive untouched, so bypass rich here
    click.echo("\n\n".join(r.render() for r in records))


def main():
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
