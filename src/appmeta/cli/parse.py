"""CLI command for package parsing."""

import json
from pathlib import Path

import typer
from rich.table import Table

from appmeta.core.parser import PackageParser
from appmeta.exceptions import AppMetaError
from appmeta.models.package import PackageInfo
from appmeta.utils.output import console


def _display_info(info: PackageInfo) -> None:
    """Render a PackageInfo as a two-column table."""
    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Name", info.name)
    table.add_row("Bundle ID", info.bundle_id)
    table.add_row("Version", info.version)
    table.add_row("Build", info.build)
    table.add_row("Size", f"{info.size_bytes} bytes")
    icon = info.icon
    table.add_row("Icon", f"{icon.width}x{icon.height}" if icon is not None else "-")

    if info.ios_signing_type is not None:
        table.add_row("Platforms", ", ".join(info.ios_platforms) or "-")
        table.add_row("Signing", str(info.ios_signing_type))
        table.add_row("Expires", info.ios_signing_expiration)
        devices = info.ios_provisioned_devices
        table.add_row("Devices", "-" if devices is None else str(len(devices)))
    else:
        table.add_row("Debuggable", "yes" if info.android_debuggable else "no")

    console.print(table)


def parse_command(
    package_path: Path = typer.Argument(
        ...,
        help="Path to the .apk or .ipa file.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON.",
    ),
    icon_out: Path | None = typer.Option(
        None,
        "--icon-out",
        help="Save the decoded icon as PNG to this path.",
    ),
    icon_density: int | None = typer.Option(
        None,
        "--density",
        min=1,
        help="Target density for Android icon lookup (default: 720).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Show debug logging.",
    ),
) -> None:
    """Extract name, bundle ID, version, icon and signing info from a package."""
    console.set_json_mode(json_output)
    console.setup_logging(verbose)

    try:
        info = PackageParser(package_path, icon_density=icon_density).parse()
    except AppMetaError as e:
        console.print_error(str(e))
        raise typer.Exit(1) from None

    if icon_out is not None:
        if info.icon is None:
            console.print_warning("Package has no icon; nothing saved.")
        else:
            info.icon.save(icon_out, "PNG")
            console.print_success(f"Icon saved to {icon_out}")

    if json_output:
        output = info.model_dump(mode="json")
        output["has_icon"] = info.has_icon
        typer.echo(json.dumps(output, indent=2))
        return

    _display_info(info)
