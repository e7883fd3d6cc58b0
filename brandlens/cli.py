"""Command-line interface for BrandLens."""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from . import __version__
from .exceptions import BrandLensError, NoAnalyzableFiles
from .models import AnalysisConfig, AnalysisResult, BrandRule
from .ooxml_extractor import OOXMLExtractor
from .pipeline import BrandAnalyzer
from .rule_repository import JsonFileRuleRepository

# Load environment variables
load_dotenv()

console = Console()

DEFAULT_STORE = Path.home() / ".brandlens" / "rules.json"


def _configure_logging(debug: bool, log_file: Optional[Path]):
    """Configure root logging handlers and level."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w"))

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def _fail(ctx: click.Context, message: str) -> None:
    console.print(f"[red]{message}[/red]")
    if ctx.obj.get("debug", False):
        import traceback
        console.print(traceback.format_exc())
    else:
        console.print("Run again with --debug or --log-file for details")
    sys.exit(1)


def _describe_value(rule: BrandRule) -> str:
    value = rule.value
    if value.kind == "color":
        return f"{value.type}: {value.color}"
    if value.kind == "typography":
        return f"{value.type}: {value.font_family or value.text_transform}"
    if value.kind == "spacing":
        return f"{value.base_unit}px {value.scale}"
    return f"{value.component}: {value.asset or '-'}"


def _rules_table(title: str, rules: List[BrandRule]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Category", style="cyan")
    table.add_column("Name")
    table.add_column("Value")
    table.add_column("Confidence", justify="right")
    table.add_column("Confirmed", justify="center")

    for rule in rules:
        table.add_row(
            rule.id,
            rule.category,
            rule.name,
            _describe_value(rule),
            f"{rule.confidence:.2f}",
            "✓" if rule.confirmed else "",
        )
    return table


def _print_result(result: AnalysisResult) -> None:
    if result.rules:
        console.print(_rules_table("Rules", result.rules))
    if result.needs_review:
        console.print(_rules_table("Needs review", result.needs_review))
    if not result.all_rules:
        console.print("[yellow]No brand rules could be inferred[/yellow]")

    assets = result.extracted_assets
    console.print(f"Extracted {len(assets.logos)} logo candidates and {len(assets.images)} images")

    if result.errors:
        table = Table(title="Files that could not be analyzed")
        table.add_column("File")
        table.add_column("Error", style="red")
        for error in result.errors:
            table.add_row(error.filename, f"{error.error_type}: {error.message}")
        console.print(table)
    if result.skipped:
        console.print(f"[yellow]Skipped unsupported files: {', '.join(result.skipped)}[/yellow]")


def _write_assets(result: AnalysisResult, assets_dir: Path) -> int:
    assets_dir.mkdir(parents=True, exist_ok=True)
    written = 0
    for folder, assets in (("logos", result.extracted_assets.logos), ("images", result.extracted_assets.images)):
        for asset in assets:
            if not asset.data:
                continue
            target = assets_dir / folder / asset.filename
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(asset.data)
            written += 1
    return written


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Show debug logs and stack traces on error")
@click.option("--log-file", type=click.Path(path_type=Path), help="Write logs to file")
@click.option(
    "--store",
    envvar="BRANDLENS_STORE",
    default=str(DEFAULT_STORE),
    type=click.Path(path_type=Path),
    help="JSON rule store (env: BRANDLENS_STORE)"
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, log_file: Optional[Path], store: Path):
    """
    BrandLens - infer brand rules from presentations, PDFs and images.

    Analyze designer documents into color, typography and spacing rules,
    then review them.
    """
    _configure_logging(debug, log_file)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["store"] = store


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--brand", "-b", default="default", help="Brand identifier to store the rules under")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Write the full result as JSON")
@click.option("--assets-dir", type=click.Path(path_type=Path), help="Save extracted logos and images here")
@click.option("--workers", type=int, help="Maximum number of extraction threads")
@click.option("--locale", type=click.Choice(["en", "de"]), help="Language of rule names")
@click.option("--no-store", is_flag=True, help="Do not save the rules to the rule store")
@click.pass_context
def analyze(
    ctx: click.Context,
    files: List[Path],
    brand: str,
    output: Optional[Path],
    assets_dir: Optional[Path],
    workers: Optional[int],
    locale: Optional[str],
    no_store: bool
):
    """Analyze documents and infer brand rules."""

    try:
        config = AnalysisConfig.from_env(max_workers=workers, locale=locale)
    except ValueError as e:
        _fail(ctx, f"Invalid configuration: {e}")

    analyzer = BrandAnalyzer(config)
    console.print(f"[bold]Analyzing {len(files)} files for brand '{brand}'[/bold]")

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
    ) as progress:
        task = progress.add_task("Extracting brand signals...", total=100)

        def on_progress(percent: int) -> None:
            progress.update(task, completed=percent)

        try:
            result = analyzer.analyze_paths(files, on_progress=on_progress)
        except NoAnalyzableFiles as e:
            progress.stop()
            _fail(ctx, f"Error: {e}")
        except BrandLensError as e:
            progress.stop()
            _fail(ctx, f"Error during analysis: {e}")

    _print_result(result)

    if not no_store:
        repository = JsonFileRuleRepository(ctx.obj["store"])
        repository.set_rules(brand, result.all_rules, result.extracted_assets)
        console.print(f"Stored {len(result.all_rules)} rules for '{brand}' in {ctx.obj['store']}")

    if output:
        output.write_text(result.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"Result written to {output}")

    if assets_dir:
        written = _write_assets(result, assets_dir)
        console.print(f"Saved {written} assets to {assets_dir}")


@cli.command()
@click.argument("presentation", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def inspect(ctx: click.Context, presentation: Path):
    """Show the raw signals extracted from a single presentation."""

    try:
        observation = OOXMLExtractor().extract(presentation.read_bytes(), presentation.name)
    except (BrandLensError, OSError) as e:
        _fail(ctx, f"Error inspecting presentation: {e}")

    console.print(f"[bold]{observation.source}[/bold]: {observation.slide_count} slides\n")

    console.print("[bold]Theme Colors:[/bold]")
    for color in observation.theme_colors:
        console.print(f"• {color.slot_name} ({color.role.value}): {color.hex}")

    fonts = observation.theme_fonts
    console.print("\n[bold]Fonts:[/bold]")
    console.print(f"• heading: {fonts.major if fonts else None}")
    console.print(f"• body: {fonts.minor if fonts else None}")

    flags = observation.typography_flags
    console.print(f"\nBold runs: {flags.uses_bold}, uppercase runs: {flags.uses_uppercase}")

    table = Table(title="Slide colors")
    table.add_column("Color")
    table.add_column("Frequency", justify="right")
    table.add_column("Contexts")
    table.add_column("Confidence", justify="right")
    ranked = sorted(observation.slide_color_usage.items(), key=lambda item: -item[1].frequency)
    for hex_color, usage in ranked:
        table.add_row(hex_color, str(usage.frequency), ", ".join(usage.contexts), f"{usage.confidence:.2f}")
    console.print(table)

    console.print(f"Coordinate samples: {len(observation.coordinate_samples)}")
    for asset in observation.media_assets:
        label = "logo" if asset.is_logo else "image"
        console.print(f"• {asset.filename} ({asset.size} bytes): {label} {asset.logo_confidence:.2f}")


@cli.group()
def rules():
    """Review stored brand rules."""


def _repository(ctx: click.Context) -> JsonFileRuleRepository:
    return JsonFileRuleRepository(ctx.find_root().obj["store"])


@rules.command("show")
@click.option("--brand", "-b", default="default", help="Brand identifier")
@click.option("--category", type=click.Choice(["color", "typography", "spacing", "component"]))
@click.option("--asset-type", help="Only rules applicable to this asset type")
@click.pass_context
def show_rules(ctx: click.Context, brand: str, category: Optional[str], asset_type: Optional[str]):
    """List the rules stored for a brand."""
    repository = _repository(ctx)
    if asset_type:
        brand_rules = repository.rules_for_asset_type(brand, asset_type)
    else:
        brand_rules = repository.get_rules(brand)
    if category:
        brand_rules = [r for r in brand_rules if r.category == category]

    summary = repository.summary(brand)
    console.print(
        f"[bold]{brand}[/bold]: status {repository.get_status(brand).value}, "
        f"{summary.confirmed}/{summary.total} confirmed"
    )
    console.print(_rules_table("Rules", brand_rules))


@rules.command("confirm")
@click.argument("rule_id")
@click.option("--brand", "-b", default="default", help="Brand identifier")
@click.pass_context
def confirm_rule(ctx: click.Context, rule_id: str, brand: str):
    """Confirm a single rule."""
    if _repository(ctx).confirm_rule(brand, rule_id) is None:
        console.print(f"[red]No rule {rule_id} for brand '{brand}'[/red]")
        sys.exit(1)
    console.print(f"[green]Confirmed {rule_id}[/green]")


@rules.command("confirm-all")
@click.option("--brand", "-b", default="default", help="Brand identifier")
@click.pass_context
def confirm_all(ctx: click.Context, brand: str):
    """Confirm every rule of a brand."""
    repository = _repository(ctx)
    repository.confirm_all(brand)
    console.print(f"[green]Confirmed {len(repository.get_rules(brand))} rules for '{brand}'[/green]")


@rules.command("delete")
@click.argument("rule_id")
@click.option("--brand", "-b", default="default", help="Brand identifier")
@click.pass_context
def delete_rule(ctx: click.Context, rule_id: str, brand: str):
    """Delete a rule. Deleting an unknown id does nothing."""
    if _repository(ctx).delete_rule(brand, rule_id):
        console.print(f"Deleted {rule_id}")
    else:
        console.print(f"[yellow]No rule {rule_id} for brand '{brand}'[/yellow]")


@rules.command("add")
@click.argument("rule_json")
@click.option("--brand", "-b", default="default", help="Brand identifier")
@click.pass_context
def add_rule(ctx: click.Context, rule_json: str, brand: str):
    """Add a manual rule given as a JSON object."""
    try:
        rule = _repository(ctx).add_rule(brand, json.loads(rule_json))
    except ValueError as e:
        _fail(ctx, f"Invalid rule: {e}")
    console.print(f"[green]Added {rule.id}[/green]")


@rules.command("export")
@click.option("--brand", "-b", default="default", help="Brand identifier")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Write to file instead of stdout")
@click.pass_context
def export_rules(ctx: click.Context, brand: str, output: Optional[Path]):
    """Export a brand's rules as JSON."""
    payload = _repository(ctx).export_rules(brand)
    if output:
        output.write_text(payload, encoding="utf-8")
        console.print(f"Exported rules to {output}")
    else:
        click.echo(payload)


@rules.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--brand", "-b", default="default", help="Brand identifier")
@click.pass_context
def import_rules(ctx: click.Context, source: Path, brand: str):
    """Replace a brand's rules with a JSON export."""
    if not _repository(ctx).import_rules(brand, source.read_text(encoding="utf-8")):
        console.print(f"[red]Could not import rules from {source}[/red]")
        sys.exit(1)
    console.print(f"[green]Imported rules for '{brand}'[/green]")


@rules.command("clear")
@click.option("--brand", "-b", default="default", help="Brand identifier")
@click.pass_context
def clear_rules(ctx: click.Context, brand: str):
    """Remove all rules of a brand."""
    _repository(ctx).clear_rules(brand)
    console.print(f"Cleared rules for '{brand}'")


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
