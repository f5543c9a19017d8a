"""Rule pack maintenance commands.

    taxlogic status [YEAR...]
    taxlogic check
    taxlogic diff --from 2024 --to 2025 [--format md|json] [--out FILE]
"""

from __future__ import annotations

from pathlib import Path

import click

from taxlogic.core.logging import configure_logging
from taxlogic.tax.diff import diff_rule_packs, render_markdown, to_json
from taxlogic.tax.loader import RulePackLoadError, read_rule_pack_document
from taxlogic.tax.registry import RulePackRegistry, RulePackStatus


def _format_status(status: RulePackStatus) -> str:
    line = f"{status.year}  {status.state.value:<16} {status.message}"
    if status.days_since_verification is not None:
        line += f" (verified {status.days_since_verification} days ago)"
    return line


@click.group()
@click.option(
    "--rule-pack-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory with <year>.yaml rule packs (default: settings, then bundled packs)",
)
@click.pass_context
def main(ctx: click.Context, rule_pack_dir: Path | None) -> None:
    """TaxLogic rule pack utilities."""
    configure_logging()
    ctx.ensure_object(dict)
    ctx.obj["registry"] = RulePackRegistry(rule_pack_dir=rule_pack_dir)


@main.command()
@click.argument("years", nargs=-1, type=int)
@click.pass_context
def status(ctx: click.Context, years: tuple[int, ...]) -> None:
    """Show the state of each year's rule pack.

    Without YEARS, every supported year is shown.
    """
    registry: RulePackRegistry = ctx.obj["registry"]
    statuses = [registry.status(y) for y in years] if years else registry.statuses()
    for item in statuses:
        click.echo(_format_status(item))


@main.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Exit non-zero unless every supported year's pack is ok."""
    registry: RulePackRegistry = ctx.obj["registry"]
    if not registry.supported_years:
        raise click.ClickException("No supported tax years configured")
    failing = [s for s in registry.statuses() if not s.is_ok]
    if failing:
        for item in failing:
            click.echo(_format_status(item), err=True)
        raise click.ClickException(
            f"{len(failing)} of {len(registry.supported_years)} rule packs are not usable"
        )
    click.echo(f"All {len(registry.supported_years)} rule packs are ok")


@main.command()
@click.option("--from", "from_year", type=int, required=True, help="Baseline tax year")
@click.option("--to", "to_year", type=int, required=True, help="Compared tax year")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["md", "json"], case_sensitive=False),
    default="md",
    show_default=True,
)
@click.option(
    "--out",
    "out_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the report to a file instead of stdout",
)
@click.pass_context
def diff(
    ctx: click.Context,
    from_year: int,
    to_year: int,
    output_format: str,
    out_file: Path | None,
) -> None:
    """Report field-level changes between two years' rule packs."""
    registry: RulePackRegistry = ctx.obj["registry"]
    try:
        old = read_rule_pack_document(registry.rule_pack_dir, from_year)
        new = read_rule_pack_document(registry.rule_pack_dir, to_year)
    except RulePackLoadError as exc:
        raise click.ClickException(str(exc)) from exc

    report = diff_rule_packs(old, new, old_label=str(from_year), new_label=str(to_year))
    if output_format.lower() == "json":
        content = to_json(report).decode("utf-8") + "\n"
    else:
        content = render_markdown(report)

    if out_file is None:
        click.echo(content, nl=False)
        return

    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(content, encoding="utf-8")
    click.echo(f"Wrote {len(report.changes)} changes to {out_file}")


if __name__ == "__main__":
    main()
