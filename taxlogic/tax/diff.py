"""Field-by-field comparison of two rule pack documents.

Used for year-over-year audits. Both documents are flattened to dotted
paths (``credits.single_earner.first_child``, ``tax_brackets[2].rate``)
and compared leaf by leaf.
"""

from dataclasses import asdict, dataclass, field
from typing import Any

import orjson

_MISSING = object()


@dataclass(frozen=True)
class FieldChange:
    """A single leaf difference. ``old``/``new`` is None for added/removed paths."""

    path: str
    kind: str
    old: Any = None
    new: Any = None


@dataclass(frozen=True)
class RulePackDiff:
    """Result of comparing two rule pack documents."""

    old_label: str
    new_label: str
    changes: list[FieldChange] = field(default_factory=list)

    @property
    def changed(self) -> list[FieldChange]:
        return [c for c in self.changes if c.kind == "changed"]

    @property
    def added(self) -> list[FieldChange]:
        return [c for c in self.changes if c.kind == "added"]

    @property
    def removed(self) -> list[FieldChange]:
        return [c for c in self.changes if c.kind == "removed"]

    @property
    def is_empty(self) -> bool:
        return not self.changes


def flatten_document(value: Any, prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings and lists into ``{dotted.path: leaf}``.

    Example:
        >>> flatten_document({"a": {"b": [1, 2]}})
        {'a.b[0]': 1, 'a.b[1]': 2}
    """
    flat: dict[str, Any] = {}
    if isinstance(value, dict):
        for key, child in value.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            flat.update(flatten_document(child, path))
    elif isinstance(value, list):
        for index, child in enumerate(value):
            flat.update(flatten_document(child, f"{prefix}[{index}]"))
    else:
        flat[prefix] = value
    return flat


def diff_rule_packs(
    old: dict[str, Any],
    new: dict[str, Any],
    old_label: str = "old",
    new_label: str = "new",
) -> RulePackDiff:
    """Compare two raw rule pack documents.

    Args:
        old: Baseline document (typically the previous year)
        new: Document to compare against the baseline
        old_label: Label for the baseline, used in reports
        new_label: Label for the comparison, used in reports

    Returns:
        RulePackDiff with changes sorted by path
    """
    old_flat = flatten_document(old)
    new_flat = flatten_document(new)

    changes: list[FieldChange] = []
    for path in sorted(old_flat.keys() | new_flat.keys()):
        before = old_flat.get(path, _MISSING)
        after = new_flat.get(path, _MISSING)
        if before is _MISSING:
            changes.append(FieldChange(path=path, kind="added", new=after))
        elif after is _MISSING:
            changes.append(FieldChange(path=path, kind="removed", old=before))
        elif before != after:
            changes.append(FieldChange(path=path, kind="changed", old=before, new=after))

    return RulePackDiff(old_label=old_label, new_label=new_label, changes=changes)


def _format_value(value: Any) -> str:
    if value is None:
        return "-"
    return str(value).replace("|", "\\|")


def render_markdown(diff: RulePackDiff) -> str:
    """Render the diff as a Markdown report with a single change table."""
    lines = [
        f"# Rule pack diff: {diff.old_label} -> {diff.new_label}",
        "",
        f"- Changed: {len(diff.changed)}",
        f"- Added: {len(diff.added)}",
        f"- Removed: {len(diff.removed)}",
        "",
    ]

    if diff.is_empty:
        lines.append("No differences.")
        return "\n".join(lines) + "\n"

    lines.extend(
        [
            f"| Path | Change | {diff.old_label} | {diff.new_label} |",
            "|------|--------|------|------|",
        ]
    )
    for change in diff.changes:
        lines.append(
            f"| `{change.path}` | {change.kind} | "
            f"{_format_value(change.old)} | {_format_value(change.new)} |"
        )
    return "\n".join(lines) + "\n"


def to_json(diff: RulePackDiff) -> bytes:
    """Serialize the diff with orjson (indented, non-native values as str)."""
    payload = asdict(diff)
    return orjson.dumps(payload, default=str, option=orjson.OPT_INDENT_2)
