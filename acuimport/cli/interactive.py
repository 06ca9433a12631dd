"""Interactive mapping editor."""
from typing import Dict, List, Optional

import click
import questionary
from colorama import Fore, Style

from acuimport.mapper.heuristic import (
    assign_target,
    get_sample_values,
    mapping_stats,
    missing_required_fields,
    toggle_ignored,
    update_mapping,
)
from acuimport.mapper.mapping import FieldMapping, MatchConfidence
from acuimport.schema.adapters import EntityAdapter

CONFIDENCE_COLORS = {
    MatchConfidence.EXACT: Fore.GREEN,
    MatchConfidence.ALIAS: Fore.CYAN,
    MatchConfidence.FUZZY: Fore.YELLOW,
    MatchConfidence.NONE: Fore.RED,
}

DONE = "__done__"
NO_TARGET = "__none__"


def print_header(title: str):
    """Print a section header."""
    click.echo(f"\n{Fore.CYAN}{'━' * 45}")
    click.echo(f"{Fore.CYAN}{title}")
    click.echo(f"{Fore.CYAN}{'━' * 45}{Style.RESET_ALL}\n")


def describe_mapping(mapping: FieldMapping) -> str:
    if mapping.ignored:
        return f"{mapping.source_column} → (ignored)"
    target = mapping.target_field or "(unmapped)"
    confidence = MatchConfidence(mapping.confidence).value
    default = f" [default: {mapping.default_value}]" if mapping.default_value else ""
    return f"{mapping.source_column} → {target} ({confidence}){default}"


def print_mappings(mappings: List[FieldMapping]):
    """Print mappings colored by confidence, followed by totals."""
    for mapping in mappings:
        color = Fore.WHITE if mapping.ignored else CONFIDENCE_COLORS[MatchConfidence(mapping.confidence)]
        click.echo(f"{color}  {describe_mapping(mapping)}")

    stats = mapping_stats(mappings)
    click.echo(
        f"\n{Fore.CYAN}{stats['mapped']}/{stats['total']} mapped "
        f"({stats['exact']} exact, {stats['alias']} alias, {stats['fuzzy']} fuzzy), "
        f"{stats['unmapped']} unmapped, {stats['ignored']} ignored"
    )


class MappingEditor:
    """Walks the user through reviewing and fixing column mappings."""

    def __init__(
        self,
        adapter: EntityAdapter,
        mappings: List[FieldMapping],
        rows: Optional[List[Dict[str, str]]] = None,
        default_values: Optional[Dict[str, str]] = None,
    ):
        """Initialize editor."""
        self.adapter = adapter
        self.mappings = list(mappings)
        self.rows = rows or []
        self.default_values = dict(default_values or {})

    def run(self) -> List[FieldMapping]:
        """Edit until the user is done; returns the final mappings."""
        while True:
            print_header(f"Column Mapping: {self.adapter.label}")
            print_mappings(self.mappings)
            self._warn_missing_required()

            choices = [
                questionary.Choice(describe_mapping(m), value=i) for i, m in enumerate(self.mappings)
            ]
            choices.append(questionary.Choice("Done", value=DONE))

            index = questionary.select("Select a column to edit", choices=choices).ask()
            if index is None or index == DONE:
                return self.mappings

            self._edit_column(index)

    def _warn_missing_required(self):
        missing = missing_required_fields(self.mappings, self.adapter.fields, self.default_values)
        if missing:
            names = ", ".join(f.name for f in missing)
            click.echo(f"{Fore.RED}Required fields without a column or default: {names}")

    def _edit_column(self, index: int):
        mapping = self.mappings[index]
        samples = get_sample_values(self.rows, mapping.source_column)
        if samples:
            click.echo(f"{Fore.WHITE}Sample values: {', '.join(samples)}")

        action = questionary.select(
            f"{mapping.source_column}:",
            choices=[
                questionary.Choice("Change target field", value="target"),
                questionary.Choice("Set default value", value="default"),
                questionary.Choice("Include column" if mapping.ignored else "Ignore column", value="ignore"),
                questionary.Choice("Back", value="back"),
            ],
        ).ask()

        if action == "target":
            self._choose_target(index)
        elif action == "default":
            value = questionary.text("Default value", default=mapping.default_value or "").ask()
            if value is not None:
                self.mappings = update_mapping(self.mappings, index, default_value=value.strip() or None)
                if mapping.target_field:
                    self.default_values[mapping.target_field] = value.strip()
        elif action == "ignore":
            self.mappings = toggle_ignored(self.mappings, index)

    def _choose_target(self, index: int):
        taken = {m.target_field: m.source_column for m in self.mappings if m.is_active}

        choices = [questionary.Choice("(no target)", value=NO_TARGET)]
        for field in self.adapter.fields:
            label = f"{field.name} ({field.api_name})"
            if field.required:
                label += " *"
            owner = taken.get(field.api_name)
            if owner and owner != self.mappings[index].source_column:
                label += f"  [mapped from {owner}]"
            choices.append(questionary.Choice(label, value=field.api_name))

        target = questionary.select("Target field", choices=choices).ask()
        if target is None:
            return
        self.mappings = assign_target(self.mappings, index, None if target == NO_TARGET else target)
