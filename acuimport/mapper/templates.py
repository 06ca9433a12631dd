"""Saving and re-applying mapping templates."""
from typing import List

from acuimport.mapper.mapping import FieldMapping, MatchConfidence
from acuimport.store.models import MappingTemplate, new_id


def apply_template(source_headers: List[str], template: MappingTemplate) -> List[FieldMapping]:
    """Map headers with a saved template.

    Headers the template knows get its saved mapping, headers it ignored stay
    ignored, anything else comes back unmapped.
    """
    saved = {m.source_column: m for m in template.mappings}
    ignored = set(template.ignored_columns)

    mappings = []
    for header in source_headers:
        if header in saved:
            m = saved[header]
            mappings.append(
                FieldMapping(
                    source_column=header,
                    target_field=m.target_field,
                    confidence=m.confidence,
                    default_value=m.default_value,
                )
            )
        elif header in ignored:
            mappings.append(FieldMapping(source_column=header, ignored=True))
        else:
            mappings.append(FieldMapping(source_column=header, confidence=MatchConfidence.NONE))
    return mappings


def template_from_mappings(
    user_id: str,
    entity_type: str,
    name: str,
    mappings: List[FieldMapping],
) -> MappingTemplate:
    """Capture the active and ignored columns of a mapping as a template."""
    return MappingTemplate(
        id=new_id(),
        user_id=user_id,
        entity_type=entity_type,
        name=name.strip(),
        mappings=[
            FieldMapping(
                source_column=m.source_column,
                target_field=m.target_field,
                confidence=m.confidence,
                default_value=m.default_value,
            )
            for m in mappings
            if m.is_active
        ],
        ignored_columns=[m.source_column for m in mappings if m.ignored],
    )
