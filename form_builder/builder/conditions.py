from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

from form_builder.builder.document import ConditionalRule, Field, FormDocument
from form_builder.builder.tree import field_names, iter_fields

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class DanglingReference:
    field_id: str
    field_name: str
    watched_field_name: str


def conditional_rule(field: Field | Mapping[str, Any]) -> ConditionalRule | None:
    if isinstance(field, Field):
        return field.conditional
    raw = field.get("conditional")
    if not raw:
        return None
    return ConditionalRule(
        watched_field_name=str(raw.get("field") or ""),
        required_value=str(raw.get("value") if raw.get("value") is not None else ""),
    )


def is_visible(field: Field | Mapping[str, Any], submission_values: Mapping[str, Any]) -> bool:
    """Decide whether ``field`` is shown for the current submission values.

    A field without a conditional rule is always visible. Otherwise the value
    submitted under the watched name must be a string equal to the rule's
    required value. Each field is judged on raw input state only: a watched
    field that is itself hidden does not hide its dependants unless its value
    is absent.
    """
    rule = conditional_rule(field)
    if rule is None:
        return True
    value = submission_values.get(rule.watched_field_name, _MISSING)
    if value is _MISSING or not isinstance(value, str):
        return False
    return value == rule.required_value


def iter_schema_fields(schema: FormDocument | Mapping[str, Any] | list) -> Iterator[Field | Mapping[str, Any]]:
    if isinstance(schema, FormDocument):
        for _, _, field in iter_fields(schema):
            yield field
        return
    rows = schema.get("schema") if isinstance(schema, Mapping) else schema
    for row in rows or []:
        for column in row.get("columns") or []:
            for field in column.get("fields") or []:
                yield field


def visible_fields(
    schema: FormDocument | Mapping[str, Any] | list,
    submission_values: Mapping[str, Any],
) -> list[Field | Mapping[str, Any]]:
    return [field for field in iter_schema_fields(schema) if is_visible(field, submission_values)]


def dangling_references(document: FormDocument) -> list[DanglingReference]:
    names = field_names(document)
    found = []
    for _, _, field in iter_fields(document):
        if field.conditional is None:
            continue
        if field.conditional.watched_field_name not in names:
            found.append(
                DanglingReference(
                    field_id=field.id,
                    field_name=field.name,
                    watched_field_name=field.conditional.watched_field_name,
                )
            )
    if found:
        logger.debug("dangling conditional references count=%s", len(found))
    return found
