"""Models describing the report payloads emitted by the entities info manager."""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

CountValue = Union[int, str]


class FieldInfo(BaseModel):
    field_name: str
    label: str
    field_type: str
    required: str
    description: str = ""
    count_used: CountValue = ""

    def as_row(self) -> List[CountValue]:
        return [
            self.field_name,
            self.label,
            self.field_type,
            self.required,
            self.description,
            self.count_used,
        ]


class BundleFields(BaseModel):
    """Configurable fields of one selected bundle plus its item count."""

    key: str
    bundle: str
    entity_type_id: str
    resolved_entity_type_id: str
    count: int
    fields: Dict[str, FieldInfo] = Field(default_factory=dict)


class ReportTable(BaseModel):
    header: Dict[str, str]
    rows: List[List[CountValue]]


class BundleReport(BaseModel):
    """One rendered bundle: a field table, or a placeholder when it has no fields."""

    key: str
    name: str
    count: str
    item_count: int
    markup: Optional[str] = None
    table: Optional[ReportTable] = None

    @property
    def has_fields(self) -> bool:
        return self.table is not None


class SelectionOption(BaseModel):
    key: str
    label: str


class SelectionGroup(BaseModel):
    entity_type_id: str
    label: str
    options: List[SelectionOption]
