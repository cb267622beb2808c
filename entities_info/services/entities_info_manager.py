"""Builds the per-bundle field report for a selection of bundles."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from ..clients.content_store import ENTITY_REFERENCE, IS_NOT_NULL, ContentStore, FieldDefinition
from ..clients.logging import log_report
from ..clients.tempstore import PrivateTempStore, PrivateTempStoreFactory
from ..config.settings import ReportConfig
from ..utils.errors import SelectionKeyError
from ..utils.report import BundleFields, BundleReport, CountValue, FieldInfo, ReportTable
from ..utils.timing import timed

logger = logging.getLogger(__name__)

VALUES_KEY = "values"
COUNT_CAPTION = "Count items:"
NO_FIELDS_MARKUP = "<p>There is not fields created.</p>"
TABLE_HEADERS = {
    "field_name": "Field name",
    "label": "Label",
    "field_type": "Field type",
    "required": "Required",
    "description": "Description",
    "count_used": "Count field use",
}


def decode_selection_key(key: str, separator: str) -> Tuple[str, str]:
    """Split ``<bundle><separator><entity_type>`` into ``(bundle, entity_type)``."""
    parts = key.split(separator)
    if len(parts) != 2 or not all(parts):
        raise SelectionKeyError(key, separator)
    bundle, entity_type_id = parts
    return bundle, entity_type_id


def encode_selection_key(bundle: str, entity_type_id: str, separator: str) -> str:
    return f"{bundle}{separator}{entity_type_id}"


class EntitiesInfoManager:
    """Resolves selected bundles to field info rows and renders them as tables."""

    def __init__(
        self,
        store: ContentStore,
        tempstore_factory: PrivateTempStoreFactory,
        config: Optional[ReportConfig] = None,
    ):
        self.store = store
        self._tempstore_factory = tempstore_factory
        self.config = config or ReportConfig()

    @property
    def separator(self) -> str:
        return self.config.separator

    def get_entities_info_tempstore(self, owner: str) -> PrivateTempStore:
        return self._tempstore_factory.get(self.config.tempstore_collection, owner)

    def get_values(self, tempstore: PrivateTempStore) -> List[str]:
        return list(tempstore.get(VALUES_KEY) or [])

    def resolve_entity_type(self, entity_type_id: str) -> str:
        """Swap a bundle entity type (``node_type``) for the type it bundles (``node``)."""
        return self.store.get_definition(entity_type_id).bundle_of or entity_type_id

    def get_entities_fields(self, values: List[str]) -> Dict[str, BundleFields]:
        """Configurable fields and item count for every selection key, in selection order."""
        entities: Dict[str, BundleFields] = {}
        for key in values:
            bundle, entity_type_id = decode_selection_key(key, self.separator)
            resolved = self.resolve_entity_type(entity_type_id)

            fields = self.store.get_field_definitions(resolved, bundle)
            configurable = {name: field for name, field in fields.items() if field.configurable}

            entities[key] = BundleFields(
                key=key,
                bundle=bundle,
                entity_type_id=entity_type_id,
                resolved_entity_type_id=resolved,
                count=self.get_count_bundle(resolved, bundle),
                fields=self.get_field_info(configurable),
            )
        return entities

    def get_field_info(self, fields: Dict[str, FieldDefinition]) -> Dict[str, FieldInfo]:
        """Field name, label, type, required, description and usage count per field."""
        return {
            name: FieldInfo(
                field_name=field.name,
                label=field.label,
                field_type=self.get_field_type(field),
                required="Yes" if field.required else "No",
                description=field.description,
                count_used=self.get_count_field(field),
            )
            for name, field in fields.items()
        }

    def get_field_type(self, field: FieldDefinition) -> str:
        """Field type, with target type and first target bundle for entity references."""
        if field.type != ENTITY_REFERENCE:
            return field.type

        target_bundles = field.target_bundles
        if not target_bundles:
            return field.type

        target_type = field.settings.get("target_type", "")
        return f"{field.type}:{target_type}:{target_bundles[0]}"

    def _bundle_query(self, entity_type_id: str, bundle: str):
        query = self.store.get_query(entity_type_id)
        bundle_key = self.store.get_definition(entity_type_id).bundle_key
        # Types without a bundle key have a single bundle named after the type.
        if bundle_key:
            query.condition(bundle_key, bundle)
        return query

    def get_count_bundle(self, entity_type_id: str, bundle: str) -> int:
        return int(self._bundle_query(entity_type_id, bundle).count().execute())

    def get_count_field(self, field: FieldDefinition) -> CountValue:
        """Number of entities in the field's bundle with a value for the field."""
        if field.type in self.config.excluded_count_field_types:
            return ""

        query = self._bundle_query(field.target_entity_type_id, field.target_bundle or "")
        return int(query.condition(field.name, None, IS_NOT_NULL).count().execute())

    def create_tables(self, entities: Dict[str, BundleFields]) -> List[BundleReport]:
        reports: List[BundleReport] = []
        for key, entity in entities.items():
            label = self.store.get_bundle_label(entity.entity_type_id, entity.bundle)
            caption = f"{COUNT_CAPTION}{entity.count}"

            if not entity.fields:
                reports.append(
                    BundleReport(
                        key=key,
                        name=label,
                        count=caption,
                        item_count=entity.count,
                        markup=NO_FIELDS_MARKUP,
                    )
                )
                continue

            reports.append(
                BundleReport(
                    key=key,
                    name=label,
                    count=caption,
                    item_count=entity.count,
                    table=ReportTable(
                        header=self.get_table_headers(),
                        rows=self.get_table_rows(entity.fields),
                    ),
                )
            )
        return reports

    def get_table_headers(self) -> Dict[str, str]:
        return dict(TABLE_HEADERS)

    def get_table_rows(self, fields: Dict[str, FieldInfo]) -> List[List[CountValue]]:
        return [field.as_row() for field in fields.values()]

    def build_report(self, values: List[str], owner: Optional[str] = None) -> List[BundleReport]:
        durations: Dict[str, int] = {}
        with timed("fields", durations):
            entities = self.get_entities_fields(values)
        with timed("tables", durations):
            reports = self.create_tables(entities)
        log_report(
            logger,
            bundle_count=len(reports),
            field_count=sum(len(entity.fields) for entity in entities.values()),
            durations=durations,
            owner=owner,
        )
        return reports

    def build_report_for_owner(self, owner: str) -> List[BundleReport]:
        """Report for the selection the owner last stored."""
        values = self.get_values(self.get_entities_info_tempstore(owner))
        return self.build_report(values, owner=owner)
