"""Content store that reads a live Drupal site through ``drush php:eval``.

Every lookup runs a small PHP snippet inside the site's bootstrap and decodes
the JSON it echoes. Entity type definitions are cached for the lifetime of the
store; field definitions and counts are always fetched fresh.
"""

from __future__ import annotations

import json
import logging
import subprocess
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..utils.errors import ContentStoreError
from ..utils.timing import elapsed_ms
from .content_store import (
    IS_NOT_NULL,
    ContentStore,
    EntityQuery,
    EntityTypeDefinition,
    FieldDefinition,
)

logger = logging.getLogger(__name__)

DEFINITIONS_PHP = """
$manager = \\Drupal::entityTypeManager();
$bundle_info = \\Drupal::service('entity_type.bundle.info');
$result = [];
foreach ($manager->getDefinitions() as $id => $definition) {
  $bundles = [];
  if ($definition->entityClassImplements('\\Drupal\\Core\\Entity\\FieldableEntityInterface')) {
    foreach ($bundle_info->getBundleInfo($id) as $bundle => $info) {
      $bundles[$bundle] = (string) $info['label'];
    }
  }
  $result[$id] = [
    'label' => (string) $definition->getLabel(),
    'group' => $definition->getGroup(),
    'bundle_of' => $definition->getBundleOf(),
    'bundle_entity_type' => $definition->getBundleEntityType(),
    'entity_keys' => $definition->getKeys(),
    'bundles' => (object) $bundles,
  ];
}
echo json_encode($result);
"""

FIELDS_PHP = """
$fields = \\Drupal::service('entity_field.manager')->getFieldDefinitions({entity_type}, {bundle});
$result = [];
foreach ($fields as $name => $field) {{
  $result[] = [
    'name' => $name,
    'label' => (string) $field->getLabel(),
    'type' => $field->getType(),
    'required' => (bool) $field->isRequired(),
    'description' => (string) $field->getDescription(),
    'settings' => $field->getSettings(),
    'target_entity_type_id' => $field->getTargetEntityTypeId(),
    'target_bundle' => $field->getTargetBundle(),
    'configurable' => $field instanceof \\Drupal\\field\\Entity\\FieldConfig,
  ];
}}
echo json_encode($result);
"""


def php_string(value: Any) -> str:
    """Render a value as a single-quoted PHP string literal."""
    if value is None:
        return "NULL"
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class DrushEntityQuery(EntityQuery):
    def __init__(self, entity_type_id: str, store: "DrushContentStore"):
        super().__init__(entity_type_id)
        self._store = store

    def to_php(self) -> str:
        lines = [
            f"$query = \\Drupal::entityTypeManager()->getStorage({php_string(self.entity_type_id)})"
            "->getQuery()->accessCheck(FALSE);"
        ]
        for condition in self.conditions:
            if condition.operator == IS_NOT_NULL:
                lines.append(f"$query->condition({php_string(condition.field)}, NULL, 'IS NOT NULL');")
            else:
                lines.append(
                    f"$query->condition({php_string(condition.field)}, {php_string(condition.value)});"
                )
        if self.is_count:
            lines.append("$query->count();")
            lines.append("echo json_encode((int) $query->execute());")
        else:
            lines.append("echo json_encode(array_values(array_map('strval', $query->execute())));")
        return "\n".join(lines)

    def execute(self) -> Union[int, List[str]]:
        return self._store.run_php(self.to_php())


class DrushContentStore(ContentStore):
    """Drush-first access to entity definitions, field definitions and counts."""

    name = "drush"

    def __init__(
        self,
        drush_command: Optional[Sequence[str]] = None,
        drupal_root: Optional[Union[str, Path]] = None,
        timeout_seconds: int = 120,
    ):
        self._drush_command = list(drush_command or ["drush"])
        self._drupal_root = Path(drupal_root) if drupal_root else None
        self._timeout_seconds = timeout_seconds
        self._definitions: Optional[Dict[str, EntityTypeDefinition]] = None

    def run_php(self, php_code: str) -> Any:
        cmd = self._drush_command + ["php:eval", php_code]
        started = time.perf_counter()
        try:
            result = subprocess.run(
                cmd,
                cwd=str(self._drupal_root) if self._drupal_root else None,
                capture_output=True,
                text=True,
                timeout=self._timeout_seconds,
            )
        except FileNotFoundError as exc:
            raise ContentStoreError(self.name, f"drush executable not found: {self._drush_command[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise ContentStoreError(self.name, f"drush timed out after {self._timeout_seconds}s") from exc

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            logger.error("drush php:eval failed", extra={"returncode": result.returncode, "stderr": stderr[:500]})
            raise ContentStoreError(self.name, f"drush exited with {result.returncode}: {stderr[:200]}")

        try:
            payload = json.loads(result.stdout)
        except ValueError as exc:
            raise ContentStoreError(self.name, f"drush returned invalid JSON: {result.stdout[:200]}") from exc

        logger.debug("drush php:eval completed", extra={"duration_ms": elapsed_ms(started)})
        return payload

    def get_definitions(self) -> Dict[str, EntityTypeDefinition]:
        if self._definitions is None:
            raw = self.run_php(DEFINITIONS_PHP)
            self._definitions = {
                entity_type_id: EntityTypeDefinition.from_dict(entity_type_id, data or {})
                for entity_type_id, data in raw.items()
            }
            logger.info("Loaded entity type definitions via drush", extra={"entity_types": len(self._definitions)})
        return self._definitions

    def get_field_definitions(self, entity_type_id: str, bundle: str) -> Dict[str, FieldDefinition]:
        self.ensure_bundle(entity_type_id, bundle)
        raw_fields = self.run_php(
            FIELDS_PHP.format(entity_type=php_string(entity_type_id), bundle=php_string(bundle))
        )
        fields: Dict[str, FieldDefinition] = {}
        for raw in raw_fields:
            definition = FieldDefinition.from_dict(entity_type_id, bundle, raw)
            fields[definition.name] = definition
        return fields

    def get_query(self, entity_type_id: str) -> DrushEntityQuery:
        self.get_definition(entity_type_id)
        return DrushEntityQuery(entity_type_id, self)
