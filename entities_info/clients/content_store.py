"""Interface to the content framework's entity, field and query subsystems."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..utils.errors import BundleNotFoundError, EntityTypeNotFoundError

ENTITY_REFERENCE = "entity_reference"
IS_NOT_NULL = "IS NOT NULL"
SUPPORTED_OPERATORS = ("=", IS_NOT_NULL)


@dataclass
class EntityTypeDefinition:
    """Entity type as registered with the content framework.

    ``bundle_of`` is set on bundle entity types (``node_type`` is the bundle
    entity of ``node``). ``bundles`` maps bundle machine names to labels for
    types that have bundles.
    """

    id: str
    label: str
    group: str = "content"
    bundle_of: Optional[str] = None
    bundle_entity_type: Optional[str] = None
    entity_keys: Dict[str, str] = field(default_factory=dict)
    bundles: Dict[str, str] = field(default_factory=dict)

    @property
    def bundle_key(self) -> Optional[str]:
        return self.entity_keys.get("bundle") or None

    @property
    def is_content(self) -> bool:
        return self.group == "content"

    @classmethod
    def from_dict(cls, entity_type_id: str, data: Dict[str, Any]) -> "EntityTypeDefinition":
        return cls(
            id=entity_type_id,
            label=data.get("label") or entity_type_id,
            group=data.get("group") or "content",
            bundle_of=data.get("bundle_of") or None,
            bundle_entity_type=data.get("bundle_entity_type") or None,
            entity_keys={k: v for k, v in (data.get("entity_keys") or {}).items() if v},
            bundles=dict(data.get("bundles") or {}),
        )


@dataclass
class FieldDefinition:
    """A field attached to an (entity type, bundle) pair.

    Only configurable fields (created through field config, as opposed to base
    fields the entity type always carries) are reported.
    """

    name: str
    label: str
    type: str
    target_entity_type_id: str
    target_bundle: Optional[str] = None
    required: bool = False
    description: str = ""
    settings: Dict[str, Any] = field(default_factory=dict)
    configurable: bool = True

    @property
    def target_bundles(self) -> List[str]:
        """Configured reference target bundles in insertion order."""
        handler_settings = self.settings.get("handler_settings") or {}
        target_bundles = handler_settings.get("target_bundles") or {}
        if isinstance(target_bundles, dict):
            return list(target_bundles.values())
        return list(target_bundles)

    @classmethod
    def from_dict(cls, entity_type_id: str, bundle: str, data: Dict[str, Any]) -> "FieldDefinition":
        return cls(
            name=data["name"],
            label=data.get("label") or data["name"],
            type=data["type"],
            target_entity_type_id=data.get("target_entity_type_id") or entity_type_id,
            target_bundle=data.get("target_bundle") or bundle,
            required=bool(data.get("required", False)),
            description=data.get("description") or "",
            settings=dict(data.get("settings") or {}),
            configurable=bool(data.get("configurable", True)),
        )


@dataclass
class QueryCondition:
    field: str
    value: Any = None
    operator: str = "="


class EntityQuery(ABC):
    """Entity query builder; ``count()`` switches ``execute()`` to a count."""

    def __init__(self, entity_type_id: str):
        self.entity_type_id = entity_type_id
        self.conditions: List[QueryCondition] = []
        self.is_count = False

    def condition(self, field_name: str, value: Any = None, operator: str = "=") -> "EntityQuery":
        if operator not in SUPPORTED_OPERATORS:
            raise ValueError(f"Unsupported query operator: {operator}")
        self.conditions.append(QueryCondition(field=field_name, value=value, operator=operator))
        return self

    def count(self) -> "EntityQuery":
        self.is_count = True
        return self

    @abstractmethod
    def execute(self) -> Union[int, List[str]]:
        """Return matching entity ids, or their number after ``count()``."""


class ContentStore(ABC):
    """Read-only view of a site's entity types, bundles, fields and content."""

    name = "content_store"

    @abstractmethod
    def get_definitions(self) -> Dict[str, EntityTypeDefinition]:
        """All entity type definitions keyed by id."""

    @abstractmethod
    def get_field_definitions(self, entity_type_id: str, bundle: str) -> Dict[str, FieldDefinition]:
        """Field definitions of a bundle keyed by field name, in display order."""

    @abstractmethod
    def get_query(self, entity_type_id: str) -> EntityQuery:
        """A fresh query against stored entities of the type."""

    def get_definition(self, entity_type_id: str) -> EntityTypeDefinition:
        definition = self.get_definitions().get(entity_type_id)
        if definition is None:
            raise EntityTypeNotFoundError(entity_type_id)
        return definition

    def get_bundle_label(self, entity_type_id: str, bundle: str) -> str:
        """Label of a bundle, addressed through the content type or its bundle entity type."""
        definition = self.get_definition(entity_type_id)
        if definition.bundle_of:
            definition = self.get_definition(definition.bundle_of)
        label = definition.bundles.get(bundle)
        if label is None:
            raise BundleNotFoundError(definition.id, bundle)
        return label

    def ensure_bundle(self, entity_type_id: str, bundle: str) -> EntityTypeDefinition:
        definition = self.get_definition(entity_type_id)
        if bundle not in definition.bundles:
            raise BundleNotFoundError(entity_type_id, bundle)
        return definition
