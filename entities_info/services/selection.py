"""Selection form choices and persistence of the user's bundle selection."""

from __future__ import annotations

import logging
import time
from typing import List

from ..clients.content_store import ContentStore
from ..clients.logging import log_selection
from ..config.settings import DEFAULT_SEPARATOR
from ..utils.report import SelectionGroup, SelectionOption
from ..utils.timing import elapsed_ms
from .entities_info_manager import (
    VALUES_KEY,
    EntitiesInfoManager,
    decode_selection_key,
    encode_selection_key,
)

logger = logging.getLogger(__name__)


def build_selection_options(store: ContentStore, separator: str = DEFAULT_SEPARATOR) -> List[SelectionGroup]:
    """One group per bundleable content entity type, sorted by label.

    Option keys address a bundle through its bundle entity type when the type
    has one (``article-ei-node_type``), and through the type itself otherwise
    (``user-ei-user``).
    """
    groups: List[SelectionGroup] = []
    for definition in store.get_definitions().values():
        if not definition.is_content or not definition.bundles:
            continue
        key_entity_type = definition.bundle_entity_type or definition.id
        options = [
            SelectionOption(key=encode_selection_key(bundle, key_entity_type, separator), label=label)
            for bundle, label in definition.bundles.items()
        ]
        options.sort(key=lambda option: option.label.lower())
        groups.append(SelectionGroup(entity_type_id=definition.id, label=definition.label, options=options))
    groups.sort(key=lambda group: group.label.lower())
    return groups


class SelectionService:
    """Stores and reads the bundles a user picked for the report."""

    def __init__(self, manager: EntitiesInfoManager):
        self._manager = manager

    def options(self) -> List[SelectionGroup]:
        return build_selection_options(self._manager.store, self._manager.separator)

    def validate(self, values: List[str]) -> List[str]:
        """Decode every key, check its entity type and bundle exist, drop repeats."""
        unique: List[str] = []
        for key in values:
            bundle, entity_type_id = decode_selection_key(key, self._manager.separator)
            self._manager.store.get_bundle_label(entity_type_id, bundle)
            if key not in unique:
                unique.append(key)
        return unique

    def save(self, owner: str, values: List[str]) -> List[str]:
        started = time.perf_counter()
        values = self.validate(values)
        self._manager.get_entities_info_tempstore(owner).set(VALUES_KEY, values)
        log_selection(logger, owner, "saved", len(values), elapsed_ms(started))
        return list(values)

    def load(self, owner: str) -> List[str]:
        values = self._manager.get_values(self._manager.get_entities_info_tempstore(owner))
        log_selection(logger, owner, "loaded", len(values))
        return values

    def clear(self, owner: str) -> bool:
        deleted = self._manager.get_entities_info_tempstore(owner).delete(VALUES_KEY)
        log_selection(logger, owner, "cleared", 0)
        return deleted
