"""Runtime configuration models for the entities info service."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

DEFAULT_SEPARATOR = "-ei-"
DEFAULT_EXCLUDED_COUNT_FIELD_TYPES = ["field_menu"]
ONE_WEEK_SECONDS = 604800


class ContentStoreConfig(BaseModel):
    backend: Literal["snapshot", "drush"] = "snapshot"
    snapshot_path: Optional[str] = None
    drush_command: List[str] = Field(default_factory=lambda: ["drush"])
    drupal_root: Optional[str] = None
    timeout_seconds: int = 120


class TempStoreConfig(BaseModel):
    backend: Literal["memory", "firestore"] = "memory"
    collection_prefix: str = "tempstore_private"
    expire_seconds: int = ONE_WEEK_SECONDS


class ReportConfig(BaseModel):
    separator: str = Field(DEFAULT_SEPARATOR, min_length=1)
    tempstore_collection: str = "entities_info_export"
    excluded_count_field_types: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_COUNT_FIELD_TYPES)
    )


class RuntimeConfig(BaseModel):
    metadata: dict = Field(default_factory=dict)
    content_store: ContentStoreConfig = Field(default_factory=ContentStoreConfig)
    tempstore: TempStoreConfig = Field(default_factory=TempStoreConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
