"""Unit tests for the entities info report manager."""

import pytest

from entities_info.clients.content_store import FieldDefinition
from entities_info.config.settings import ReportConfig
from entities_info.services.entities_info_manager import (
    NO_FIELDS_MARKUP,
    TABLE_HEADERS,
    EntitiesInfoManager,
)
from entities_info.utils.errors import (
    BundleNotFoundError,
    EntityTypeNotFoundError,
    SelectionKeyError,
)


def test_required_body_field_row_for_node_key(manager):
    """article-ei-node reports body as a required text_long field with its usage count."""
    reports = manager.build_report(["article-ei-node"])

    assert len(reports) == 1
    rows = reports[0].table.rows
    assert rows[0] == ["body", "Body", "text_long", "Yes", "Main body text.", 2]


def test_bundle_entity_type_resolves_to_content_type(manager):
    """A node_type key reports the node bundle it stands for."""
    entities = manager.get_entities_fields(["article-ei-node_type"])

    article = entities["article-ei-node_type"]
    assert article.bundle == "article"
    assert article.entity_type_id == "node_type"
    assert article.resolved_entity_type_id == "node"
    assert article.count == 3


def test_base_fields_are_not_reported(manager):
    entities = manager.get_entities_fields(["article-ei-node_type"])

    assert "title" not in entities["article-ei-node_type"].fields
    assert list(entities["article-ei-node_type"].fields) == [
        "body",
        "field_tags",
        "field_image",
        "field_menu_link",
    ]


def test_full_article_table(manager):
    reports = manager.build_report(["article-ei-node_type"])

    report = reports[0]
    assert report.name == "Article"
    assert report.count == "Count items:3"
    assert report.item_count == 3
    assert report.markup is None
    assert report.table.header == TABLE_HEADERS
    assert list(report.table.header.values()) == [
        "Field name",
        "Label",
        "Field type",
        "Required",
        "Description",
        "Count field use",
    ]
    assert report.table.rows == [
        ["body", "Body", "text_long", "Yes", "Main body text.", 2],
        ["field_tags", "Tags", "entity_reference:taxonomy_term:tags", "No", "", 2],
        ["field_image", "Image", "image", "No", "Teaser image.", 1],
        ["field_menu_link", "Menu link", "field_menu", "No", "", ""],
    ]


def test_zero_field_bundle_gets_placeholder_and_true_count(manager):
    """Landing pages have only base fields: no table, but the item count is still real."""
    reports = manager.build_report(["landing-ei-node_type"])

    report = reports[0]
    assert report.table is None
    assert report.markup == NO_FIELDS_MARKUP
    assert report.name == "Landing page"
    assert report.count == "Count items:1"
    assert report.has_fields is False


def test_entity_reference_uses_first_target_bundle():
    field = FieldDefinition(
        name="field_refs",
        label="Refs",
        type="entity_reference",
        target_entity_type_id="node",
        target_bundle="article",
        settings={
            "target_type": "taxonomy_term",
            "handler_settings": {"target_bundles": {"topics": "topics", "tags": "tags"}},
        },
    )
    manager = EntitiesInfoManager(store=None, tempstore_factory=None)

    assert manager.get_field_type(field) == "entity_reference:taxonomy_term:topics"


def test_entity_reference_without_target_bundles_is_plain(manager):
    reports = manager.build_report(["page-ei-node_type"])

    rows = {row[0]: row for row in reports[0].table.rows}
    assert rows["field_related"][2] == "entity_reference"
    assert rows["field_related"][5] == 1
    assert rows["body"] == ["body", "Body", "text_long", "No", "", 1]


def test_excluded_field_type_reports_empty_count(manager):
    field = FieldDefinition(
        name="field_menu_link",
        label="Menu link",
        type="field_menu",
        target_entity_type_id="node",
        target_bundle="article",
    )

    assert manager.get_count_field(field) == ""


def test_excluded_field_types_are_configurable(content_store, tempstore_factory):
    manager = EntitiesInfoManager(
        content_store,
        tempstore_factory,
        ReportConfig(excluded_count_field_types=["image"]),
    )

    rows = {row[0]: row for row in manager.build_report(["article-ei-node_type"])[0].table.rows}
    assert rows["field_image"][5] == ""
    assert rows["field_menu_link"][5] == 0


def test_type_without_bundle_key_counts_all_entities(manager):
    reports = manager.build_report(["user-ei-user"])

    report = reports[0]
    assert report.name == "User"
    assert report.item_count == 3
    assert report.table.rows == [
        ["field_full_name", "Full name", "string", "Yes", "", 2],
        ["user_picture", "Picture", "image", "No", "", 0],
    ]


def test_count_bundle_uses_dynamic_bundle_key(manager):
    """Taxonomy terms keep their bundle in 'vid', not 'type'."""
    assert manager.get_count_bundle("taxonomy_term", "topics") == 2
    assert manager.get_count_bundle("taxonomy_term", "tags") == 1


def test_reports_follow_selection_order(manager):
    keys = ["user-ei-user", "tags-ei-taxonomy_vocabulary", "article-ei-node_type"]

    reports = manager.build_report(keys)

    assert [report.key for report in reports] == keys
    assert [report.name for report in reports] == ["User", "Tags", "Article"]
    assert reports[1].markup == NO_FIELDS_MARKUP


@pytest.mark.parametrize("key", ["article", "article-ei-", "-ei-node", "a-ei-b-ei-c", ""])
def test_malformed_key_aborts_report(manager, key):
    with pytest.raises(SelectionKeyError):
        manager.build_report(["article-ei-node_type", key])


def test_unknown_entity_type_aborts_report(manager):
    with pytest.raises(EntityTypeNotFoundError):
        manager.build_report(["article-ei-missing_type"])


def test_unknown_bundle_aborts_report(manager):
    with pytest.raises(BundleNotFoundError):
        manager.build_report(["missing-ei-node_type"])


def test_values_round_trip_through_tempstore(manager):
    tempstore = manager.get_entities_info_tempstore("user-1")
    assert manager.get_values(tempstore) == []

    tempstore.set("values", ["article-ei-node_type"])

    assert manager.get_values(tempstore) == ["article-ei-node_type"]
    reports = manager.build_report_for_owner("user-1")
    assert reports[0].name == "Article"


def test_custom_separator(content_store, tempstore_factory):
    manager = EntitiesInfoManager(content_store, tempstore_factory, ReportConfig(separator="-"))

    reports = manager.build_report(["article-node_type"])

    assert reports[0].item_count == 3
