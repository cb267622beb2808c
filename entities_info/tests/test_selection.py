"""Unit tests for selection keys, selection options and stored selections."""

import pytest

from entities_info.services.entities_info_manager import decode_selection_key, encode_selection_key
from entities_info.services.selection import build_selection_options
from entities_info.utils.errors import BundleNotFoundError, EntityTypeNotFoundError, SelectionKeyError


@pytest.mark.parametrize(
    "key, expected",
    [
        ("article-ei-node", ("article", "node")),
        ("article-ei-node_type", ("article", "node_type")),
        ("my-bundle-ei-node_type", ("my-bundle", "node_type")),
    ],
)
def test_decode_selection_key(key, expected):
    assert decode_selection_key(key, "-ei-") == expected


def test_decode_then_encode_recovers_key():
    bundle, entity_type_id = decode_selection_key("topics-ei-taxonomy_vocabulary", "-ei-")

    assert encode_selection_key(bundle, entity_type_id, "-ei-") == "topics-ei-taxonomy_vocabulary"


@pytest.mark.parametrize("key", ["article", "article-ei-", "-ei-node", "a-ei-b-ei-c"])
def test_decode_rejects_malformed_keys(key):
    with pytest.raises(SelectionKeyError) as exc_info:
        decode_selection_key(key, "-ei-")

    assert exc_info.value.key == key


def test_options_group_content_types_by_label(content_store):
    groups = build_selection_options(content_store)

    assert [group.entity_type_id for group in groups] == ["node", "taxonomy_term", "user"]
    content = groups[0]
    assert content.label == "Content"
    assert [(option.key, option.label) for option in content.options] == [
        ("article-ei-node_type", "Article"),
        ("page-ei-node_type", "Basic page"),
        ("landing-ei-node_type", "Landing page"),
    ]


def test_options_use_entity_type_when_no_bundle_entity(content_store):
    groups = {group.entity_type_id: group for group in build_selection_options(content_store)}

    assert [option.key for option in groups["user"].options] == ["user-ei-user"]


def test_options_skip_configuration_entities(content_store):
    entity_type_ids = {group.entity_type_id for group in build_selection_options(content_store)}

    assert "node_type" not in entity_type_ids
    assert "menu" not in entity_type_ids


def test_every_option_builds_a_report(manager, content_store):
    keys = [option.key for group in build_selection_options(content_store) for option in group.options]

    reports = manager.build_report(keys)

    assert len(reports) == len(keys) == 6


def test_save_and_load_selection(selection_service):
    saved = selection_service.save("user-1", ["article-ei-node_type", "user-ei-user"])

    assert saved == ["article-ei-node_type", "user-ei-user"]
    assert selection_service.load("user-1") == ["article-ei-node_type", "user-ei-user"]


def test_selection_is_private_to_owner(selection_service):
    selection_service.save("user-1", ["article-ei-node_type"])

    assert selection_service.load("user-2") == []


def test_clear_selection(selection_service):
    selection_service.save("user-1", ["article-ei-node_type"])

    assert selection_service.clear("user-1") is True
    assert selection_service.load("user-1") == []
    assert selection_service.clear("user-1") is False


def test_save_rejects_unknown_bundle(selection_service):
    with pytest.raises(BundleNotFoundError):
        selection_service.save("user-1", ["article-ei-node_type", "blog-ei-node_type"])

    assert selection_service.load("user-1") == []


def test_save_rejects_unknown_entity_type(selection_service):
    with pytest.raises(EntityTypeNotFoundError):
        selection_service.save("user-1", ["article-ei-product_type"])


def test_save_rejects_malformed_key(selection_service):
    with pytest.raises(SelectionKeyError):
        selection_service.save("user-1", ["article_node"])


def test_changing_saved_list_does_not_change_stored_selection(selection_service):
    saved = selection_service.save("user-1", ["article-ei-node_type"])
    saved.append("page-ei-node_type")

    loaded = selection_service.load("user-1")
    loaded.append("user-ei-user")

    assert selection_service.load("user-1") == ["article-ei-node_type"]


def test_save_drops_repeated_keys(selection_service, manager):
    saved = selection_service.save(
        "user-1", ["article-ei-node_type", "user-ei-user", "article-ei-node_type"]
    )

    assert saved == ["article-ei-node_type", "user-ei-user"]
    assert selection_service.load("user-1") == saved
    assert len(manager.build_report_for_owner("user-1")) == len(saved)
