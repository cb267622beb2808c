"""Print the field report for selected bundles from the command line."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from ..clients.registry import build_content_store, build_tempstore_factory
from ..config.config_loader import dump_config, load_runtime_config
from ..services.entities_info_manager import EntitiesInfoManager
from ..services.report_export import report_to_csv, report_to_text
from ..services.selection import build_selection_options
from ..utils.errors import EntitiesInfoError


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("keys", nargs="*", help="Selection keys such as article-ei-node_type")
    parser.add_argument("--config", type=Path, help="Path to an entities_info.yaml config file")
    parser.add_argument("--snapshot", type=Path, help="Read the content model from this snapshot file")
    parser.add_argument("--format", choices=("text", "csv", "json"), default="text")
    parser.add_argument("--all", action="store_true", help="Report every selectable bundle")
    parser.add_argument("--list-options", action="store_true", help="List selectable bundles and exit")
    parser.add_argument("--show-config", action="store_true", help="Print the resolved config and exit")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_runtime_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"Failed to load config: {exc}", file=sys.stderr)
        return 1
    if args.snapshot:
        config.content_store.backend = "snapshot"
        config.content_store.snapshot_path = str(args.snapshot)
    if args.show_config:
        print(dump_config(config))
        return 0

    try:
        store = build_content_store(config)
        manager = EntitiesInfoManager(store, build_tempstore_factory(config), config.report)

        if args.list_options:
            for group in build_selection_options(store, manager.separator):
                print(f"\n{group.label} ({len(group.options)} bundles)")
                for option in group.options:
                    print(f"- {option.key}: {option.label}")
            return 0

        keys = list(args.keys)
        if args.all:
            keys = [
                option.key
                for group in build_selection_options(store, manager.separator)
                for option in group.options
            ]
        if not keys:
            print("No selection keys given. Use --list-options to see what can be selected.", file=sys.stderr)
            return 2

        reports = manager.build_report(keys, owner="cli")
    except EntitiesInfoError as exc:
        print(exc, file=sys.stderr)
        return 1

    if args.format == "csv":
        sys.stdout.write(report_to_csv(reports))
    elif args.format == "json":
        print(json.dumps([report.model_dump() for report in reports], indent=2))
    else:
        print(report_to_text(reports))
        print(f"Processed {len(reports)} bundles")
    return 0


if __name__ == "__main__":
    sys.exit(main())
