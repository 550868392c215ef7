#!/usr/bin/env python3
"""
Script to generate normalizr entities and react-query hooks from an API source document.
Usage: python scripts/generate_query_hooks.py api.yaml --out-dir src/generated
"""
import sys
import argparse
from pathlib import Path

from normalized_query.core.config import settings
from normalized_query.core.logging import configure_logging
from normalized_query.schemas.graph import load_api_source
from normalized_query.generators.query_gen.config import (
    PluginConfig,
    generated_wins_policy,
    keep_existing_policy,
    preserve_additions_policy,
)
from normalized_query.generators.query_gen.generator import generate_normalized_queries
from normalized_query.generators.query_gen.index import SchemaGraphError
from normalized_query.generators.query_gen.types import PluginFileConfig
from normalized_query.generators.query_gen.writer import FileSystemSink

CONFLICT_POLICIES = {
    "generated-wins": generated_wins_policy,
    "keep-existing": keep_existing_policy,
    "preserve-additions": preserve_additions_policy,
}


def build_file_configs(directory: str, entities_file: str, hooks_file: str):
    """One file for entity declarations, one for method hooks."""
    return [
        PluginFileConfig(
            directory=directory,
            file_name=entities_file,
            schema_filter=lambda schema: schema.raw_schema.entity is not None,
        ),
        PluginFileConfig(
            directory=directory,
            file_name=hooks_file,
            method_filter=lambda method: True,
        ),
    ]


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate normalized react-query hooks")
    parser.add_argument("source", type=Path, help="API source document (.json, .yaml or .yml)")
    parser.add_argument("--out-dir", type=Path, default=Path("."), help="Output root directory")
    parser.add_argument("--directory", default="generated", help="Directory for generated files, relative to --out-dir")
    parser.add_argument("--entities-file", default="entities.ts")
    parser.add_argument("--hooks-file", default="hooks.ts")
    parser.add_argument("--conflict-policy", choices=sorted(CONFLICT_POLICIES), default="generated-wins")
    parser.add_argument("--log-level", default=settings.log_level)
    args = parser.parse_args()

    configure_logging(args.log_level)

    source = load_api_source(args.source)
    config = PluginConfig.from_settings(
        build_file_configs(args.directory, args.entities_file, args.hooks_file),
        conflict_policy=CONFLICT_POLICIES[args.conflict_policy],
    )

    try:
        results = generate_normalized_queries(source, config, FileSystemSink(args.out_dir))
    except SchemaGraphError as e:
        print(f"Error: {e}")
        return 1

    for result in results:
        print(f"{result.file_key}: {result.state.value} ({result.declaration_count} declarations)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
