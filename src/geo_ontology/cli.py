"""
Command-line interface for geo-ontology.

Provides commands for building an ontology from a boundary file and for
inspecting, merging results and listing rules.
"""

import argparse
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Optional

from .duckdb_source import read_objects
from .ontology import OntologyConfig, OntologyError, build_ontology, merge_ontologies
from .rules import RuleLoadError, load_rules
from .serialize import iter_zones, read_metadata, read_ontology, write_ontology


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="geo-ontology",
        description="Build a hierarchical geographic ontology from administrative boundaries",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debug messages",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only log warnings and errors",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build an ontology from a boundary file",
    )
    build_parser.add_argument(
        "input",
        type=Path,
        help="Vector file with administrative relations and place nodes",
    )
    build_parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Output file path (default: <input stem>.json); .jsonl and .gz are supported",
    )
    build_parser.add_argument(
        "-c", "--country-code",
        type=str,
        default=None,
        help="Country code of every area (skips country resolution)",
    )
    build_parser.add_argument(
        "--disable-voronoi",
        action="store_true",
        help="Do not create areas for orphan places",
    )
    build_parser.add_argument(
        "--lang",
        action="append",
        default=[],
        help="Language to compute labels for (repeatable)",
    )
    build_parser.add_argument(
        "--rules-dir",
        type=Path,
        default=None,
        help="Directory of per-country YAML rule files (default: bundled rules)",
    )
    build_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Threads used to type areas (default: automatic)",
    )
    build_parser.add_argument(
        "--tolerance",
        type=float,
        default=0.01,
        help="Share of an area allowed outside its container (default: 0.01)",
    )

    # Stats command
    stats_parser = subparsers.add_parser(
        "stats",
        help="Show statistics of a built ontology",
    )
    stats_parser.add_argument(
        "path",
        type=Path,
        help="Ontology file written by the build command",
    )

    # Merge command
    merge_parser = subparsers.add_parser(
        "merge",
        help="Merge several built ontologies into one",
    )
    merge_parser.add_argument(
        "inputs",
        type=Path,
        nargs="+",
        help="Ontology files written by the build command",
    )
    merge_parser.add_argument(
        "-o", "--output",
        type=Path,
        required=True,
        help="Output file path; .jsonl and .gz are supported",
    )

    # Rules command
    rules_parser = subparsers.add_parser(
        "rules",
        help="List the countries having typing rules",
    )
    rules_parser.add_argument(
        "--rules-dir",
        type=Path,
        default=None,
        help="Directory of per-country YAML rule files (default: bundled rules)",
    )

    return parser


def setup_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_build(args: argparse.Namespace) -> int:
    """Handle the build command."""
    try:
        config = OntologyConfig(
            country_code=args.country_code,
            attribute_places=not args.disable_voronoi,
            langs=args.lang,
            max_workers=args.workers,
            containment_tolerance=args.tolerance,
        )
        rules = load_rules(args.rules_dir)
        print(f"Reading {args.input}...")
        raw_objects = read_objects(args.input)
        print(f"Read {len(raw_objects)} objects")
        ontology = build_ontology(raw_objects, config, rules, source_name=args.input.name)
    except (ValueError, FileNotFoundError, OntologyError) as e:
        # RuleLoadError is a ValueError
        print(f"Error: {e}")
        return 1

    stats = ontology.stats
    print("\nBuild statistics:")
    print(f"  Areas: {len(ontology.areas)}")
    print(f"  Typed areas: {stats.typed_areas}")
    print(f"  Areas without country: {stats.areas_without_country}")
    print(f"  Areas with unmapped rules: {stats.unmapped_areas}")
    print(f"  Additional places: {stats.additional_places}")
    print(f"  Pruned areas: {stats.pruned_areas}")

    output_path = args.output or Path(f"{args.input.stem}.json")
    write_ontology(ontology, output_path)
    print(f"Wrote {len(ontology.areas)} areas to {output_path}")

    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Handle the stats command."""
    if not args.path.exists():
        print(f"Error: {args.path} not found")
        return 1

    types = Counter(zone.get("zone_type") for zone in iter_zones(args.path))
    print(f"Ontology {args.path}:")
    print(f"  Areas: {sum(types.values())}")
    for zone_type, count in sorted(types.items(), key=lambda kv: str(kv[0])):
        print(f"    {zone_type}: {count}")

    meta = read_metadata(args.path)
    if meta:
        stats = meta.get("stats", {})
        print(f"  Areas without country: {stats.get('areas_without_country', 0)}")
        for country, count in sorted(stats.get("unknown_country_rules", {}).items()):
            print(f"  No rules for {country}: {count}")
        for country, levels in sorted(stats.get("unhandled_admin_level", {}).items()):
            for level, count in sorted(levels.items()):
                print(f"  Unhandled level {level} in {country}: {count}")

    return 0


def cmd_merge(args: argparse.Namespace) -> int:
    """Handle the merge command."""
    missing = [path for path in args.inputs if not path.exists()]
    if missing:
        print(f"Error: {missing[0]} not found")
        return 1

    try:
        ontology = merge_ontologies([read_ontology(path) for path in args.inputs])
    except OntologyError as e:
        print(f"Error: {e}")
        return 1

    write_ontology(ontology, args.output)
    print(f"Merged {len(args.inputs)} ontologies into {len(ontology.areas)} areas in {args.output}")

    return 0


def cmd_rules(args: argparse.Namespace) -> int:
    """Handle the rules command."""
    try:
        rules = load_rules(args.rules_dir)
    except (RuleLoadError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    print(f"Rules for {len(rules)} countries:")
    for code in rules.countries:
        levels = rules.get(code).admin_levels
        mapping = ", ".join(f"{level}={t.value}" for level, t in sorted(levels.items()))
        print(f"  {code}: {mapping}")

    return 0


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.quiet)

    if args.command == "build":
        return cmd_build(args)
    elif args.command == "stats":
        return cmd_stats(args)
    elif args.command == "merge":
        return cmd_merge(args)
    elif args.command == "rules":
        return cmd_rules(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
