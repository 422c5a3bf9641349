"""
zk-migrator command line

Exports a ZooKeeper subtree from a source ensemble into an intermediate file and replays
it against a destination ensemble.
"""

import argparse
import asyncio
import sys
from collections.abc import Sequence

from dotenv import load_dotenv
from pydantic import ValidationError

from .constants import DEFAULT_JAAS_SECTION, MODE_EXPORT, MODE_IMPORT, MODE_MIGRATE, ROOT_PATH
from .core.endpoint import parse_endpoint, resolve_auth
from .core.exceptions import ConfigurationError, MigrationError
from .core.logging_config import get_logger, setup_logging
from .core.migration import MigrationOrchestrator
from .core.settings import MigratorSettings
from .models.migration import MigrationPlan, MigrationReport

DESCRIPTION = "A tool for importing and exporting data from ZooKeeper."


def build_parser(settings: MigratorSettings) -> argparse.ArgumentParser:
    """Build the argument parser; endpoint defaults come from ZK_SRC / ZK_DST."""
    parser = argparse.ArgumentParser(prog="zk-migrator", description=DESCRIPTION)
    parser.add_argument(
        "-src",
        "--source",
        metavar="zookeeper-endpoint",
        default=settings.source,
        help="ZooKeeper src endpoint string (ex. host:port/path)",
    )
    parser.add_argument(
        "-dst",
        "--destination",
        metavar="zookeeper-endpoint",
        default=settings.destination,
        help="ZooKeeper dst endpoint string (ex. host:port/path)",
    )

    auth = parser.add_mutually_exclusive_group()
    auth.add_argument(
        "-a", "--auth", metavar="username:password", help="digest credentials for both ensembles"
    )
    auth.add_argument(
        "-k", "--krb-conf", metavar="jaas-filename", help="JAAS file containing Kerberos config"
    )
    parser.add_argument(
        "--jaas-section",
        default=DEFAULT_JAAS_SECTION,
        help="login section to read from the JAAS file",
    )

    parser.add_argument(
        "--ignore-source",
        action="store_true",
        help="apply the destination's default ACL instead of the exported ACL",
    )
    parser.add_argument(
        "--use-existing-acl",
        action="store_true",
        help="keep the current ACL of nodes that already exist at the destination",
    )
    parser.add_argument(
        "--skip-ephemeral",
        action="store_true",
        help="do not recreate ephemeral nodes (they are recreated as persistent by default)",
    )
    parser.add_argument(
        "--mode",
        choices=[MODE_MIGRATE, MODE_EXPORT, MODE_IMPORT],
        default=MODE_MIGRATE,
        help="export then import (default), export only, or import an existing file",
    )
    parser.add_argument(
        "--root-path", default=ROOT_PATH, help="subtree to export, relative to the chroot"
    )
    parser.add_argument(
        "-f",
        "--file",
        dest="artifact",
        default=settings.artifact_path,
        help="intermediate file holding the exported data",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level.upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


def parse_args(
    argv: Sequence[str] | None, settings: MigratorSettings
) -> tuple[argparse.ArgumentParser, argparse.Namespace]:
    """Parse arguments; exits with usage when a required endpoint is missing."""
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    if args.mode in (MODE_MIGRATE, MODE_EXPORT) and not args.source:
        parser.error("the following arguments are required: -src/--source")
    if args.mode in (MODE_MIGRATE, MODE_IMPORT) and not args.destination:
        parser.error("the following arguments are required: -dst/--destination")

    return parser, args


def build_plan(args: argparse.Namespace) -> MigrationPlan:
    """Resolve endpoints and credentials into a plan.

    Raises:
        ConfigurationError: If an endpoint, credential or path is invalid
    """
    source = parse_endpoint(args.source) if args.mode != MODE_IMPORT else None
    destination = parse_endpoint(args.destination) if args.mode != MODE_EXPORT else None
    auth = resolve_auth(args.auth, args.krb_conf, jaas_section=args.jaas_section)

    try:
        return MigrationPlan(
            source=source,
            destination=destination,
            auth=auth,
            artifact_path=args.artifact,
            mode=args.mode,
            root_path=args.root_path,
            ignore_source_acl=args.ignore_source,
            use_existing_acl=args.use_existing_acl,
            skip_ephemeral=args.skip_ephemeral,
        )
    except ValidationError as e:
        raise ConfigurationError(str(e.errors()[0]["msg"])) from e


def _summary(report: MigrationReport) -> str:
    parts = []
    if report.mode != MODE_IMPORT:
        parts.append(f"exported {report.nodes_exported} nodes to {report.artifact_path}")
    if report.mode != MODE_EXPORT:
        parts.append(
            f"wrote {report.nodes_written} nodes "
            f"({report.nodes_created} created, {report.nodes_updated} updated, "
            f"{report.nodes_skipped} skipped)"
        )
    return "; ".join(parts)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point; returns the process exit status."""
    load_dotenv()
    try:
        settings = MigratorSettings()
    except ValidationError as e:
        print(f"zk-migrator: invalid environment configuration: {e}", file=sys.stderr)
        return 2
    parser, args = parse_args(argv, settings)

    setup_logging(log_level=args.log_level, log_dir=settings.log_dir)
    logger = get_logger()

    try:
        plan = build_plan(args)
    except ConfigurationError as e:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return 2

    orchestrator = MigrationOrchestrator(settings)
    try:
        report = asyncio.run(orchestrator.run(plan))
    except MigrationError as e:
        print(f"{parser.prog}: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Migration interrupted")
        print(f"{parser.prog}: interrupted", file=sys.stderr)
        return 130

    print(_summary(report))
    return 0


if __name__ == "__main__":
    sys.exit(main())
