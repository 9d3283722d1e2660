#!/usr/bin/env python3
"""bmc-butler command line.

Usage:
    bmc-butler [options] configure --resource RESOURCE
    bmc-butler [options] execute COMMAND

Environment variables:
    BUTLER_CONFIG        Path to butler.yaml
    BUTLER_LOG_LEVEL     Console log level (default: INFO)
    BUTLER_LOG_FILE      Log file, audit and perf logs are written next to it
"""
import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Optional

from .butler import COMMANDS, Action, Pipeline
from .config.settings import ButlerConfig, load_object, split_csv
from .errors import ConfigError, InventoryError
from .utils.audit_log import setup_audit_logging
from .utils.logging_config import get_log_file, setup_logging
from .utils.metrics import metrics

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bmc-butler",
        description="Configure and run commands on BMCs and chassis controllers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Configure every server BMC the inventory knows about in our locations
    bmc-butler --servers configure --resource configs/bmc.yaml

    # Power cycle two servers looked up by serial
    bmc-butler --serials CZ3401ABC,CZ3401ABD execute powercycle

    # See what would be touched, without touching anything
    bmc-butler --dry-run --ips 10.0.0.1 configure --resource configs/bmc.yaml
""",
    )
    parser.add_argument("-c", "--config", help="butler.yaml (default: search path or BUTLER_CONFIG)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--dry-run", action="store_true", help="Filter and route assets, contact none")
    parser.add_argument("--source", help="Inventory source, overrides the config (enc, csv, iplist)")
    parser.add_argument("--serials", help="Comma-separated serials to act on")
    parser.add_argument("--ips", help="Comma-separated BMC addresses to act on")
    parser.add_argument("--location", help="Comma-separated locations, overrides the config")
    parser.add_argument(
        "--ignore-location", action="store_true", help="Manage assets regardless of their location"
    )
    parser.add_argument("--workers", type=int, help="Number of butlers to run")

    types = parser.add_mutually_exclusive_group()
    types.add_argument("--servers", action="store_true", help="Only servers")
    types.add_argument("--chassis", action="store_true", help="Only chassis")

    actions = parser.add_subparsers(dest="action", required=True)

    configure = actions.add_parser("configure", help="Apply configuration resources")
    configure.add_argument("--resource", type=Path, required=True, help="Configuration document (YAML)")

    execute = actions.add_parser("execute", help="Run a command")
    execute.add_argument("command", choices=COMMANDS)

    return parser


def apply_overrides(config: ButlerConfig, args: argparse.Namespace) -> ButlerConfig:
    """Apply command line flags on top of the loaded config."""
    if args.dry_run:
        config.dry_run = True
    if args.source:
        config.inventory.source = args.source.lower()
    if args.serials:
        config.filter.serials = split_csv(args.serials)
    if args.ips:
        config.filter.ips = split_csv(args.ips)
    if args.location:
        config.locations = split_csv(args.location)
    if args.ignore_location:
        config.ignore_location = True
    if args.workers is not None:
        config.workers = args.workers
    if args.servers:
        config.filter.servers = True
    if args.chassis:
        config.filter.chassis = True

    config.validate()
    return config


def load_collaborator(path: str, what: str, required: bool) -> Any:
    """Instantiate the collaborator named by ``module:attribute``."""
    if not path:
        if required:
            raise ConfigError(f"No {what} configured, set '{what}: module:attribute' in butler.yaml")
        return None
    obj = load_object(path)
    return obj() if isinstance(obj, type) else obj


def build_action(args: argparse.Namespace) -> Action:
    if args.action == "configure":
        try:
            return Action("configure", config=args.resource.read_bytes())
        except OSError as e:
            raise ConfigError(f"Unable to read resource {args.resource}: {e}") from e
    return Action("execute", command=args.command)


async def run_pipeline(pipeline: Pipeline):
    """Run the pipeline, stopping it on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, pipeline.stop)
        except (NotImplementedError, RuntimeError):
            pass  # not available on this platform / thread
    return await pipeline.run()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for bmc-butler."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging("DEBUG" if args.verbose else None)
    setup_audit_logging(str(get_log_file().parent))

    try:
        config = apply_overrides(ButlerConfig.load(args.config), args)
        action = build_action(args)
        # Dry runs never open a session, so the collaborators are optional then
        required = not config.dry_run
        session = load_collaborator(config.session, "session", required)
        configurator = load_collaborator(config.configurator, "configurator", required)
        renderer = load_collaborator(config.renderer, "renderer", False)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    pipeline = Pipeline(config, action, session, configurator, renderer=renderer)

    try:
        result = asyncio.run(run_pipeline(pipeline))
    except KeyboardInterrupt:
        logger.warning("Run interrupted by user")
        return 130
    except (InventoryError, ConfigError) as e:
        logger.error(f"Run aborted: {e}")
        return 1

    for line in metrics.summary().splitlines():
        logger.info(line)

    if result.interrupted:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
