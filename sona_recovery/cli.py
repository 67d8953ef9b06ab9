#!/usr/bin/env python3
"""
SONA recovery command line interface.
"""

import argparse
import asyncio
import logging
import signal
import sys
from dataclasses import replace
from typing import List, Optional

import yaml

from .config import RecoveryConfig, load_config
from .controller import ARP_MODES
from .errors import ErrorCode, StandardError, error_formatter
from .recovery import RecoveryOrchestrator, RecoveryResult

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130

RECOVERY_STEPS = """\
Recovery steps:
  1. Backup the existing SONA node configuration.
  2. Restart the entire SONA pods including clusterman.
  3. Restore the backed up SONA node configuration.
  4. Configure ARP mode (broadcast by default).
  5. Synchronize openstack states by querying the neutron server.
  6. Reinstall all flow rules into OpenvSwitch.

Exit codes:
  0    recovery completed (failed reconfiguration calls are only warnings)
  1    backup validation failed, or any other fatal error
  130  recovery cancelled
"""

logger = logging.getLogger(__name__)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI usage."""
    parser = argparse.ArgumentParser(
        prog="sona-recovery",
        description="Recover a SONA deployment by recreating its pods and restoring the node configuration.",
        epilog=RECOVERY_STEPS,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )

    parser.add_argument(
        '-h', '-?', '--help',
        action='help',
        help='Show this help message and exit'
    )

    parser.add_argument(
        '--config', '-c',
        help='Path to the recovery configuration file'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--arp-mode',
        choices=ARP_MODES,
        help='ARP mode to configure after the restore (overrides the configuration)'
    )

    parser.add_argument(
        '--show-config',
        action='store_true',
        help='Print the effective configuration and exit'
    )

    return parser


def setup_logging(level: str = "info", log_file: str = "", verbose: bool = False):
    """Configure root logging once for the whole run."""
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


async def run_recovery(config: RecoveryConfig) -> RecoveryResult:
    """Run one recovery with SIGINT and SIGTERM mapped to cancellation."""
    orchestrator = RecoveryOrchestrator(config)
    loop = asyncio.get_running_loop()

    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, orchestrator.request_cancel)
            installed.append(sig)
        except NotImplementedError:
            # Not available on Windows event loops
            pass

    try:
        return await orchestrator.run()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def exit_code(result: RecoveryResult) -> int:
    if result.success:
        return EXIT_OK
    if result.error is not None and result.error.code == ErrorCode.CANCELLED:
        return EXIT_CANCELLED
    return EXIT_FAILED


def report(result: RecoveryResult):
    """Print the run outcome for the operator."""
    if result.success:
        print(f"✓ SONA recovery completed in {result.duration.total_seconds():.1f} seconds")
        for call in result.failed_calls:
            print(f"  warning: {call.describe()}")
    else:
        print(f"✗ {error_formatter.to_user_friendly(result.error)}")
        if result.error is not None:
            print(f"  {result.error}")

    if not result.snapshot_purged:
        print(f"  warning: snapshot {result.snapshot_path} could not be removed; delete it by hand")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI usage."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        config, warnings = load_config(args.config)
    except StandardError as e:
        print(f"✗ {error_formatter.to_user_friendly(e)}", file=sys.stderr)
        print(f"  {e}", file=sys.stderr)
        return EXIT_FAILED

    if args.arp_mode:
        config = replace(config, recovery=replace(config.recovery, arp_mode=args.arp_mode))

    if args.show_config:
        print(yaml.safe_dump(config.to_dict(mask_secrets=True), default_flow_style=False, sort_keys=False), end="")
        return EXIT_OK

    setup_logging(config.logging.level, config.logging.file, args.verbose)
    for warning in warnings:
        logger.warning(f"Configuration warning: {warning}")

    result = asyncio.run(run_recovery(config))
    report(result)
    return exit_code(result)


if __name__ == '__main__':
    sys.exit(main())
