"""
Command-line interface for pocxvanity.

Usage:
    python -m pocxvanity dead
    python -m pocxvanity cafe --testnet --workers 8
    python -m pocxvanity dead --output my_wallet.json
    python -m pocxvanity --checksum "wpkh(KxTnSTY4...)"
"""

import argparse
import logging
import sys
import time
from typing import Optional

from pocxvanity import __version__
from pocxvanity.core import Network
from pocxvanity.descriptor import add_checksum
from pocxvanity.errors import SearchCancelled, SearchError
from pocxvanity.export import prepare_export, save_wallet_file
from pocxvanity.generator import CancellationHandle, VanitySearch
from pocxvanity.matcher import CHARSET
from pocxvanity.verify import verify_result


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pocxvanity",
        description="PoCX Vanity Address Generator",
        epilog=(
            "Examples:\n"
            "  pocxvanity dead\n"
            "  pocxvanity cafe --testnet --workers 8\n"
            '  pocxvanity --checksum "wpkh(<WIF>)"\n'
            "\n"
            f"Valid pattern characters: {CHARSET} (case-insensitive)\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version", action="version", version=f"pocxvanity {__version__}"
    )

    parser.add_argument(
        "pattern", nargs="?",
        help="Bech32 characters the address must start with (after pocx1q)",
    )
    parser.add_argument(
        "--checksum", metavar="DESCRIPTOR",
        help="Print DESCRIPTOR with its checksum appended and exit",
    )
    parser.add_argument(
        "--testnet", "-t", action="store_true",
        help="Search testnet (tpocx1q...) addresses",
    )
    parser.add_argument(
        "--workers", "-w", type=int, default=0,
        help="Number of worker processes (default: one per CPU)",
    )
    parser.add_argument(
        "--interval", type=float, default=1.0,
        help="Seconds between progress updates (default: 1.0)",
    )
    parser.add_argument(
        "--output", "-o", metavar="PATH",
        help="Save the wallet as JSON to PATH",
    )
    parser.add_argument(
        "--no-verify", action="store_true",
        help="Skip re-deriving the address from the mnemonic",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Show difficulty estimate without searching",
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true",
        help="Minimal output (just the result address)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Debug logging",
    )

    return parser


def format_time(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f}m"
    elif seconds < 86400:
        return f"{seconds / 3600:.1f}h"
    else:
        return f"{seconds / 86400:.1f}d"


def format_rate(rate: float) -> str:
    if rate < 1000:
        return f"{rate:.0f}"
    elif rate < 1_000_000:
        return f"{rate / 1000:.1f}K"
    else:
        return f"{rate / 1_000_000:.2f}M"


def progress_printer(start: float):
    """Return a progress sink writing a one-line status to stderr."""
    def sink(total: int) -> None:
        elapsed = time.time() - start
        rate = total / elapsed if elapsed > 0 else 0
        sys.stderr.write(
            f"\r  Checked: {total:,}  |  "
            f"Rate: {format_rate(rate)}/sec  |  "
            f"Elapsed: {format_time(elapsed)}  "
        )
        sys.stderr.flush()
    return sink


def main(argv: Optional[list[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.checksum is not None:
        print(add_checksum(args.checksum))
        return 0

    if not args.pattern:
        parser.error("a pattern is required unless --checksum is given")

    network = Network.TEST if args.testnet else Network.MAIN

    try:
        gen = VanitySearch(
            pattern=args.pattern,
            network=network,
            num_workers=args.workers,
            progress_interval=args.interval,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    difficulty = gen.get_difficulty()

    if not args.quiet:
        print(f"pocxvanity v{__version__}")
        print(f"  Pattern:    {network.address_prefix}{gen.pattern_str}...")
        print(f"  Network:    {network.name.lower()}")
        print(f"  Workers:    {gen.num_workers}")
        print(f"  Expected:   ~{difficulty['expected_attempts']:,} attempts")
        print(f"  Difficulty: {difficulty['difficulty_description']}")
        print()

    if args.dry_run:
        return 0

    if not args.quiet:
        print("Searching...")

    sink = None if args.quiet else progress_printer(time.time())
    cancel = CancellationHandle()

    try:
        result = gen.run_blocking(progress_sink=sink, cancel=cancel)
    except SearchCancelled:
        if not args.quiet:
            sys.stderr.write("\n")
        print("No result found (search was interrupted).", file=sys.stderr)
        return 1
    except SearchError as e:
        if not args.quiet:
            sys.stderr.write("\n")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        sys.stderr.write("\n")

    export = prepare_export(result, pattern=gen.pattern_str, provider=gen.provider)

    if not args.quiet:
        print(f"\n{'=' * 60}")
        print("  MATCH FOUND")
        print(f"  Address:      {result.address}")
        print(f"  Mnemonic:     {result.mnemonic}")
        print(f"  WIF:          {export.wif}")
        print(f"  Descriptor:   {export.descriptor}")
        print(f"  Time:         {format_time(result.elapsed)}")
        print(f"  Keys Checked: {result.total_checked:,}")
        print(f"  Rate:         {format_rate(result.rate)}/sec")
        print(f"{'=' * 60}")
        print("\n  IMPORTANT: Save your mnemonic phrase in a secure location!")

    if args.output:
        path = save_wallet_file(export, args.output)
        if not args.quiet:
            print(f"\n  Saved wallet: {path}")

    if not args.no_verify:
        v = verify_result(result, export, provider=gen.provider)
        ok = v["address_valid"] and v["address_match"] and v["descriptor_valid"]
        if not args.quiet:
            print("\n  Verification:")
            print(f"    Encoding:   {'PASS' if v['address_valid'] else 'FAIL'}")
            print(f"    Address:    {'PASS' if v['address_match'] else 'FAIL'}")
            print(f"    Descriptor: {'PASS' if v['descriptor_valid'] else 'FAIL'}")
            if v["error"]:
                print(f"    Error:      {v['error']}")
        if not ok:
            return 1

    if args.quiet:
        print(result.address)

    return 0
