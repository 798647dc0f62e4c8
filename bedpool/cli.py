import argparse
import os
import sys
from contextlib import ExitStack
from typing import Sequence, TextIO
from bedpool import __version__
from bedpool.bed import BedReader
from bedpool.config import PoolConfig
from bedpool.errors import BedpoolError, FileError, OutputError
from bedpool.io import setup_logging
from bedpool.merge import sync2


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bedpool",
        description="Pool two sorted methylation BED files together.",
        epilog=(
            "Environment: BEDPOOL_LOG=<path> writes a log; "
            "BEDPOOL_CHECK_SORTED=0 disables the sort-order check."
        ),
    )
    parser.add_argument("file1", help="First file to pool")
    parser.add_argument("file2", help="Second file to pool")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def pool(config: PoolConfig, out: TextIO) -> None:
    with ExitStack() as stack:
        r1 = stack.enter_context(BedReader.open(config.file1, config.check_sorted))
        r2 = stack.enter_context(BedReader.open(config.file2, config.check_sorted))
        sync2(r1, r2, out)
        try:
            out.flush()
        except OSError as e:
            raise OutputError(e) from e


def main(argv: Sequence[str] | None = None, out: TextIO | None = None) -> int:
    args = make_parser().parse_args(argv)
    out = sys.stdout if out is None else out
    try:
        config = PoolConfig.from_env(args.file1, args.file2, os.environ)
        if config.log is not None:
            try:
                setup_logging(config.log)
            except OSError as e:
                raise FileError(config.log, e) from e
        pool(config, out)
    except BedpoolError as e:
        if (
            out is sys.stdout
            and isinstance(e, OutputError)
            and isinstance(e.cause, BrokenPipeError)
        ):
            # python flushes stdout again on exit; point it somewhere that
            # won't raise a second time
            devnull = os.open(os.devnull, os.O_WRONLY)
            os.dup2(devnull, sys.stdout.fileno())
        print(e, file=sys.stderr)
        return 1
    return 0


def run() -> None:
    sys.exit(main())
