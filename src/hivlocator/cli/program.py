import argparse
import sys
from importlib import metadata

from hivlocator.cli.logging_utils import setup_logging

try:
    __version__ = metadata.version("hivlocator")
except metadata.PackageNotFoundError:
    __version__ = "unknown"

root_parser = argparse.ArgumentParser(
    prog="hivlocator",
    description="Simple LANL's HIV locator tool implementation: maps nucleotide or amino acid "
                "sequences onto HXB2 or SIVmm239 numbering.")
root_parser.add_argument(
    "--version",
    action="version",
    version=f"%(prog)s {__version__}"
)
root_parser.add_argument(
    "--verbose", "-v",
    action="count",
    dest="verbosity",
    default=0,
    help="Log progress to stderr. Repeat for debug output."
)
subparsers = root_parser.add_subparsers(required=True)

# Subcommands register themselves on import
from hivlocator.cli import locate, references  # noqa: E402,F401


def run(argv=None):
    args = root_parser.parse_args(argv)
    setup_logging(args.verbosity)
    sys.exit(args.func(args))


if __name__ == "__main__":
    run()
