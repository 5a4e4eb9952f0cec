"""Argument parsing functionality for depgraph."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="depgraph",
        description=(
            "depgraph - resolve the transitive dependency graph of npm packages"
        ),
        add_help=True,
    )

    parser.add_argument("specifiers",
                        metavar="SPECIFIER",
                        help="Root package specifier, i.e: express, lodash@4.17.21, @types/node@^20",
                        nargs="+")
    parser.add_argument("-s", "--seed",
                        dest="SEED_FILE",
                        help="File of already-resolved name@version entries, one per line",
                        action="store",
                        type=str)
    parser.add_argument("-d", "--download",
                        dest="DOWNLOAD",
                        help="Download the tarball of every resolved package",
                        action="store_true")
    parser.add_argument("--dest",
                        dest="DEST_DIR",
                        help="Directory for downloaded tarballs (default: current directory)",
                        action="store",
                        type=str)
    parser.add_argument("--registry",
                        dest="REGISTRY",
                        help="Registry base URL",
                        action="store",
                        type=str)
    parser.add_argument("--max-tries",
                        dest="MAX_TRIES",
                        help="Attempts per network request",
                        action="store",
                        type=int)
    parser.add_argument("--max-concurrency",
                        dest="MAX_CONCURRENCY",
                        help="Upper bound on concurrent expansions/downloads",
                        action="store",
                        type=int)
    parser.add_argument("--sequential",
                        dest="SEQUENTIAL",
                        help="Resolve dependencies one at a time instead of concurrently",
                        action="store_true")
    parser.add_argument("--no-verify",
                        dest="NO_VERIFY",
                        help="Skip tarball digest verification",
                        action="store_true")
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to JSON output file",
                        action="store",
                        type=str)
    parser.add_argument("--tree",
                        dest="TREE",
                        help="Print the resolved tree",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level (default: $DEPGRAPH_LOG_LEVEL or INFO)",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
