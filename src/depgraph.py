"""depgraph - npm dependency graph resolver.

    Returns:
        int: Exit code
"""
import asyncio
import logging
import sys

from args import parse_args
from cli_config import load_runtime_config
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from graph.context import ResolutionContext
from graph.errors import ResolutionError
from graph.export import export_json, failed_nodes, iter_nodes, render_tree

logger = logging.getLogger(__name__)


def load_seed_file(file_name):
    """Loads already-resolved full names from a file.

    Args:
        file_name (str): File path containing one name@version per line.

    Returns:
        list: Full names, blank lines and # comments removed.
    """
    try:
        with open(file_name, encoding='utf-8') as file:
            lines = [line.strip() for line in file]
    except FileNotFoundError as e:
        logger.error("File not found: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except IOError as e:
        logger.error("IO error: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    return [line for line in lines if line and not line.startswith("#")]


async def run(args):
    """Resolve every requested root and optionally download tarballs.

    Returns:
        tuple: (resolved roots, unparseable specifiers, failed specifiers)
    """
    roots = []
    unparsed = []
    failed = []
    async with ResolutionContext(
        concurrent=not args.SEQUENTIAL,
        dest_dir=args.DEST_DIR,
    ) as ctx:
        if args.SEED_FILE:
            seeded = ctx.seed(load_seed_file(args.SEED_FILE))
            logger.info("Seeded %d packages from %s", seeded, args.SEED_FILE)

        for spec in args.specifiers:
            try:
                root = await ctx.resolve(spec)
            except ResolutionError as exc:
                logger.error("Resolution of %s failed: %s", spec, exc)
                failed.append(spec)
                continue
            if root is None:
                unparsed.append(spec)
                continue
            roots.append(root)
            count = sum(1 for _ in iter_nodes(root))
            logger.info("%s: %d packages resolved", root, count)

        if args.DOWNLOAD:
            nodes = {}
            for root in roots:
                for node in iter_nodes(root):
                    nodes.setdefault(node.full_name, node)
            written = await ctx.downloader.download_all(nodes.values())
            logger.info("Downloaded %d tarballs", len(written))
            for full_name in ctx.downloader.failures:
                logger.warning("Download failed: %s", full_name)

        if is_debug_enabled(logger):
            logger.debug(
                "Run finished",
                extra=extra_context(
                    event="function_exit", component="cli", action="run",
                    outcome="success", **dict(ctx.http.stats),
                ),
            )
    return roots, unparsed, failed


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL, args.LOG_FILE)
    load_runtime_config(args)
    logger.debug("Registry: %s, max tries: %d", Constants.REGISTRY_URL_NPM, Constants.MAX_TRIES)

    roots, unparsed, failed_roots = asyncio.run(run(args))

    for spec in unparsed:
        logger.error("Could not parse specifier: %s", spec)

    if args.TREE:
        for root in roots:
            print(render_tree(root))
    if args.OUTPUT:
        export_json(roots, args.OUTPUT)

    if failed_roots and not roots:
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    failed = failed_roots + [str(node) for root in roots for node in failed_nodes(root)]
    if failed:
        logger.warning("%d packages could not be resolved: %s",
                       len(failed), ", ".join(failed))
        sys.exit(ExitCodes.PARTIAL_GRAPH.value)
    if unparsed:
        sys.exit(ExitCodes.FILE_ERROR.value)
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
