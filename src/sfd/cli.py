"""Command-line entry point for sfd."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence, Tuple

from .core.controller import FatalError, RunConfig, SingleFileController
from .core.inliner import DEFAULT_IMAGE_TYPES
from .core.logger import initialize_logging

logger = logging.getLogger("sfd.cli")


def _image_type(value: str) -> Tuple[str, str]:
    suffix, sep, mime = value.partition("=")
    if not sep or not suffix.strip() or "/" not in mime:
        raise argparse.ArgumentTypeError(f"expected EXT=MIME (e.g. svg=image/svg+xml), got '{value}'")
    return suffix.strip(), mime.strip()


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sfd",
        usage="%(prog)s -url [URL] [-target [TARGET]]",
        description="Save a web page as one HTML file with its images, stylesheets and scripts inlined.",
    )
    parser.add_argument("-url", "--url", default="", help="URL to download.")
    parser.add_argument(
        "-target",
        "--target",
        default=None,
        help="Your target folder (default: your home directory).",
    )
    parser.add_argument(
        "-timeout",
        "--timeout",
        type=float,
        default=30.0,
        help="Per-request timeout in seconds",
    )
    parser.add_argument(
        "-retries",
        "--retries",
        type=int,
        default=0,
        help="Extra attempts for timeouts, connection errors, 429 and 5xx responses",
    )
    parser.add_argument(
        "-concurrency",
        "--concurrency",
        type=_positive_int,
        default=1,
        help="Resources fetched in parallel within one pass (output order is unchanged)",
    )
    parser.add_argument(
        "-image-type",
        "--image-type",
        dest="image_types",
        type=_image_type,
        action="append",
        default=[],
        metavar="EXT=MIME",
        help="Inline images with this extension as well (repeatable)",
    )
    parser.add_argument(
        "-log-dir",
        "--log-dir",
        default=None,
        help="Also write rotating log files to this directory",
    )
    parser.add_argument(
        "-verbose",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def build_config(args: argparse.Namespace) -> RunConfig:
    """
    Turn parsed arguments into the run configuration.

    Raises:
        RuntimeError: if no target was given and the home directory cannot
            be determined
    """
    if args.target:
        target = args.target
    else:
        home = Path.home()
        # Older interpreters hand back "~" unexpanded instead of raising
        if str(home).startswith("~"):
            raise RuntimeError("could not resolve the home directory")
        target = str(home)

    image_types = dict(DEFAULT_IMAGE_TYPES)
    image_types.update(dict(args.image_types))

    return RunConfig(
        url=args.url,
        target_dir=target,
        timeout=args.timeout,
        max_retries=max(0, args.retries),
        concurrency=args.concurrency,
        image_types=image_types,
        log_dir=args.log_dir,
        verbose=args.verbose,
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(sys.argv[1:] if argv is None else argv))

    if not args.url:
        parser.print_help(sys.stderr)
        return 1

    initialize_logging(args.log_dir, level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = build_config(args)
    except RuntimeError as e:
        logger.error(f"Error trying to determine your home directory: {e}")
        return 1

    controller = SingleFileController(config)
    try:
        controller.run()
    except FatalError as e:
        logger.error(str(e))
        return 1
    finally:
        controller.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
