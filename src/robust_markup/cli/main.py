"""Main CLI entry point for the robust-markup command-line tool.

Loads markup files the way the library does, then either prints normalized
markup (optionally only the nodes selected by an XPath expression) or reports
how the file was classified and decoded.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from lxml import etree

from robust_markup import __version__
from robust_markup.dom import DocumentWrapper
from robust_markup.shared.config import ConfigError, DocumentConfig
from robust_markup.shared.errors import MarkupError
from robust_markup.shared.logging import get_logger

logger = get_logger(__name__, None, "cli")


def build_content_type(
    content_type: Optional[str], charset: Optional[str]
) -> Optional[str]:
    """Combine ``--content-type`` and ``--charset`` into ``type;charset=value``."""
    if not charset:
        return content_type
    media_type = (content_type or "text/html").split(";")[0].strip()
    return f"{media_type};charset={charset}"


def load_file(
    path: Path,
    content_type: Optional[str] = None,
    config: Optional[DocumentConfig] = None
) -> DocumentWrapper:
    """Load the raw bytes of ``path`` into a new document wrapper."""
    wrapper = DocumentWrapper(config=config)
    if not wrapper.load(path.read_bytes(), content_type):
        raise MarkupError(f"Could not load markup from {path}")
    return wrapper


def describe(wrapper: DocumentWrapper, path: Path) -> Dict[str, Any]:
    """Summarize how a loaded document was classified."""
    return {
        "file": str(path),
        "content_type": wrapper.content_type,
        "charset": wrapper.charset,
        "is_html": wrapper.is_html,
        "is_xml": wrapper.is_xml,
        "is_xhtml": wrapper.is_xhtml,
        "is_document_fragment": wrapper.is_document_fragment,
    }


def format_description(description: Dict[str, Any], format_type: str) -> str:
    """Format a classification summary for output."""
    if format_type == "text":
        lines = [description["file"], "-" * 60]
        for key, value in description.items():
            if key != "file":
                lines.append(f"   {key}: {value}")
        return "\n".join(lines)
    return json.dumps(description, indent=2)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="robust-markup",
        description="Load HTML, XML and XHTML documents or fragments and print normalized markup"
    )

    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Markup command
    markup_parser = subparsers.add_parser("markup", help="Print normalized markup")
    markup_parser.add_argument(
        "path",
        type=Path,
        help="Markup file to load"
    )
    markup_parser.add_argument(
        "--content-type", "-t",
        help="Content type, optionally with a charset parameter"
    )
    markup_parser.add_argument(
        "--charset", "-c",
        help="Charset requested for the document"
    )
    markup_parser.add_argument(
        "--xpath", "-x",
        help="Only print the nodes selected by this XPath expression"
    )
    markup_parser.add_argument(
        "--inner",
        action="store_true",
        help="Print the content of the selected nodes instead of the nodes"
    )
    markup_parser.add_argument(
        "--debug", "-d",
        type=int,
        default=0,
        choices=[0, 1, 2],
        help="Debug level; 2 reports parser errors (default: 0)"
    )

    # Classify command
    classify_parser = subparsers.add_parser(
        "classify", help="Report dialect, charset and fragment detection"
    )
    classify_parser.add_argument(
        "path",
        type=Path,
        help="Markup file to classify"
    )
    classify_parser.add_argument(
        "--content-type", "-t",
        help="Content type, optionally with a charset parameter"
    )
    classify_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="json",
        help="Output format (default: json)"
    )

    # Global options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    return parser


def cmd_markup(args: argparse.Namespace) -> int:
    """Handle markup command."""
    try:
        config = DocumentConfig.default().override(debug=args.debug)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    content_type = build_content_type(args.content_type, args.charset)
    try:
        wrapper = load_file(args.path, content_type, config)
        if args.xpath:
            selected = wrapper.xpath(args.xpath)
            if not isinstance(selected, list):
                print(selected)
                return 0
            output = wrapper.markup(selected, args.inner) if selected else ""
        else:
            output = wrapper.markup()
    except OSError as e:
        print(f"Error reading {args.path}: {e}", file=sys.stderr)
        return 1
    except etree.XPathError as e:
        print(f"Invalid XPath expression: {e}", file=sys.stderr)
        return 1
    except MarkupError as e:
        logger.warning("Markup command failed", extra={"file": str(args.path)})
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


def cmd_classify(args: argparse.Namespace) -> int:
    """Handle classify command."""
    try:
        wrapper = load_file(args.path, args.content_type)
    except OSError as e:
        print(f"Error reading {args.path}: {e}", file=sys.stderr)
        return 1
    except MarkupError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(format_description(describe(wrapper, args.path), args.format))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Set up logging verbosity
    if args.verbose:
        import logging
        logging.basicConfig(level=logging.DEBUG)
    elif args.quiet:
        import logging
        logging.basicConfig(level=logging.ERROR)

    # Route to appropriate command handler
    try:
        if args.command == "markup":
            return cmd_markup(args)
        elif args.command == "classify":
            return cmd_classify(args)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1

    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
