"""Command-line interface for httphop."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

from . import __version__
from .core.client import HopClient
from .errors import HttpHopError
from .http.protocols import Transport
from .logging_config import level_for, setup_logging
from .models.config import NetworkConfig, RequestOptions
from .models.events import EventType, HopEvent
from .sinks import FileSink, Sink, StreamSink

EXIT_OK = 0
EXIT_HTTP_ERROR = 1
EXIT_FAILURE = 2


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="httphop",
        description="Send an HTTP request, optionally following redirects, and stream the response body",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Fetch a resource, following redirects
  httphop -L http://example.com/some/resource

  # POST a body through a 307 redirect and save the result
  httphop -L -X POST -d "prettyplease" http://example.com/form -o result.html

  # Send a request body read from a file
  httphop -X PUT -d @payload.json -H "Content-Type: application/json" http://example.com/api
        """,
    )

    parser.add_argument("url", help="Absolute http:// or https:// URL")

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Request
    request_group = parser.add_argument_group("request")
    request_group.add_argument(
        "--request",
        "-X",
        dest="method",
        default="GET",
        metavar="METHOD",
        help="HTTP method (default: GET)",
    )
    request_group.add_argument(
        "--data",
        "-d",
        metavar="DATA",
        help="Request body; prefix with @ to read it from a file",
    )
    request_group.add_argument(
        "--header",
        "-H",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Extra request header (repeatable)",
    )

    # Redirects
    redirect_group = parser.add_argument_group("redirects")
    redirect_group.add_argument(
        "--location",
        "-L",
        action="store_true",
        dest="follow_redirects",
        help="Follow 300/301/302/303/307 redirects",
    )
    redirect_group.add_argument(
        "--max-redirects",
        type=int,
        default=None,
        metavar="N",
        help="Maximum redirects to follow (default: 10)",
    )
    redirect_group.add_argument(
        "--preserve-method",
        action="store_true",
        help="Keep method and body on every redirect instead of switching to GET",
    )

    # Network settings
    network_group = parser.add_argument_group("network settings")
    network_group.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Read timeout per hop",
    )
    network_group.add_argument(
        "--proxy",
        type=str,
        metavar="URL",
        help="Proxy URL",
    )
    network_group.add_argument(
        "--user-agent",
        "-A",
        type=str,
        help="Custom User-Agent string",
    )

    # Output control
    output_group = parser.add_argument_group("output control")
    output_group.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        metavar="FILE",
        help="Write the body to FILE instead of stdout",
    )
    output_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show every hop and debug logging",
    )
    output_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress status output",
    )

    return parser


def parse_headers(values: list[str]) -> dict[str, str]:
    """
    Parse repeated 'Name: value' arguments.

    Raises:
        ValueError: If an entry has no colon or an empty name
    """
    headers: dict[str, str] = {}
    for value in values:
        name, sep, header_value = value.partition(":")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Invalid header {value!r}, expected 'Name: value'")
        headers[name] = header_value.strip()
    return headers


def read_data(data: Optional[str]) -> Optional[bytes]:
    """Resolve the --data argument, reading '@file' references."""
    if data is None:
        return None
    if data.startswith("@"):
        return Path(data[1:]).read_bytes()
    return data.encode("utf-8")


def run_request(args: argparse.Namespace, transport: Optional[Transport] = None) -> int:
    """Run one request with given arguments."""
    console = Console(stderr=True)

    setup_logging(level_for(args.verbose, args.quiet))

    # Build config
    options_kwargs: dict = {
        "method": args.method,
        "follow_redirects": args.follow_redirects,
        "preserve_method": args.preserve_method,
    }
    if args.max_redirects is not None:
        options_kwargs["max_redirects"] = args.max_redirects

    network_kwargs: dict = {}
    if args.timeout is not None:
        network_kwargs["timeout"] = args.timeout
    if args.proxy:
        network_kwargs["proxy"] = args.proxy
    if args.user_agent:
        network_kwargs["user_agent"] = args.user_agent

    try:
        options_kwargs["headers"] = parse_headers(args.header)
        options_kwargs["body"] = read_data(args.data)
        options = RequestOptions(**options_kwargs)
        network = NetworkConfig(**network_kwargs)
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return EXIT_FAILURE

    sink: Sink
    if args.output:
        sink = FileSink(args.output)
    else:
        sink = StreamSink(sys.stdout.buffer)

    def on_event(event: HopEvent) -> None:
        if event.type == EventType.REDIRECT_FOLLOWED:
            console.print(f"[yellow]{event.status_code}[/yellow] {event.url} -> {event.location}")
        elif args.verbose and event.type == EventType.REQUEST_STARTED:
            console.print(f"[cyan]{event.method}[/cyan] {event.url}")

    async def run() -> int:
        async with HopClient(network, transport=transport) as client:
            handle = client.request(
                args.url,
                sink,
                options,
                on_event=None if args.quiet else on_event,
            )
            handle.end()
            result = await handle

        if not args.quiet:
            color = "green" if result.status_code < 400 else "red"
            console.print(
                f"[{color}]{result.status_code}[/{color}] {result.url} "
                f"({result.bytes_streamed} bytes, {len(result.chain)} redirects)"
            )
            if args.output:
                console.print(f"Saved to {args.output}")

        return EXIT_OK if result.status_code < 400 else EXIT_HTTP_ERROR

    try:
        return asyncio.run(run())
    except HttpHopError as e:
        console.print(f"[red]Error:[/red] {e}")
        return EXIT_FAILURE
    except ValueError as e:
        console.print(f"[red]Invalid URL:[/red] {e}")
        return EXIT_FAILURE


def main(argv: Optional[list[str]] = None, transport: Optional[Transport] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    return run_request(args, transport=transport)


if __name__ == "__main__":
    sys.exit(main())
