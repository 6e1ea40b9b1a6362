"""uxlaunch command-line interface"""

import sys
from typing import NoReturn, Optional

from uxlaunch import __version__
from uxlaunch.server.server_cli import arguments_parse, parser_create


def usage_print() -> None:
    """
    Print version banner and option summary to stdout

    Args:
        None.
    """
    print(f"uxlaunch {__version__}: launcher for an AirPlay-style mirroring service")
    print(parser_create().format_help(), end="")


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """
    Main entry point for the uxlaunch command

    Args:
        argv: Optional argument list (defaults to process arguments).
    """
    args = arguments_parse(argv)

    if args.help:
        usage_print()
        sys.exit(0)

    from uxlaunch.server.main import server_run

    try:
        exit_code: int = server_run(args)
    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
