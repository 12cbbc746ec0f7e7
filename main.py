import argparse
import logging

from core.server import server, set_transport_mode

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Workspace Edit Assistant MCP server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http"],
        default="stdio",
        help="Transport mode: stdio (default) or streamable-http",
    )
    parser.add_argument("--port", type=int, default=8000, help="Port for streamable-http")
    args = parser.parse_args()

    # Import tool modules to register them (side-effect imports)
    import core.assistant_tools  # noqa: F401
    import gdocs.docs_tools  # noqa: F401
    import gsheets.sheets_tools  # noqa: F401

    set_transport_mode(args.transport)
    if args.transport == "streamable-http":
        server.run(transport="streamable-http", host="0.0.0.0", port=args.port)
    else:
        server.run()


if __name__ == "__main__":
    main()
