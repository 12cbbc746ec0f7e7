#!/usr/bin/env python3
"""
Tools CLI for the Workspace Edit Assistant

Calls MCP tools directly without the protocol overhead, or runs the
edit-proposal pipeline on a saved model reply without calling any model.

Usage:
    python tools_cli.py --list
    python tools_cli.py --tool propose_edit --message "Fix the typo" --document_id "doc_id_here"
    python tools_cli.py --process-reply reply.txt      # offline pipeline run ('-' reads stdin)
    python tools_cli.py --interactive                  # Interactive REPL mode
"""
import argparse
import asyncio
import inspect
import json
import logging
import os
import sys
from typing import Any, Dict, List

from dotenv import load_dotenv

# Load environment variables
dotenv_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), '.env')
load_dotenv(dotenv_path=dotenv_path)

# Suppress googleapiclient discovery cache warning
logging.getLogger('googleapiclient.discovery_cache').setLevel(logging.ERROR)

# Configure logging - use WARNING to reduce noise
logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'WARNING'),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def init_server():
    """Initialize the server and import all tools."""
    from core.server import server, set_transport_mode

    set_transport_mode('stdio')

    # Import all tool modules to register them (side-effect imports)
    import core.assistant_tools  # noqa: F401
    import gdocs.docs_tools  # noqa: F401
    import gsheets.sheets_tools  # noqa: F401

    return server


def parse_tool_args(unknown: List[str]) -> Dict[str, Any]:
    """Turn ['--name', 'value', '--flag'] into {'name': 'value', 'flag': True}."""
    raw_kwargs: Dict[str, Any] = {}
    i = 0
    while i < len(unknown):
        arg = unknown[i]
        if arg.startswith('--'):
            param_name = arg[2:]
            if i + 1 < len(unknown) and not unknown[i + 1].startswith('--'):
                raw_kwargs[param_name] = unknown[i + 1]
                i += 2
            else:
                raw_kwargs[param_name] = True
                i += 1
        else:
            i += 1
    return raw_kwargs


def unescape_shell_chars(value: str) -> str:
    """Unescape shell-escaped characters, e.g. 'Sheet1\\!A1' -> 'Sheet1!A1'."""
    if not isinstance(value, str):
        return value
    value = value.replace(r"\\", "\x00")  # Temporarily protect \\
    value = value.replace(r"\!", "!")
    value = value.replace(r"\$", "$")
    value = value.replace(r"\`", "`")
    value = value.replace(r"\#", "#")
    value = value.replace(r'\"', '"')
    value = value.replace(r"\'", "'")
    value = value.replace("\x00", "\\")  # Restore single backslash from \\
    return value


def convert_value(value: Any) -> Any:
    """Convert a raw CLI string: booleans and JSON arrays/objects are parsed, numbers stay strings."""
    if value is True:
        return value
    if value.lower() in ('true', 'false'):
        return value.lower() == 'true'
    if value.startswith('[') or value.startswith('{'):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return unescape_shell_chars(value)


async def process_reply(raw_text: str) -> Dict[str, Any]:
    """Run the proposal pipeline (without the referee) on a saved model reply."""
    from proposals.pipeline import ProposalPipeline

    result = await ProposalPipeline().process(raw_text)
    return result.to_dict()


class ToolTester:
    """Helper class to call MCP tools directly."""

    def __init__(self, server_instance):
        self.server = server_instance
        self.tools = {}

    async def init_tools(self):
        """Collect all registered tools from the server."""
        self.tools = {tool.name: tool for tool in (await self.server.get_tools()).values()}

    def list_tools(self) -> None:
        """Print all available tools."""
        print("\nAvailable Tools:")
        print("=" * 60)
        for name, tool in sorted(self.tools.items()):
            desc = tool.description.split('\n')[0] if tool.description else "No description"
            print(f"  - {name}")
            print(f"    {desc}")
            print()

    def get_tool_info(self, tool_name: str) -> None:
        """Print detailed information about a specific tool."""
        if tool_name not in self.tools:
            print(f"Tool '{tool_name}' not found.")
            return

        tool = self.tools[tool_name]
        print(f"\nTool: {tool_name}")
        print("=" * 60)
        print(f"Description: {tool.description}")
        print("\nParameters:")
        if hasattr(tool, 'fn'):
            sig = inspect.signature(tool.fn)
            for param_name, param in sig.parameters.items():
                annotation = param.annotation if param.annotation != inspect.Parameter.empty else "Any"
                default = f" = {param.default}" if param.default != inspect.Parameter.empty else ""
                print(f"  - {param_name}: {annotation}{default}")
        print()

    async def call_tool(self, tool_name: str, **kwargs) -> Any:
        """Call a tool with the given parameters."""
        if tool_name not in self.tools:
            raise ValueError(f"Tool '{tool_name}' not found. Use list_tools() to see available tools.")

        tool = self.tools[tool_name]
        kwargs = {k: v for k, v in kwargs.items() if v is not None}

        print(f"\nCalling tool: {tool_name}")
        print(f"   Parameters: {kwargs}")
        print("=" * 60)

        result = await tool.fn(**kwargs)
        print(result)
        return result


def interactive_mode(tester: ToolTester):
    """Run an interactive REPL for calling tools."""
    print("\nInteractive Mode")
    print("=" * 60)
    print("Commands:")
    print("  list              - List all available tools")
    print("  info <tool_name>  - Get detailed info about a tool")
    print("  call <tool_name>  - Call a tool (will prompt for parameters)")
    print("  quit              - Exit interactive mode")
    print("=" * 60)

    while True:
        try:
            cmd = input("\n> ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        if not cmd:
            continue
        if cmd == "quit":
            print("Goodbye!")
            break
        if cmd == "list":
            tester.list_tools()
            continue
        if cmd.startswith("info "):
            tester.get_tool_info(cmd[5:].strip())
            continue
        if cmd.startswith("call "):
            tool_name = cmd[5:].strip()
            if tool_name not in tester.tools:
                print(f"Tool '{tool_name}' not found.")
                continue

            tester.get_tool_info(tool_name)
            print("\nEnter parameters (press Enter to skip optional parameters):")
            kwargs = {}
            sig = inspect.signature(tester.tools[tool_name].fn)
            for param_name, param in sig.parameters.items():
                required = param.default == inspect.Parameter.empty
                value = input(f"  {param_name} ({'required' if required else 'optional'}): ")
                if value or required:
                    kwargs[param_name] = convert_value(value)

            try:
                asyncio.run(tester.call_tool(tool_name, **kwargs))
            except Exception as e:
                logger.exception("Tool execution failed")
                print(f"Error: {e}")
            continue

        print("Unknown command. Try 'list', 'info <tool>', 'call <tool>', or 'quit'")


def main():
    parser = argparse.ArgumentParser(
        description="CLI for Workspace Edit Assistant tools",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument('--interactive', '-i', action='store_true',
                        help='Run in interactive REPL mode')
    parser.add_argument('--list', '-l', action='store_true',
                        help='List all available tools')
    parser.add_argument('--tool', '-t', type=str,
                        help='Tool name to call')
    parser.add_argument('--info', type=str,
                        help='Show detailed info about a tool')
    parser.add_argument('--process-reply', type=str, metavar='FILE',
                        help="Run the proposal pipeline on a saved model reply ('-' for stdin)")
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')

    # Allow arbitrary additional arguments for tool parameters
    args, unknown = parser.parse_known_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    if args.process_reply:
        if args.process_reply == '-':
            raw_text = sys.stdin.read()
        else:
            with open(args.process_reply, encoding='utf-8') as f:
                raw_text = f.read()
        print(json.dumps(asyncio.run(process_reply(raw_text)), indent=2))
        return

    try:
        server = init_server()
        tester = ToolTester(server)
        asyncio.run(tester.init_tools())
    except Exception as e:
        logger.error(f"Failed to initialize server: {e}")
        sys.exit(1)

    if args.list:
        tester.list_tools()
        return

    if args.info:
        tester.get_tool_info(args.info)
        return

    if args.interactive:
        interactive_mode(tester)
        return

    if args.tool:
        if args.tool not in tester.tools:
            print(f"Tool '{args.tool}' not found. Use --list to see available tools.")
            sys.exit(1)
        tool_kwargs = {k: convert_value(v) for k, v in parse_tool_args(unknown).items()}
        asyncio.run(tester.call_tool(args.tool, **tool_kwargs))
        return

    parser.print_help()


if __name__ == "__main__":
    main()
