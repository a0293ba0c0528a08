"""
svm CLI argument parser.

This module implements the command-line interface for svmkit using argparse:

    svm <toolchain> list [-i] [-a] | install VERSION | remove VERSION | use VERSION | current
    svm dotnet <component> <action> ...
    svm config set-install-dir DIR | get-install-dir
"""

import argparse
import importlib
import logging
import sys
from typing import List, Optional

from svmkit import __version__
from svmkit.core.exceptions import SvmError
from svmkit.providers.dotnet import COMPONENTS as DOTNET_COMPONENTS

logger = logging.getLogger(__name__)

TOOLCHAINS = {
    "node": "Node.js",
    "go": "Go",
    "java": "Java (Eclipse Temurin)",
    "python": "Python",
}


class CLI:
    """svm command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="svm",
            description="svm - SDK version manager for Node.js, Go, Java, Python and .NET",
            epilog='Use "svm TOOLCHAIN --help" for toolchain-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument("--version", action="version", version=f"svm {__version__}")
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        for name, title in TOOLCHAINS.items():
            self._add_toolchain_command(subparsers, name, title)
        self._add_dotnet_command(subparsers)
        self._add_config_command(subparsers)

        return parser

    def _add_toolchain_command(self, subparsers, name: str, title: str):
        """Add a '<toolchain>' subcommand."""
        parser = subparsers.add_parser(
            name,
            help=f"Manage {title} versions",
            description=f"List, install, remove and switch {title} versions",
        )
        self._add_actions(parser, title)

    def _add_dotnet_command(self, subparsers):
        """Add 'dotnet' subcommand with a component level."""
        parser = subparsers.add_parser(
            "dotnet",
            help="Manage .NET versions",
            description="List, install, remove and switch .NET component versions",
        )
        components = parser.add_subparsers(
            dest="component", help=".NET component", metavar="COMPONENT"
        )
        for component in DOTNET_COMPONENTS:
            component_parser = components.add_parser(
                component, help=f"Manage .NET {component} versions"
            )
            self._add_actions(component_parser, f".NET {component}")

    def _add_actions(self, parser: argparse.ArgumentParser, title: str):
        """Add list/install/remove/use/current actions to a toolchain parser."""
        actions = parser.add_subparsers(dest="action", help="Actions", metavar="ACTION")

        list_parser = actions.add_parser(
            "list",
            help=f"List available {title} versions",
            description=(
                f"List the newest {title} release of each line, marking "
                "installed (*) and active (>) versions"
            ),
        )
        list_parser.add_argument(
            "-i", "--installed", action="store_true", help="List installed versions only"
        )
        list_parser.add_argument(
            "-a", "--all", action="store_true", help="List every published version"
        )

        install_parser = actions.add_parser(
            "install", help=f"Install a {title} version (does not activate it)"
        )
        install_parser.add_argument(
            "version", metavar="VERSION", help='Version to install (e.g. "20", "1.21.5")'
        )

        remove_parser = actions.add_parser(
            "remove", help=f"Remove an installed {title} version"
        )
        remove_parser.add_argument("version", metavar="VERSION", help="Version to remove")

        use_parser = actions.add_parser(
            "use", help=f"Switch to a {title} version, installing it if needed"
        )
        use_parser.add_argument("version", metavar="VERSION", help="Version to activate")

        actions.add_parser("current", help=f"Show the active {title} version")

    def _add_config_command(self, subparsers):
        """Add 'config' subcommand."""
        parser = subparsers.add_parser(
            "config",
            help="Manage svm settings",
            description="Show or change where toolchains are installed",
        )
        config_subparsers = parser.add_subparsers(
            dest="config_command", help="Config commands", metavar="SUBCOMMAND"
        )

        set_parser = config_subparsers.add_parser(
            "set-install-dir", help="Set the toolchain install directory"
        )
        set_parser.add_argument("directory", metavar="DIR", help="Install directory")

        config_subparsers.add_parser(
            "get-install-dir", help="Show the toolchain install directory"
        )

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, 1 for errors, 130 when interrupted)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except SvmError as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        if args.command == "config":
            module_name = "svmkit.cli.commands.config"
        else:
            module_name = "svmkit.cli.commands.toolchain"

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
