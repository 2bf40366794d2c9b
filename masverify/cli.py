import argparse
import sys
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme
from rich_argparse import RichHelpFormatter
from masverify.arguments import add_strip_updater_arguments
from masverify.src.constants.cli_constants import (
    __version__,
    get_banner_text,
    APP_DESCRIPTION,
)


class MasVerifyHelpFormatter(RichHelpFormatter):
    """Custom formatter for the masverify CLI with rich styling."""

    def __init__(self, prog):
        super().__init__(prog, max_help_position=30, width=100)
        self.console = Console(
            theme=Theme(
                {
                    "command": "bold cyan",
                    "argument": "green",
                    "option": "yellow",
                    "version": "blue",
                    "title": "bold magenta",
                }
            )
        )

    def start_section(self, heading):
        heading_text = Text(heading, style="title")
        super().start_section(str(heading_text))


def display_banner():
    """Display a banner above the help text."""
    console = Console()
    banner = get_banner_text()

    version_info = Text(f"v{__version__}", style="version")
    tagline = Text(APP_DESCRIPTION, style="italic")

    panel = Panel.fit(
        Text.assemble(banner, "\n", tagline, "\n", version_info),
        border_style="green",
        padding=(1, 2),
    )
    console.print(panel)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="masverify",
        description=f"masverify: {APP_DESCRIPTION}",
        formatter_class=MasVerifyHelpFormatter,
        add_help=True,
    )
    parser.add_argument(
        "--version", action="version", version=f"masverify {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser(
        "verify-mas",
        help="Verify a Mac App Store build",
        formatter_class=MasVerifyHelpFormatter,
        description="Check provisioning profile, entitlements, signatures and "
        "architectures of the MAS build. Exits 1 if any check fails.",
    )
    subparsers.add_parser(
        "detect-profile",
        help="Find and validate the provisioning profile",
        formatter_class=MasVerifyHelpFormatter,
        description="Print the absolute path of the source provisioning profile "
        "after checking its identifiers.",
    )
    subparsers.add_parser(
        "locate-app",
        help="Find the MAS .app bundle",
        formatter_class=MasVerifyHelpFormatter,
        description="Print the absolute path of the latest MAS .app bundle.",
    )
    subparsers.add_parser(
        "verify-bundle",
        help="Verify the direct-distribution bundle",
        formatter_class=MasVerifyHelpFormatter,
        description="Check the packaged app and DMG in the electron dist directory.",
    )
    subparsers.add_parser(
        "signing-config",
        help="Print the electron-builder signing configuration",
        formatter_class=MasVerifyHelpFormatter,
        description="Print and check the signing identities in package.json.",
    )
    strip_parser = subparsers.add_parser(
        "strip-updater",
        help="Remove auto-updater components from a bundle",
        formatter_class=MasVerifyHelpFormatter,
        description="Remove Squirrel.framework and ShipIt from a packed app bundle.",
    )
    add_strip_updater_arguments(strip_parser)

    return parser


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv

    # Display the banner before the help text
    if not argv or "-h" in argv or "--help" in argv:
        display_banner()

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "verify-mas":
        from masverify.commands.verify_mas import run_verify_mas_command

        return run_verify_mas_command(args)
    elif args.command == "detect-profile":
        from masverify.commands.locate import run_detect_profile_command

        return run_detect_profile_command(args)
    elif args.command == "locate-app":
        from masverify.commands.locate import run_locate_app_command

        return run_locate_app_command(args)
    elif args.command == "verify-bundle":
        from masverify.commands.verify_bundle import run_verify_bundle_command

        return run_verify_bundle_command(args)
    elif args.command == "signing-config":
        from masverify.commands.signing_config import run_signing_config_command

        return run_signing_config_command(args)
    elif args.command == "strip-updater":
        from masverify.commands.strip_updater import run_strip_updater_command

        return run_strip_updater_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
