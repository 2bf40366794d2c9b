import shutil
import sys
from pathlib import Path
from typing import List, Optional

from masverify.logger import get_console, get_error_console
from masverify.src.constants.cli_constants import UPDATER_FRAMEWORK
from masverify.src.core.errors import MasVerifyError
from masverify.src.core.extractor import find_updater_components
from masverify.src.core.locator import ArtifactLocator
from masverify.src.utils.config_loader import load_config


def remove_updater_components(app_bundle: Path) -> List[Path]:
    """Remove the auto-updater framework and helper from a packed bundle.

    Runs after packing and before signing, so the MAS build never carries
    them. Returns the removed paths.
    """
    console = get_console()
    removed = []

    framework = app_bundle / "Contents" / "Frameworks" / UPDATER_FRAMEWORK
    if framework.exists():
        console.print(f"   Removing {UPDATER_FRAMEWORK}...")
        shutil.rmtree(framework)
        removed.append(framework)
        console.print(f"   [green]✅ Removed {UPDATER_FRAMEWORK}[/]")

    # Anything left elsewhere in the bundle
    for leftover in find_updater_components(app_bundle):
        # Already gone with an enclosing framework
        if not leftover.exists():
            continue
        console.print(f"   Removing {leftover.name}...")
        if leftover.is_dir():
            shutil.rmtree(leftover)
        else:
            leftover.unlink()
        removed.append(leftover)
        console.print(f"   [green]✅ Removed {leftover.name}[/]")

    return removed


def strip_updater(app_bundle: Optional[Path] = None) -> int:
    console = get_console()

    if app_bundle is None:
        try:
            app_bundle = ArtifactLocator(load_config()).locate_app()
        except (MasVerifyError, ValueError) as e:
            get_error_console().print(f"[red]Error:[/] {e}")
            return 1

    if not app_bundle.exists():
        console.print("[yellow]⚠️  App bundle not found, skipping Squirrel removal[/]")
        return 0

    console.print("🗑️  Removing Squirrel.framework and ShipIt from MAS build...")
    remove_updater_components(app_bundle)
    console.print("[green]✅ Squirrel removal complete[/]")
    return 0


def run_strip_updater_command(args):
    """Entry point for the strip-updater command from CLI"""
    return strip_updater(args.app_bundle)


if __name__ == "__main__":
    from masverify.cli import main as cli_main

    sys.exit(cli_main(["strip-updater", *sys.argv[1:]]))
