import sys
from typing import Optional

from masverify.logger import get_console, get_error_console
from masverify.src.apple.signing_tools import SigningTools
from masverify.src.core.errors import MasVerifyError
from masverify.src.core.locator import ArtifactLocator
from masverify.src.core.report import ReportEmitter
from masverify.src.utils.config_loader import VerifierConfig, load_config


def print_path(path) -> None:
    # Plain output, other build scripts capture it
    get_console().print(str(path), highlight=False, markup=False, soft_wrap=True)


def detect_profile(
    config: VerifierConfig,
    tools: Optional[SigningTools] = None,
    emitter: Optional[ReportEmitter] = None,
) -> int:
    """Print the absolute path of the validated source provisioning profile."""
    emitter = emitter or ReportEmitter()
    try:
        profile_path = ArtifactLocator(config, tools).locate_profile()
    except MasVerifyError as e:
        return emitter.fatal(e)
    print_path(profile_path)
    return 0


def locate_app(
    config: VerifierConfig,
    tools: Optional[SigningTools] = None,
    emitter: Optional[ReportEmitter] = None,
) -> int:
    """Print the absolute path of the MAS .app bundle."""
    emitter = emitter or ReportEmitter()
    try:
        app_path = ArtifactLocator(config, tools).locate_app()
    except MasVerifyError as e:
        return emitter.fatal(e)
    print_path(app_path)
    return 0


def _load() -> Optional[VerifierConfig]:
    try:
        return load_config()
    except ValueError as e:
        get_error_console().print(f"[red]Error:[/] {e}")
        return None


def run_detect_profile_command(args):
    """Entry point for the detect-profile command from CLI"""
    config = _load()
    return detect_profile(config) if config else 1


def run_locate_app_command(args):
    """Entry point for the locate-app command from CLI"""
    config = _load()
    return locate_app(config) if config else 1


if __name__ == "__main__":
    from masverify.cli import main as cli_main

    sys.exit(cli_main(["locate-app"]))
