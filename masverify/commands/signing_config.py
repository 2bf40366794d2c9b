import json
import sys

from masverify.logger import get_console, get_error_console
from masverify.src.utils.config_loader import VerifierConfig, load_config

NOT_SET = "(not set)"


def print_signing_config(config: VerifierConfig) -> int:
    """Print the electron-builder signing configuration for debugging"""
    console = get_console()
    error_console = get_error_console()

    config_path = config.package_json
    if not config_path.exists():
        error_console.print(f"[red]Error: Could not find config at:[/] {config_path}")
        return 1

    try:
        with open(config_path, encoding="utf-8") as f:
            package = json.load(f)
    except json.JSONDecodeError as e:
        error_console.print(f"[red]Error: Could not parse {config_path}:[/] {e}")
        return 1

    build = package.get("build") or {}
    mac = build.get("mac") or {}
    mas = build.get("mas") or {}
    expected_identity = config.expected.signing_identity

    console.print("[bold]=== Electron Builder Signing Configuration ===[/]")
    console.print(f"appId: {build.get('appId')}")
    console.print(f"productName: {build.get('productName')}")
    console.print()
    console.print(f"mac.identity: {mac.get('identity') or NOT_SET}")
    console.print(f"mac.forceCodeSigning: {mac.get('forceCodeSigning') or NOT_SET}")
    console.print()
    console.print(f"mas.identity: {mas.get('identity') or NOT_SET}")
    console.print(
        "mas.electronTeamID: (set via ELECTRON_TEAM_ID env var in build script)"
    )
    console.print()

    if mac.get("identity") != expected_identity:
        console.print(
            "[yellow]⚠️  mac.identity does not match expected value "
            "(may be OK if using env vars)[/]"
        )

    if mas.get("identity") != expected_identity:
        error_console.print("[red]❌ mas.identity does not match expected value[/]")
        error_console.print(f"   Expected: {expected_identity}")
        return 1

    console.print("[green]✅ Configuration looks correct![/]")
    console.print("   Team ID is set via ELECTRON_TEAM_ID env var in build script")
    return 0


def main(parsed_args=None) -> int:
    try:
        config = load_config()
    except ValueError as e:
        get_error_console().print(f"[red]Error:[/] {e}")
        return 1
    return print_signing_config(config)


def run_signing_config_command(args):
    """Entry point for the signing-config command from CLI"""
    return main(parsed_args=args)


if __name__ == "__main__":
    from masverify.cli import main as cli_main

    sys.exit(cli_main(["signing-config"]))
