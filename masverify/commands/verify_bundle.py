import sys
from pathlib import Path
from typing import List, Optional

from masverify.logger import get_error_console
from masverify.src.core.checker import CheckResult, rule_result
from masverify.src.core.errors import FailureKind
from masverify.src.core.report import ReportEmitter
from masverify.src.utils.config_loader import VerifierConfig, load_config


def find_app_bundle(dist_dir: Path) -> Optional[Path]:
    """Find the app bundle one level below a dist subdirectory.

    electron-builder may create architecture-specific directories.
    """
    if not dist_dir.is_dir():
        return None

    for sub_dir in sorted(p for p in dist_dir.iterdir() if p.is_dir()):
        for entry in sorted(sub_dir.iterdir()):
            if entry.is_dir() and entry.name.endswith(".app"):
                return entry
    return None


def check(description: str, condition: bool, details: str = "") -> CheckResult:
    return rule_result(
        description,
        condition,
        description,
        description,
        details=[details] if details else [],
        kind=FailureKind.NOT_FOUND,
    )


def bundle_checks(dist_dir: Path, emitter: ReportEmitter) -> List[CheckResult]:
    results = []

    app_path = find_app_bundle(dist_dir)
    results.append(
        check("App bundle exists", app_path is not None, str(app_path or "Not found"))
    )

    if app_path is not None:
        resources = app_path / "Contents" / "Resources"
        asar_path = resources / "app.asar"
        unpacked_path = resources / "app"

        results.append(check("app.asar exists", asar_path.exists(), str(asar_path)))

        # electron-builder uses app.asar or unpacked files depending on config
        results.append(
            check(
                "App package exists (asar or unpacked)",
                asar_path.exists() or unpacked_path.exists(),
            )
        )

        if unpacked_path.exists():
            index_html = unpacked_path / "web" / "index.html"
            results.append(
                check(
                    "index.html exists in unpacked app",
                    index_html.exists(),
                    str(index_html),
                )
            )
        elif asar_path.exists():
            emitter.info(
                "App is packaged as asar (normal). To inspect contents, "
                "install asar: npm install -g asar"
            )

    dmg_files = sorted(dist_dir.glob("*.dmg")) if dist_dir.is_dir() else []
    results.append(
        check(
            "DMG file exists",
            bool(dmg_files),
            f"Found: {dmg_files[0].name}" if dmg_files else "No DMG found in dist/",
        )
    )
    return results


def verify_bundle(
    config: VerifierConfig, emitter: Optional[ReportEmitter] = None
) -> int:
    """Check the direct-distribution build output and return the exit status."""
    emitter = emitter or ReportEmitter()
    emitter.header("Verifying Electron bundle...")

    results = bundle_checks(config.dist_dir, emitter)
    emitter.results(results, numbered=False)
    return emitter.counts(results)


def main(parsed_args=None) -> int:
    try:
        config = load_config()
    except ValueError as e:
        get_error_console().print(f"[red]Error:[/] {e}")
        return 1
    return verify_bundle(config)


def run_verify_bundle_command(args):
    """Entry point for the verify-bundle command from CLI"""
    return main(parsed_args=args)


if __name__ == "__main__":
    from masverify.cli import main as cli_main

    sys.exit(cli_main(["verify-bundle"]))
