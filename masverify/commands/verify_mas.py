import sys
from datetime import datetime
from typing import Optional

from masverify.logger import get_error_console
from masverify.src.apple.signing_tools import SigningTools
from masverify.src.core.checker import RuleChecker
from masverify.src.core.errors import MasVerifyError
from masverify.src.core.extractor import MetadataExtractor
from masverify.src.core.locator import ArtifactLocator
from masverify.src.core.report import ReportEmitter
from masverify.src.utils.config_loader import VerifierConfig, load_config

SUCCESS_NOTES = [
    "Embedded provisioning profile exists and matches expected values",
    "Entitlements include application-identifier (added by electron-builder)",
    "Entitlements match embedded profile",
    "Universal binary (arm64 + x86_64)",
    "Signed with MAS certificates",
]

REMEDIATION_HINTS = [
    "Missing or incorrect embedded.provisionprofile",
    "Missing application-identifier in entitlements (electron-builder should add this)",
    "Entitlements do not match embedded profile",
    "Not a universal binary (will cause error 91167)",
]


def verify_build(
    config: VerifierConfig,
    tools: Optional[SigningTools] = None,
    now: Optional[datetime] = None,
    emitter: Optional[ReportEmitter] = None,
) -> int:
    """Run the Mac App Store checklist once and return the exit status."""
    emitter = emitter or ReportEmitter()
    tools = tools or SigningTools()
    locator = ArtifactLocator(config, tools)

    try:
        artifacts = locator.locate_mas_artifacts()
    except MasVerifyError as e:
        return emitter.fatal(e)

    # The expansion directory is removed on leaving the block, before reporting
    with artifacts:
        lines = [f"App: {artifacts.app_path.name}"]
        if artifacts.pkg_path is not None:
            lines.append(f"PKG: {artifacts.pkg_path.name}")
        emitter.header("🔍 Verifying Electron MAS build...", lines)

        extractor = MetadataExtractor(tools, config.expected.product_name)
        metadata = extractor.collect(artifacts.app_path, artifacts.pkg_path)

    results = RuleChecker(config.expected, now=now).evaluate(metadata)
    emitter.results(results)
    return emitter.finish(
        results,
        "All verification checks PASSED",
        "Verification FAILED",
        success_notes=[
            "The MAS build is ready for TestFlight upload.",
            *SUCCESS_NOTES,
        ],
        remediation_hints=REMEDIATION_HINTS,
    )


def main(parsed_args=None) -> int:
    try:
        config = load_config()
    except ValueError as e:
        get_error_console().print(f"[red]Error:[/] {e}")
        return 1
    return verify_build(config)


def run_verify_mas_command(args):
    """Entry point for the verify-mas command from CLI"""
    return main(parsed_args=args)


# For direct script execution - route through the CLI
if __name__ == "__main__":
    from masverify.cli import main as cli_main

    sys.exit(cli_main(["verify-mas"]))
