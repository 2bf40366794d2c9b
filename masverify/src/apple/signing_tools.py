import plistlib
from pathlib import Path
from typing import Optional
from xml.parsers.expat import ExpatError

from asn1crypto.cms import ContentInfo

from masverify.logger import get_console
from masverify.src.apple.plist_text import render_plist_text
from masverify.src.apple.tool_runner import ToolRunner
from masverify.src.core.errors import MetadataParseError


def decode_profile_cms(profile_path: Path) -> bytes:
    """Read a provisioning profile without using macOS security command"""
    with open(profile_path, "rb") as f:
        raw = f.read()
    try:
        content_info = ContentInfo.load(raw)
        signed_data = content_info["content"]
        # The plist is the encapsulated content of the signed data
        return signed_data["encap_content_info"]["content"].native
    except (ValueError, KeyError, TypeError) as e:
        raise MetadataParseError(f"Could not decode {profile_path.name}: {e}")


class SigningTools:
    """Thin adapter over the macOS signing utilities.

    Every method returns the text the tool prints; parsing is left to
    ``masverify.src.core.extractor``. Failures surface as
    ``ExternalToolError`` from the runner. When ``security``, ``plutil`` or
    ``lipo`` are not installed, in-process readers produce the same text.
    """

    def __init__(self, runner: Optional[ToolRunner] = None):
        self.runner = runner or ToolRunner()
        self.console = get_console()

    def decode_profile(self, profile_path: Path) -> bytes:
        if self.runner.available("security"):
            return self.runner.run(
                "security", "cms", "-D", "-i", str(profile_path)
            ).stdout

        self.console.log("[yellow]security not found, decoding profile in-process")
        return decode_profile_cms(profile_path)

    def plist_text(self, plist_data: bytes) -> str:
        if not plist_data or not plist_data.strip():
            return ""

        if self.runner.available("plutil"):
            return self.runner.run("plutil", "-p", "-", input=plist_data).text

        try:
            data = plistlib.loads(plist_data)
        except (ValueError, ExpatError) as e:
            raise MetadataParseError(f"Could not parse property list: {e}")
        return render_plist_text(data)

    def profile_text(self, profile_path: Path) -> str:
        return self.plist_text(self.decode_profile(profile_path))

    def entitlements_text(self, app_path: Path) -> str:
        result = self.runner.run(
            "codesign", "-d", "--entitlements", ":-", str(app_path)
        )
        return self.plist_text(result.stdout)

    def signature_details(self, app_path: Path) -> str:
        # codesign writes the details to stderr
        return self.runner.run(
            "codesign", "-dv", "--verbose=4", str(app_path)
        ).combined_text

    def package_signature(self, pkg_path: Path) -> str:
        return self.runner.run("pkgutil", "--check-signature", str(pkg_path)).text

    def expand_package(self, pkg_path: Path, destination: Path) -> None:
        self.runner.run("pkgutil", "--expand-full", str(pkg_path), str(destination))

    def architectures_text(self, binary_path: Path) -> str:
        if self.runner.available("lipo"):
            return self.runner.run("lipo", "-info", str(binary_path)).text

        from masverify.src.apple.macho import describe_architectures

        self.console.log("[yellow]lipo not found, reading Mach-O headers in-process")
        return describe_architectures(binary_path)
