import os
import plistlib
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union
from xml.parsers.expat import ExpatError

from masverify.logger import get_console
from masverify.src.apple.signing_tools import SigningTools
from masverify.src.constants.cli_constants import (
    EMBEDDED_PROFILE_NAME,
    UPDATER_FRAMEWORK,
    UPDATER_HELPER,
    UPDATER_SEARCH_DEPTH,
)
from masverify.src.core.errors import MasVerifyError, MetadataParseError


class _Missing:
    """Marks a field that could not be extracted"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "MISSING"

    __str__ = __repr__


MISSING = _Missing()

# Patterns over `plutil -p` output
PROFILE_APP_ID_RE = re.compile(
    r'Entitlements.*?application-identifier.*?(?:=>|=)\s*"([^"]+)"', re.DOTALL
)
PROFILE_TEAM_ID_RES = (
    re.compile(r'TeamIdentifier.*?=>\s*\[\s*0\s*=>\s*"([^"]+)"'),
    re.compile(r'team-identifier.*?(?:=>|=)\s*"([^"]+)"'),
)
EXPIRATION_RE = re.compile(r'ExpirationDate.*?=>\s*([0-9]{4}-[0-9]{2}-[0-9]{2}[^"\n]*)')
APP_ID_RE = re.compile(r'application-identifier.*?(?:=>|=)\s*"([^"]+)"')
TEAM_ID_RE = re.compile(r'team-identifier.*?(?:=>|=)\s*"([^"]+)"')
SANDBOX_RE = re.compile(r'app-sandbox"?\s*=>\s*(?:true|1)\b')

# codesign -dv and lipo -info output
AUTHORITY_RE = re.compile(r"^Authority=(.+)$", re.MULTILINE)
FAT_ARCHS_RE = re.compile(r"are:\s*(.+)$", re.MULTILINE)
THIN_ARCH_RE = re.compile(r"is architecture:\s*(\S+)")

EXPIRATION_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d",
)

Text = Union[str, _Missing]


def _first_match(patterns, text: str) -> Text:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return MISSING


def parse_expiration_date(raw: str) -> datetime:
    """Parse a profile ExpirationDate into an aware UTC datetime."""
    value = raw.strip()
    for fmt in EXPIRATION_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise MetadataParseError(f"Unrecognised ExpirationDate: {value}")


@dataclass
class ProfileMetadata:
    application_identifier: Text
    team_identifier: Text
    expiration_date: Text
    raw_text: str = ""

    @property
    def expires_at(self) -> Optional[datetime]:
        if not self.expiration_date:
            return None
        return parse_expiration_date(self.expiration_date)


@dataclass
class EntitlementsMetadata:
    application_identifier: Text
    team_identifier: Text
    sandbox_enabled: bool
    raw_text: str = ""


@dataclass
class SignatureMetadata:
    authorities: List[str]
    raw_text: str = ""

    def has_authority(self, authority: str) -> bool:
        return any(authority in entry for entry in self.authorities)


@dataclass
class ArchitectureMetadata:
    architectures: List[str]
    raw_text: str = ""


def parse_profile_text(text: str) -> ProfileMetadata:
    return ProfileMetadata(
        application_identifier=_first_match([PROFILE_APP_ID_RE], text),
        team_identifier=_first_match(PROFILE_TEAM_ID_RES, text),
        expiration_date=_first_match([EXPIRATION_RE], text),
        raw_text=text,
    )


def parse_entitlements_text(text: str) -> EntitlementsMetadata:
    return EntitlementsMetadata(
        application_identifier=_first_match([APP_ID_RE], text),
        team_identifier=_first_match([TEAM_ID_RE], text),
        sandbox_enabled=bool(SANDBOX_RE.search(text)),
        raw_text=text,
    )


def parse_signature_text(text: str) -> SignatureMetadata:
    authorities = [a.strip() for a in AUTHORITY_RE.findall(text)]
    return SignatureMetadata(authorities=authorities, raw_text=text)


def parse_architectures_text(text: str) -> ArchitectureMetadata:
    match = FAT_ARCHS_RE.search(text)
    if match:
        architectures = match.group(1).split()
    else:
        match = THIN_ARCH_RE.search(text)
        architectures = [match.group(1)] if match else []
    return ArchitectureMetadata(architectures=architectures, raw_text=text)


def find_updater_components(
    app_path: Path, max_depth: int = UPDATER_SEARCH_DEPTH
) -> List[Path]:
    """Find auto-updater framework directories and helper binaries in a bundle."""
    contents = app_path / "Contents"
    found: List[Path] = []
    if not contents.is_dir():
        return found

    framework = UPDATER_FRAMEWORK.lower()
    helper = UPDATER_HELPER.lower()

    for root, dirs, files in os.walk(contents):
        depth = len(Path(root).relative_to(contents).parts) + 1
        if depth > max_depth:
            dirs[:] = []
            continue
        dirs.sort()
        for name in dirs:
            if name.lower() == framework:
                found.append(Path(root) / name)
        for name in sorted(files):
            if name.lower() == helper:
                found.append(Path(root) / name)

    return found


def main_executable(app_path: Path, product_name: str) -> Path:
    """Path of the bundle's primary executable."""
    macos_dir = app_path / "Contents" / "MacOS"
    info_plist = app_path / "Contents" / "Info.plist"
    try:
        with open(info_plist, "rb") as f:
            executable = plistlib.load(f).get("CFBundleExecutable")
    except (OSError, ValueError, ExpatError, AttributeError):
        executable = None
    if not isinstance(executable, str) or not executable:
        executable = product_name
    return macos_dir / executable


@dataclass
class SigningMetadata:
    """Everything read from one build, with MISSING where reading failed"""

    app_path: Path
    pkg_path: Optional[Path] = None
    updater_components: List[Path] = field(default_factory=list)
    profile_path: Optional[Path] = None
    profile: Union[ProfileMetadata, _Missing] = MISSING
    entitlements: Union[EntitlementsMetadata, _Missing] = MISSING
    signature: Union[SignatureMetadata, _Missing] = MISSING
    package_signature: Text = MISSING
    binary_path: Optional[Path] = None
    architectures: Union[ArchitectureMetadata, _Missing] = MISSING
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def embedded_profile_path(self) -> Path:
        return self.app_path / "Contents" / EMBEDDED_PROFILE_NAME


class MetadataExtractor:
    """Collects signing metadata for an app bundle and optional installer."""

    def __init__(self, tools: Optional[SigningTools] = None, product_name: str = ""):
        self.tools = tools or SigningTools()
        self.product_name = product_name
        self.console = get_console()

    def _capture(self, metadata: SigningMetadata, name: str, read: Callable):
        try:
            return read()
        except MasVerifyError as e:
            metadata.errors[name] = e.message
            self.console.log(f"[yellow]Could not read {name}:[/] {e.message}")
            return MISSING

    def collect(
        self, app_path: Path, pkg_path: Optional[Path] = None
    ) -> SigningMetadata:
        metadata = SigningMetadata(app_path=app_path, pkg_path=pkg_path)
        metadata.updater_components = find_updater_components(app_path)

        embedded = metadata.embedded_profile_path
        if embedded.is_file():
            metadata.profile_path = embedded
            metadata.profile = self._capture(
                metadata,
                "profile",
                lambda: parse_profile_text(self.tools.profile_text(embedded)),
            )

        metadata.entitlements = self._capture(
            metadata,
            "entitlements",
            lambda: parse_entitlements_text(self.tools.entitlements_text(app_path)),
        )
        metadata.signature = self._capture(
            metadata,
            "signature",
            lambda: parse_signature_text(self.tools.signature_details(app_path)),
        )

        if pkg_path is not None:
            metadata.package_signature = self._capture(
                metadata,
                "package_signature",
                lambda: self.tools.package_signature(pkg_path),
            )

        binary = main_executable(app_path, self.product_name)
        if binary.is_file():
            metadata.binary_path = binary
            metadata.architectures = self._capture(
                metadata,
                "architectures",
                lambda: parse_architectures_text(
                    self.tools.architectures_text(binary)
                ),
            )

        return metadata
