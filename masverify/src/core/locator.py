import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from masverify.logger import get_console
from masverify.src.apple.signing_tools import SigningTools
from masverify.src.constants.cli_constants import (
    APP_PATH_MARKER,
    EMBEDDED_PROFILE_NAME,
    PKG_PATH_MARKER,
    SOURCE_PROFILE_NAME,
    VERIFY_TEMP_DIR,
)
from masverify.src.core.errors import (
    ArtifactNotFoundError,
    ExternalToolError,
    IdentifierMismatchError,
    MetadataParseError,
)
from masverify.src.core.extractor import parse_profile_text
from masverify.src.utils.config_loader import VerifierConfig

Strategy = Callable[[], Optional[Path]]
Predicate = Callable[[Path], bool]


def is_dir(path: Path) -> bool:
    return path.is_dir()


def is_file(path: Path) -> bool:
    return path.is_file()


def first_resolved(strategies: Iterable[Strategy]) -> Optional[Path]:
    """Try each strategy in order and return the first path found."""
    for strategy in strategies:
        found = strategy()
        if found is not None:
            return found
    return None


def direct_paths(candidates: Sequence[Path], predicate: Predicate) -> Strategy:
    """Literal candidates, or glob patterns when the name contains ``*``"""

    def resolve() -> Optional[Path]:
        for candidate in candidates:
            if "*" in str(candidate):
                matches = sorted(candidate.parent.glob(candidate.name))
            else:
                matches = [candidate]
            for match in matches:
                if match.exists() and predicate(match):
                    return match
        return None

    return resolve


def marker_file(marker: Path) -> Strategy:
    """A file holding a previously discovered path"""

    def resolve() -> Optional[Path]:
        if not marker.is_file():
            return None
        recorded = marker.read_text(encoding="utf-8").strip()
        if recorded and Path(recorded).exists():
            return Path(recorded)
        return None

    return resolve


def first_in_dirs(
    directories: Sequence[Path], suffix: str, predicate: Predicate
) -> Strategy:
    """First entry with ``suffix`` in the first directory containing one"""

    def resolve() -> Optional[Path]:
        for directory in directories:
            if not directory.is_dir():
                continue
            entries = sorted(
                p for p in directory.iterdir() if p.name.endswith(suffix) and predicate(p)
            )
            if entries:
                return entries[0]
        return None

    return resolve


def channel_priority(path: Path) -> int:
    """Prefer MAS output over plain mac output over anything else."""
    parts = path.parts
    if "mas" in parts:
        return 0
    if "mac" in parts:
        return 1
    return 2


def recursive_search(
    root: Path,
    name: str,
    predicate: Predicate,
    max_depth: int,
    priority: Callable[[Path], int] = channel_priority,
) -> Strategy:
    """Walk ``root`` down to ``max_depth`` looking for entries called ``name``"""

    def resolve() -> Optional[Path]:
        if not root.is_dir():
            return None
        hits: List[Path] = []
        for current, dirs, files in os.walk(root):
            depth = len(Path(current).relative_to(root).parts) + 1
            for entry in dirs + files:
                if entry == name and predicate(Path(current) / entry):
                    hits.append(Path(current) / entry)
            if depth >= max_depth:
                dirs[:] = []
            dirs.sort()
        if not hits:
            return None
        return sorted(hits, key=lambda p: (priority(p.relative_to(root)), str(p)))[0]

    return resolve


class ArtifactLocator:
    """Finds provisioning profiles, app bundles and installer packages."""

    def __init__(self, config: VerifierConfig, tools: Optional[SigningTools] = None):
        self.config = config
        self.tools = tools or SigningTools()
        self.console = get_console()

    @property
    def expected(self):
        return self.config.expected

    def locate_profile(self) -> Path:
        """Find the source provisioning profile and check its identifiers."""
        candidates = [self.config.profile_path]
        found = first_resolved(
            [
                direct_paths(
                    candidates,
                    lambda p: is_file(p) and p.name != EMBEDDED_PROFILE_NAME,
                )
            ]
        )
        if found is None:
            raise ArtifactNotFoundError(
                "Provisioning profile not found",
                searched=[c.parent for c in candidates],
                hints=[
                    f"Expected file: {SOURCE_PROFILE_NAME}",
                    f"Note: Do not use {EMBEDDED_PROFILE_NAME} - it is created "
                    "from the source file during build",
                ],
            )

        self.validate_profile(found)
        return found.resolve()

    def validate_profile(self, profile_path: Path) -> None:
        profile = parse_profile_text(self.tools.profile_text(profile_path))

        if not profile.application_identifier:
            raise MetadataParseError(
                "Could not parse application-identifier from profile",
                hints=[f"Profile: {profile_path}"],
            )

        expected_app_id = self.expected.application_identifier
        if profile.application_identifier != expected_app_id:
            raise IdentifierMismatchError(
                "Provisioning profile application-identifier",
                expected_app_id,
                profile.application_identifier,
                hints=[
                    f"Profile:  {profile_path}",
                    f"Note: Profile must match app bundle ID: {self.expected.bundle_id}",
                ],
            )

        # A profile without a team identifier is accepted
        if (
            profile.team_identifier
            and profile.team_identifier != self.expected.team_id
        ):
            raise IdentifierMismatchError(
                "Provisioning profile team-identifier",
                self.expected.team_id,
                profile.team_identifier,
                hints=[f"Profile:  {profile_path}"],
            )

    def locate_app(self) -> Path:
        """Find the latest MAS build .app bundle under the electron dist dir."""
        dist = self.config.dist_dir
        if not dist.is_dir():
            raise ArtifactNotFoundError(
                f"dist directory not found at {dist}", searched=[dist]
            )

        app_name = self.expected.app_bundle_name
        direct = [
            dist / "mas" / app_name,
            dist / "mac" / app_name,  # universal build (x64 + arm64)
            dist / "mac-universal" / app_name,
            dist / "mas-arm64" / app_name,
            dist / "mas-x64" / app_name,
        ]
        found = first_resolved(
            [
                direct_paths(direct, is_dir),
                recursive_search(dist, app_name, is_dir, max_depth=3),
            ]
        )
        if found is None:
            raise ArtifactNotFoundError(
                f'Could not find MAS app bundle "{app_name}"',
                searched=[dist],
                hints=["Please run the MAS build first."],
            )

        found = found.resolve()
        if not (found / "Contents" / "Info.plist").is_file():
            raise ArtifactNotFoundError(
                f"Found app bundle but missing Info.plist: {found}"
            )
        return found

    def locate_package(self) -> Optional[Path]:
        dist = self.config.dist_dir
        return first_resolved(
            [
                marker_file(self.config.repo_root / PKG_PATH_MARKER),
                first_in_dirs(
                    [dist, dist / "mas", self.config.repo_root / "dist" / "mas"],
                    ".pkg",
                    is_file,
                ),
            ]
        )

    @property
    def temp_dir(self) -> Path:
        return self.config.repo_root / VERIFY_TEMP_DIR

    def expand_package(self, pkg_path: Path) -> Strategy:
        """Strategy pulling the .app out of an installer package"""

        def resolve() -> Optional[Path]:
            self.console.print("📦 Extracting app from .pkg for verification...")
            self.reset_temp_dir()
            expanded = self.temp_dir / "pkg-expanded"
            try:
                self.tools.expand_package(pkg_path, expanded)
            except ExternalToolError as e:
                self.console.print(
                    "[yellow]⚠️  Could not extract app from .pkg, will try dist "
                    f"directories instead[/] ({e.message})"
                )
                return None
            return first_in_dirs([expanded / "Payload"], ".app", is_dir)()

        return resolve

    def reset_temp_dir(self) -> None:
        self.cleanup()
        self.temp_dir.mkdir(parents=True, exist_ok=True)

    def cleanup(self) -> None:
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir, ignore_errors=True)

    def locate_mas_artifacts(self) -> "MasArtifacts":
        """Resolve the app bundle and installer package to verify."""
        dist = self.config.dist_dir
        app_path = marker_file(self.config.repo_root / APP_PATH_MARKER)()
        if app_path is not None:
            # Only a package recorded by the same build belongs to the marker app
            pkg_path = marker_file(self.config.repo_root / PKG_PATH_MARKER)()
            return MasArtifacts(app_path=app_path, pkg_path=pkg_path, locator=self)

        pkg_path = self.locate_package()
        strategies = []
        if pkg_path is not None:
            strategies.append(self.expand_package(pkg_path))
        strategies.append(
            first_in_dirs(
                [
                    dist / "mas",  # merged universal app
                    dist / "mac",
                    dist / "mac-universal",
                    dist / "mac-unpacked",
                ],
                ".app",
                is_dir,
            )
        )

        app_path = first_resolved(strategies)
        if app_path is None:
            self.cleanup()
            raise ArtifactNotFoundError(
                "Could not locate MAS app bundle",
                searched=[dist],
                hints=["Run the MAS build first: npm run mas:electron:build"],
            )
        return MasArtifacts(app_path=app_path, pkg_path=pkg_path, locator=self)


@dataclass
class MasArtifacts:
    """App bundle and installer for one run; owns the expansion directory"""

    app_path: Path
    pkg_path: Optional[Path]
    locator: ArtifactLocator

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.locator.cleanup()
        return False
