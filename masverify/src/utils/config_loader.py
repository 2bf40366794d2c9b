import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import toml
from dotenv import load_dotenv

from masverify.src.constants.cli_constants import (
    DEFAULT_BUNDLE_ID,
    DEFAULT_PRODUCT_NAME,
    DEFAULT_SIGNING_IDENTITY,
    DEFAULT_TEAM_ID,
    MAS_APPLICATION_AUTHORITY,
    MAS_INSTALLER_AUTHORITY,
    SOURCE_PROFILE_NAME,
)


@dataclass(frozen=True)
class ExpectedIdentity:
    """Identifiers a shippable build must carry"""

    team_id: str = DEFAULT_TEAM_ID
    bundle_id: str = DEFAULT_BUNDLE_ID
    product_name: str = DEFAULT_PRODUCT_NAME
    signing_identity: str = DEFAULT_SIGNING_IDENTITY
    application_authority: str = MAS_APPLICATION_AUTHORITY
    installer_authority: str = MAS_INSTALLER_AUTHORITY

    @property
    def application_identifier(self) -> str:
        return f"{self.team_id}.{self.bundle_id}"

    @property
    def app_bundle_name(self) -> str:
        return f"{self.product_name}.app"


@dataclass
class VerifierConfig:
    repo_root: Path
    expected: ExpectedIdentity = field(default_factory=ExpectedIdentity)
    electron_dir: Path = Path("apps/electron")
    profile_path: Path = Path("cert") / SOURCE_PROFILE_NAME

    def __post_init__(self):
        self.repo_root = Path(self.repo_root)
        if not self.electron_dir.is_absolute():
            self.electron_dir = self.repo_root / self.electron_dir
        if not self.profile_path.is_absolute():
            self.profile_path = self.repo_root / self.profile_path

    @property
    def dist_dir(self) -> Path:
        return self.electron_dir / "dist"

    @property
    def package_json(self) -> Path:
        return self.electron_dir / "package.json"


def get_repo_root() -> Path:
    """Return the repository root the scripts operate on."""
    env_root = os.environ.get("MASVERIFY_REPO_ROOT")
    if env_root:
        return Path(env_root).resolve()
    return Path.cwd().resolve()


def get_config_path(repo_root: Path) -> Optional[Path]:
    """Return the first configuration file that exists, if any."""
    env_config = os.environ.get("MASVERIFY_CONFIG")
    if env_config:
        return Path(env_config)

    for candidate in (
        repo_root / "masverify.toml",
        Path.home() / ".masverify" / "config.toml",
    ):
        if candidate.exists():
            return candidate
    return None


def load_config_file(config_path: Optional[Path]) -> Dict[str, Any]:
    """Load configuration from TOML file."""
    if config_path is None or not config_path.exists():
        return {}

    try:
        return toml.load(config_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ValueError(f"Failed to load config {config_path}: {e}")


def load_config(repo_root: Optional[Path] = None) -> VerifierConfig:
    """Build the verifier configuration from .env, TOML and defaults."""
    repo_root = Path(repo_root) if repo_root else get_repo_root()

    # Values already in the environment win over .env
    load_dotenv(repo_root / ".env", override=False)

    data = load_config_file(get_config_path(repo_root))
    app = data.get("app", {})
    authorities = data.get("authorities", {})
    paths = data.get("paths", {})

    defaults = ExpectedIdentity()
    expected = ExpectedIdentity(
        team_id=app.get("team_id", defaults.team_id),
        bundle_id=app.get("bundle_id", defaults.bundle_id),
        product_name=app.get("product_name", defaults.product_name),
        signing_identity=app.get("signing_identity", defaults.signing_identity),
        application_authority=authorities.get(
            "application", defaults.application_authority
        ),
        installer_authority=authorities.get("installer", defaults.installer_authority),
    )

    kwargs = {}
    if paths.get("electron_dir"):
        kwargs["electron_dir"] = Path(paths["electron_dir"])
    if paths.get("profile"):
        kwargs["profile_path"] = Path(paths["profile"])

    return VerifierConfig(repo_root=repo_root, expected=expected, **kwargs)
