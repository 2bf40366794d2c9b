from rich.text import Text

__version__ = "0.1.0"

APP_DESCRIPTION = "Signing checks for Nexus Countdown Mac App Store builds"

DEFAULT_TEAM_ID = "T6YG6KXA9D"
DEFAULT_BUNDLE_ID = "com.nexuscountdown"
DEFAULT_PRODUCT_NAME = "Nexus Countdown"
DEFAULT_SIGNING_IDENTITY = "Adam Parsons (T6YG6KXA9D)"

MAS_APPLICATION_AUTHORITY = "3rd Party Mac Developer Application"
MAS_INSTALLER_AUTHORITY = "3rd Party Mac Developer Installer"

# Files written next to the repo root by the build scripts
APP_PATH_MARKER = ".mas-app-path"
PKG_PATH_MARKER = ".mas-pkg-path"
VERIFY_TEMP_DIR = ".mas-verify-temp"

EMBEDDED_PROFILE_NAME = "embedded.provisionprofile"
SOURCE_PROFILE_NAME = "Nexus_Countdown.provisionprofile"

# Legacy auto-updater pieces that must never ship to the App Store
UPDATER_FRAMEWORK = "Squirrel.framework"
UPDATER_HELPER = "ShipIt"
UPDATER_SEARCH_DEPTH = 10


def get_banner_text() -> Text:
    return Text("masverify", style="bold cyan")
