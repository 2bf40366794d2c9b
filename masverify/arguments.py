from pathlib import Path


def add_strip_updater_arguments(parser):
    """Add the strip-updater arguments to an existing parser."""
    parser.add_argument(
        "app_bundle",
        type=Path,
        nargs="?",
        help="Path to the packed .app bundle [default: the located MAS build]",
    )
