from .generate import (
    ChangelogSourceMissingError,
    generate_changelog_data,
    generate_changelog_rss,
)
from .parser import Release, ReleaseSection, parse_changelog_file

__all__ = [
    "ChangelogSourceMissingError",
    "generate_changelog_data",
    "generate_changelog_rss",
    "Release",
    "ReleaseSection",
    "parse_changelog_file",
]
