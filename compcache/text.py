"""Centralized user-facing text for the compcache CLI."""

from __future__ import annotations

class Styles:
    ERROR = "red"
    WARNING = "yellow"
    SUCCESS = "green"
    INFO = "dim"
    TITLE = "bold cyan"
    TABLE_HEADER = "bold magenta"


class Messages:
    APP_HELP = "compcache – inspect and maintain the transform compilation cache."
    HELP_VERBOSE = "Enable debug logging."
    HELP_PATH_FILE = "Source file whose cache artifacts should be located."
    HELP_PATH_HASH = "Content hash the file was compiled with."
    HELP_HASH_FILE = "Source file to hash."
    HELP_HASH_SALT = "Extra value mixed into the hash (repeatable)."
    HELP_CLEAR_YES = "Do not ask for confirmation."
    HELP_SNAPSHOT = "JSON snapshot exported by a cache process."
    HELP_DEPS_FILE = "Compiled file whose recorded dependencies should be listed."
    HELP_AFFECTED_FILES = "Changed files."
    HELP_AFFECTED_TRANSITIVE = "Follow dependents until no new files are found."

    INFO_TITLE = "compcache v{version}"
    INFO_ROOT = "Cache root: {path}"
    INFO_ROOT_SOURCE = "Root source: {source}"
    INFO_ROOT_MISSING = "Cache root does not exist yet."
    INFO_SUMMARY = (
        "Shards: {shards}\n"
        "Code files: {code}\n"
        "Source maps: {maps}\n"
        "Size: {size}"
    )
    INFO_WRITABLE = "Cache root writable"
    INFO_CLEAR_CONFIRM = "Remove every cached artifact under {path}?"
    INFO_CLEARED = "Removed {count} cached entr{plural} from {path}."
    INFO_CLEAR_NONE = "No cache found at {path}."
    INFO_CLEAR_ABORTED = "Aborted."
    INFO_NO_DEPENDENCIES = "No dependencies recorded for {path}."

    ERROR_SNAPSHOT_READ = "Unable to read snapshot {path}: {reason}"
    ERROR_SNAPSHOT_INVALID = "Invalid snapshot {path}: {reason}"
    ERROR_FILE_READ = "Unable to read {path}: {reason}"
    ERROR_HASH_INVALID = "Invalid content hash: {reason}"
    ERROR_CLEAR_FAILED = "Unable to clear cache at {path}: {reason}"

    TABLE_HEADER_KIND = "Artifact"
    TABLE_HEADER_PATH = "Path"
    TABLE_HEADER_EXISTS = "Exists"
