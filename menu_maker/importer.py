"""Moving executables from the import directory into the menu."""

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Set

from menu_maker.model import MenuItem


logger = logging.getLogger(__name__)

BIN_CATEGORY = "Bin Executables"


def filename_to_label(name: str) -> str:
    """``my_tool-v2`` -> ``My Tool V2``; only the first letter of each word changes."""
    words = name.replace("_", " ").replace("-", " ").split()
    return " ".join(word[0].upper() + word[1:] for word in words)


def display_path(path: Path) -> str:
    """Render ``path`` with the home directory shown as ``~``."""
    home = Path.home()
    try:
        return f"~/{path.relative_to(home).as_posix()}"
    except ValueError:
        return path.as_posix()


def is_executable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


@dataclass
class ImportScan:
    """Items for the executables that were moved, and the files that could not be."""

    items: List[MenuItem] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    def summary(self) -> str:
        message = "Bin directory scanned"
        if self.items:
            message += f" | {len(self.items)} added"
        if self.failures:
            message += f" | {len(self.failures)} failed: {self.failures[0]}"
        return message


def scan_import_directory(
    source: Path, bin_dir: Path, existing_commands: Set[str]
) -> ImportScan:
    """Move new executables from ``source`` into ``bin_dir`` and describe them as items.

    Files already present in ``bin_dir`` or already referenced by a menu
    command are left where they are. A missing source directory yields an
    empty scan. A file that cannot be moved is logged and recorded in
    ``failures`` while the rest of the directory is still imported.
    """
    scan = ImportScan()
    if not source.is_dir():
        logger.info("Import directory %s not found, nothing to scan", source)
        return scan
    bin_dir.mkdir(parents=True, exist_ok=True)

    known = set(existing_commands)
    for path in sorted(source.iterdir()):
        if not is_executable_file(path):
            continue
        destination = bin_dir / path.name
        command = f"{display_path(bin_dir)}/{path.name}"
        if destination.exists() or command in known:
            logger.debug("Skipping %s, already imported", path.name)
            continue
        try:
            shutil.move(str(path), str(destination))
        except OSError as e:
            logger.error("Failed to move %s into %s: %s", path.name, bin_dir, e)
            scan.failures.append(f"{path.name}: {e}")
            continue
        try:
            destination.chmod(0o755)
        except OSError as e:
            # The file is already in bin_dir, so it still gets an item.
            logger.warning("Failed to mark %s executable: %s", destination, e)
        known.add(command)
        scan.items.append(
            MenuItem(
                label=filename_to_label(path.name),
                command=command,
                description=f"Executable: {path.name}",
                pause=False,
            )
        )
        logger.info("Imported %s as %s", path.name, command)
    return scan
