"""Running menu commands in the foreground terminal."""

import logging
import subprocess
from typing import Callable

from menu_maker.errors import ProcessError


logger = logging.getLogger(__name__)

BANNER_WIDTH = 60


def run_command(
    command: str,
    pause: bool = False,
    prompt: Callable[[str], str] = input,
) -> int:
    """Run ``command`` through the shell and return its exit status.

    Must be called while the UI has handed the terminal back. With ``pause``
    set, waits for Enter before returning so the output stays readable.
    """
    print(f"Menu Maker: Executing '{command}'")
    print("=" * BANNER_WIDTH)
    print()
    try:
        result = subprocess.run(command, shell=True)
    except OSError as e:
        logger.error("Failed to start %r: %s", command, e)
        print(f"Failed to run command: {e}")
        prompt("Press Enter to continue...")
        raise ProcessError(str(e)) from e

    logger.info("Command %r exited with status %s", command, result.returncode)
    if pause:
        print()
        print("=" * BANNER_WIDTH)
        print(f"Command completed with exit code: {result.returncode}")
        prompt("Press Enter to return to MenuMaker...")
    return result.returncode
