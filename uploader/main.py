"""Uploader entry point."""

import os
import shlex
import sys

from common.logging_config import setup_logging
from uploader.parser import ParseError, parse_command
from uploader.repl import dispatch_command, repl_loop


def main() -> None:
    """
    Entry point for the uploader.

    With arguments (e.g. `reelpress-upload upload clip.mp4`) runs one command
    and exits; without arguments starts the REPL.
    """
    log_level = 'DEBUG' if '--debug' in sys.argv else os.getenv('LOG_LEVEL', 'WARNING')

    logger = setup_logging('uploader', log_level=log_level)

    if '--debug' in sys.argv:
        logger.info("Debug logging enabled")
        sys.argv.remove('--debug')

    args = sys.argv[1:]
    if args:
        try:
            cmd_obj = parse_command(shlex.join(args))
        except ParseError as e:
            print(f"Error: {e}")
            sys.exit(2)
        result = dispatch_command(cmd_obj)
        print(result)
        sys.exit(1 if result.startswith(("Error", "Upload failed", "Storage check failed", "Unexpected error")) else 0)

    logger.info("Uploader starting...")
    try:
        repl_loop()
    except Exception as e:
        logger.error(f"Uploader error: {e}", exc_info=True)
        raise
    finally:
        logger.info("Uploader exiting")


if __name__ == "__main__":
    main()
