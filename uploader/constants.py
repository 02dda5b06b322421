"""Uploader constants and REPL presentation."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "resume", "status", "storage", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#E0457B bold",
        "command": "#0088ff bold",
    }
)

MAGENTA = "\033[38;2;224;69;123m"
GREEN = "\033[32m"
RESET = "\033[0m"

LOGO = f"""{MAGENTA}
 ██████╗ ███████╗███████╗██╗     ██████╗ ██████╗ ███████╗███████╗███████╗
 ██╔══██╗██╔════╝██╔════╝██║     ██╔══██╗██╔══██╗██╔════╝██╔════╝██╔════╝
 ██████╔╝█████╗  █████╗  ██║     ██████╔╝██████╔╝█████╗  ███████╗███████╗
 ██╔══██╗██╔══╝  ██╔══╝  ██║     ██╔═══╝ ██╔══██╗██╔══╝  ╚════██║╚════██║
 ██║  ██║███████╗███████╗███████╗██║     ██║  ██║███████╗███████║███████║
 ╚═╝  ╚═╝╚══════╝╚══════╝╚══════╝╚═╝     ╚═╝  ╚═╝╚══════╝╚══════╝╚══════╝
{RESET}"""

WELCOME_TITLE = "ReelPress Uploader - chunked video uploads"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "reelpress> "

HELP_TEXT = """Available commands:
  upload <path>                       Split a video into 4 MiB chunks, upload them and reassemble
  resume [<path> <fileName>]          Send only the chunks the server is missing, then reassemble
                                      (without arguments, resumes the last interrupted upload)
  status <fileName> [totalChunks]     Show which chunks the server holds for an upload
  storage                             Check that the server's object store is reachable
  clear                               Clear screen and redisplay welcome message
  help                                Show this help
  exit                                Exit REPL

Examples:
  upload videos/intro.mp4
  status 1712345678901-intro.mp4
  resume videos/intro.mp4 1712345678901-intro.mp4"""

VIDEO_FILE_EXTENSIONS = (".mp4", ".mov", ".m4v", ".mkv", ".webm", ".avi", ".mpeg", ".mpg")
