"""
wl completion - Shell completion script and its hidden helper.
"""

from wasteland.lib import completion
from wasteland.lib.config import ConfigStore
from wasteland.lib.errors import InputError, WastelandError


def cmd_completion(args, commands: list[str]) -> int:
    if args.shell != "bash":
        raise InputError(f"unsupported shell '{args.shell}': only bash is supported")
    print(completion.bash_script(commands), end="")
    return 0


def cmd_complete(args, config_store: ConfigStore) -> int:
    """Print one candidate per line. Silent on any failure."""
    try:
        cfg = config_store.resolve(getattr(args, "wasteland", None))
    except WastelandError:
        return 0
    for word in completion.candidates(args.kind, cfg.local_path):
        print(word)
    return 0
