"""
Error types for the wanted board.

Every error a command can abort with derives from WastelandError. The CLI
prints the message (and hint, if any) to stderr and maps the class to an
exit code.
"""


class WastelandError(Exception):
    """Base class for user-facing failures."""

    exit_code = 1
    hint: str = ""


class InputError(WastelandError):
    """Bad enum value, out-of-range rating, missing field. Nothing mutated."""

    exit_code = 2


class StateConflictError(WastelandError):
    """Item is in the wrong lifecycle status for the requested action."""

    def __init__(self, message: str, status: str | None = None):
        self.status = status
        super().__init__(message)


class AuthorizationError(StateConflictError):
    """Wrong actor for the transition, or a self-referential action."""


class ToolingError(WastelandError):
    """External binary or credential missing."""

    def __init__(self, message: str, hint: str = ""):
        self.hint = hint
        super().__init__(message)


class ProviderError(WastelandError):
    """Hosting provider API call failed."""


class ConfigError(WastelandError):
    """Workspace config could not be loaded or is invalid."""

    exit_code = 2


class NotJoinedError(ConfigError):
    """No workspace has been joined."""

    hint = "Run 'wl config add <org/db> --fork-org <org> --local-dir <path> --rig <handle>' to register a local clone."


class AmbiguousWorkspaceError(ConfigError):
    """Several workspaces joined and none selected."""

    hint = "Use --wasteland <org/db> to select which wasteland."


class HintedError(WastelandError):
    """Wraps another error with a concrete next-step instruction."""

    def __init__(self, err: Exception, hint: str):
        self.err = err
        self.hint = hint
        self.exit_code = getattr(err, "exit_code", 1)
        super().__init__(str(err))


def hint_wrap(err: Exception) -> HintedError:
    """Wrap a config-loading error with a recovery hint."""
    hint = getattr(err, "hint", "") or "Run 'wl config show' to inspect the config file."
    return HintedError(ConfigError(f"loading wasteland config: {err}"), hint)


class NotFoundError(WastelandError):
    """Item, completion or stamp does not exist."""


class StoreError(WastelandError):
    """The database engine rejected a statement for a reason other than state."""
