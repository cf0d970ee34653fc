"""
wl config - Show, read, change and register workspace configuration.
"""

from pathlib import Path

from wasteland.commands.context import CommandContext
from wasteland.lib.config import (
    VALID_MODES,
    VALID_PROVIDERS,
    ConfigStore,
    WorkspaceConfig,
    parse_upstream,
)
from wasteland.lib.errors import InputError

SHOWN_FIELDS = (
    "upstream", "fork_org", "fork_db", "local_dir", "rig_handle",
    "mode", "signing", "provider_type", "hop_uri", "last_sync", "joined_at",
)


def _value(cfg: WorkspaceConfig, key: str) -> str:
    if key == "mode":
        return cfg.resolve_mode()
    value = getattr(cfg, key)
    if isinstance(value, bool):
        return str(value).lower()
    return "" if value is None else str(value)


def cmd_config_show(args, ctx: CommandContext) -> int:
    """Print the active workspace record."""
    print(f"Config file: {ctx.config_store.path}")
    print(f"Wasteland: {ctx.cfg.upstream}")
    for key in SHOWN_FIELDS[1:]:
        print(f"  {key}: {_value(ctx.cfg, key)}")
    return 0


def cmd_config_get(args, ctx: CommandContext) -> int:
    key = args.key.replace("-", "_")
    if key not in SHOWN_FIELDS:
        raise InputError(f"unknown config key '{args.key}': must be one of {', '.join(SHOWN_FIELDS)}")
    print(_value(ctx.cfg, key))
    return 0


def cmd_config_set(args, ctx: CommandContext) -> int:
    key = args.key.replace("-", "_")
    ctx.config_store.set_value(ctx.cfg, key, args.value)
    print(f"{key} = {args.value}")
    return 0


def cmd_config_add(args, config_store: ConfigStore) -> int:
    """Register an existing local clone of a fork as a workspace."""
    _, db = parse_upstream(args.upstream)
    if args.mode not in VALID_MODES:
        raise InputError(f"invalid mode '{args.mode}': must be one of {', '.join(sorted(VALID_MODES))}")
    if args.provider not in VALID_PROVIDERS:
        raise InputError(f"invalid provider '{args.provider}': must be one of {', '.join(sorted(VALID_PROVIDERS))}")
    local_dir = Path(args.local_dir).expanduser().resolve()
    if not (local_dir / ".dolt").is_dir():
        raise InputError(f"{local_dir} is not a dolt database (no .dolt directory)")

    cfg = WorkspaceConfig(
        upstream=args.upstream,
        fork_org=args.fork_org,
        fork_db=args.fork_db or db,
        local_dir=str(local_dir),
        rig_handle=args.rig,
        mode=args.mode,
        signing=args.signing,
        provider_type=args.provider,
        hop_uri=args.hop_uri,
    )
    config_store.save(cfg)
    if args.make_default or len(config_store.load_all()) == 1:
        config_store.set_default(cfg.upstream)

    print(f"Registered {cfg.upstream}")
    print(f"  Fork: {cfg.fork_repo}")
    print(f"  Local clone: {cfg.local_dir}")
    print(f"  Rig: {cfg.rig_handle}")
    print(f"  Mode: {cfg.mode}")
    return 0

