from .json_io import load_sequence, save_sequence, load_exclusions, save_exclusions, save_json
from .config_loader import load_config, build_from_config, parse_sync_window

__all__ = [
    "load_sequence",
    "save_sequence",
    "load_exclusions",
    "save_exclusions",
    "save_json",
    "load_config",
    "build_from_config",
    "parse_sync_window",
]
