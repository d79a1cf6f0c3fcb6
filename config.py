"""Node configuration: YAML file values layered over defaults."""

import getpass
import os

import yaml

DEFAULTS = {
    "handle": None,             # login name when unset
    "fingerprint": None,        # derived from the node key when unset
    "key_path": "node_key.pem",
    "listen_host": "0.0.0.0",
    "listen_port": 0,           # 0 picks an ephemeral port
    "advertise_host": None,     # address handed to peers, resolved when unset
    "announce": False,          # mDNS announcement and discovery
    "discovery_timeout": 2.0,
}


def default_handle():
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "anonymous"


def load_config(path=None):
    config = dict(DEFAULTS)
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")
        unknown = set(data) - set(DEFAULTS)
        if unknown:
            raise ValueError(f"{path}: unknown option(s): {', '.join(sorted(unknown))}")
        config.update(data)
    if not config["handle"]:
        config["handle"] = default_handle()
    return config
