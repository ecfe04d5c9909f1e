"""Service wallet registry: versioned address lists on disk.

File format (json), named `<kind>.v<N>.json`:
{
  "version": "v3",
  "addresses": ["6EF8rrec...", ...],
  "meta": {"source": "manual curation", "note": "new AMM vaults"}
}

The highest `v<N>` for a kind wins. Addresses are merged into the
classification policy's service set.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from loguru import logger

from holder_tracker.onchain.addresses import is_valid_address

SERVICE_WALLETS_KIND = 'service_wallets'


def _select_latest_file(dir_path: str, kind: str) -> Optional[str]:
    prefix = f"{kind}."
    best_ver = -1
    best_file = None
    try:
        for fn in os.listdir(dir_path):
            if not fn.startswith(prefix) or not fn.endswith('.json'):
                continue
            parts = fn.split('.')
            if len(parts) < 3:
                continue
            ver_token = parts[-2]
            if ver_token.startswith('v') and ver_token[1:].isdigit():
                vnum = int(ver_token[1:])
                if vnum > best_ver:
                    best_ver = vnum
                    best_file = os.path.join(dir_path, fn)
    except (FileNotFoundError, NotADirectoryError):
        return None
    return best_file


def load_latest_registry(dir_path: str, kind: str = SERVICE_WALLETS_KIND) -> Dict[str, Any]:
    path = _select_latest_file(dir_path, kind)
    if not path:
        logger.warning(f"No registry file for kind={kind} in {dir_path}")
        return {"version": None, "addresses": set(), "meta": {}}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed loading registry {path}: {e}")
        return {"version": None, "addresses": set(), "meta": {}}

    addrs: Set[str] = set()
    for addr in data.get('addresses') or []:
        if is_valid_address(addr):
            addrs.add(addr)
        else:
            logger.warning(f"Ignoring invalid address '{addr}' in {path}")
    return {"version": data.get('version') or os.path.basename(path).split('.')[-2],
            "addresses": addrs,
            "meta": data.get('meta') or {},
            "_path": path}


@dataclass
class Registry:
    dir_path: Optional[str]
    kind: str = SERVICE_WALLETS_KIND
    _last: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._last is None:
            if not self.dir_path:
                self._last = {"version": None, "addresses": set(), "meta": {}}
            else:
                self._last = load_latest_registry(self.dir_path, self.kind)
                logger.info(f"Loaded {len(self._last['addresses'])} {self.kind} address(es), version={self._last['version']}")
        return self._last

    def get_addresses(self) -> Set[str]:
        return set(self._load().get('addresses') or [])

    def version(self) -> Optional[str]:
        return self._load().get('version')


__all__ = ['SERVICE_WALLETS_KIND', 'load_latest_registry', 'Registry']
