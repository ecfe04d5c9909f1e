from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from holder_tracker.classify.classifier import ClassificationResult
from holder_tracker.classify.policy import ClassificationPolicy

from .documents import build_excluded_report, build_filtered_report, has_exclusions

LATEST_FILTERED = 'latest_filtered.json'


def file_timestamp(ts: datetime) -> str:
    """ISO timestamp safe for file names (':' and '.' replaced by '-')."""
    return ts.isoformat().replace(':', '-').replace('.', '-')


class ReportWriter:
    """Writes snapshot reports into `data_dir`.

    Per run: `holders_filtered_<ts>.json`, a copy at `latest_filtered.json`
    and, when anything was excluded, `excluded_<ts>.json`.
    """

    def __init__(self, data_dir: str = 'data'):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _write_json(self, path: Path, payload: Any) -> None:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)

    def save(
        self,
        result: ClassificationResult,
        *,
        token_mint: str,
        policy: ClassificationPolicy,
        decimals: int = 6,
        max_holders: Optional[int] = None,
        dust_preview_limit: int = 100,
        include_excluded: bool = True,
        now: Optional[datetime] = None,
    ) -> Dict[str, Path]:
        now = now or datetime.now(timezone.utc)
        stamp = file_timestamp(now)
        iso = now.isoformat()
        written: Dict[str, Path] = {}

        doc = build_filtered_report(
            result,
            token_mint=token_mint,
            timestamp=iso,
            policy=policy,
            decimals=decimals,
            max_holders=max_holders,
        )
        filtered_path = self.data_dir / f"holders_filtered_{stamp}.json"
        self._write_json(filtered_path, doc)
        logger.info(f"Filtered holders saved to: {filtered_path}")
        written['filtered'] = filtered_path

        latest_path = self.data_dir / LATEST_FILTERED
        self._write_json(latest_path, doc)
        logger.info(f"Latest filtered data saved to: {latest_path}")
        written['latest'] = latest_path

        if include_excluded and has_exclusions(result):
            excluded = build_excluded_report(
                result,
                timestamp=iso,
                decimals=decimals,
                dust_preview_limit=dust_preview_limit,
            )
            excluded_path = self.data_dir / f"excluded_{stamp}.json"
            self._write_json(excluded_path, excluded)
            logger.info(f"Excluded wallets saved to: {excluded_path}")
            written['excluded'] = excluded_path

        return written
