"""Snapshot orchestration: scan -> aggregate -> statistics -> classify -> report."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from holder_tracker.classify.classifier import ClassificationResult, HolderClassifier
from holder_tracker.classify.policy import ClassificationPolicy
from holder_tracker.classify.registry import Registry
from holder_tracker.core.config import Settings
from holder_tracker.onchain.rpc import SolanaRpcClient
from holder_tracker.onchain.token_accounts import HolderBalances, aggregate
from holder_tracker.report.stats import compute_holder_statistics
from holder_tracker.report.writer import ReportWriter


class HolderTracker:
    def __init__(self, settings: Settings, client: Optional[SolanaRpcClient] = None,
                 writer: Optional[ReportWriter] = None):
        self.settings = settings
        self.client = client or SolanaRpcClient.from_settings(settings.rpc)
        self.writer = writer or ReportWriter(settings.reports.data_dir)
        registry = Registry(settings.filters.service_registry_dir)
        self.policy = ClassificationPolicy.from_settings(settings.filters, registry.get_addresses())
        self.classifier = HolderClassifier(self.policy)
        self.holders: HolderBalances = {}

    async def fetch_holders(self) -> HolderBalances:
        logger.info("Fetching token holders...")
        records = await self.client.fetch_token_account_records(self.settings.token.mint)
        self.holders = aggregate(records)
        logger.info(f"Total unique holders: {len(self.holders)}")
        return self.holders

    def statistics(self) -> Dict[str, Any]:
        return compute_holder_statistics(self.holders, self.settings.token.decimals)

    def save_holders(self) -> Dict[str, Path]:
        result = self.classify()
        rs = self.settings.reports
        return self.writer.save(
            result,
            token_mint=self.settings.token.mint,
            policy=self.policy,
            decimals=self.settings.token.decimals,
            max_holders=rs.max_holders_to_save,
            dust_preview_limit=rs.dust_preview_limit,
            include_excluded=rs.include_excluded,
        )

    def classify(self) -> ClassificationResult:
        result = self.classifier.classify(self.holders)
        logger.info("\n" + result.summary())
        return result

    def _log_statistics(self, stats: Dict[str, Any]) -> None:
        sym = self.settings.token.symbol
        logger.info("=== Token Holder Statistics (Before Filtering) ===")
        logger.info(f"Total Holders: {stats['total_holders']}")
        logger.info(f"Total Supply Held: {stats['total_supply_held_formatted']} {sym}")
        logger.info(f"Average Balance: {stats['average_balance_formatted']} {sym}")
        logger.info(f"Largest Holder: {stats['largest_holder_formatted']} {sym}")
        logger.info(f"Smallest Holder: {stats['smallest_holder_formatted']} {sym}")

    async def run(self) -> Dict[str, Path]:
        f = self.settings.filters
        logger.info("=== Solana Token Holder Tracker ===")
        logger.info(f"RPC Endpoint: {self.settings.rpc.endpoint}")
        logger.info(f"Token: {self.settings.token.mint}")
        logger.info(f"Filters: Services={f.exclude_services}, Whales={f.exclude_whales} (>{f.whale_threshold_percent:g}%)")
        try:
            await self.fetch_holders()
        finally:
            await self.client.close()
        self._log_statistics(self.statistics())
        written = self.save_holders()
        logger.success("Process completed successfully!")
        return written
