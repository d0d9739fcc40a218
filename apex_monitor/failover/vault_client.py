"""Commit collaborators that submit the failover to the vault."""
from __future__ import annotations

import logging
import time

import requests

from apex_monitor.errors import CommitFailure
from .controller import CommitResult

logger = logging.getLogger(__name__)


class VaultFailoverClient:
    """
    Submit the failover transaction through the vault's HTTP relay.

    The relay signs and broadcasts the transaction; a response without a
    transaction hash (or with a pending status) is reported as a failure so the
    controller keeps retrying.
    """

    def __init__(self, base_url: str, oracle_address: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.oracle_address = oracle_address
        self.timeout = timeout

    def submit_failover(self, failing_strategy_id: int, backup_strategy_id: int) -> CommitResult:
        payload = {
            "failing_strategy_id": int(failing_strategy_id),
            "backup_strategy_id": int(backup_strategy_id),
            "oracle": self.oracle_address,
        }
        logger.info(
            "Submitting failover %d -> %d to %s",
            failing_strategy_id,
            backup_strategy_id,
            self.base_url,
        )
        try:
            resp = requests.post(
                f"{self.base_url}/vault/failover",
                json=payload,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise CommitFailure(
                f"Vault request failed: {exc}", failing_strategy_id, backup_strategy_id
            ) from exc
        except ValueError as exc:
            raise CommitFailure(
                f"Vault returned malformed JSON: {exc}", failing_strategy_id, backup_strategy_id
            ) from exc

        if not isinstance(data, dict):
            return CommitResult.failure(f"Unexpected vault response: {data!r}")
        status = str(data.get("status", "confirmed")).lower()
        tx_hash = data.get("tx_hash") or data.get("transaction_hash")
        if status in ("pending", "submitted"):
            return CommitResult.failure(f"Transaction {tx_hash or '?'} still {status}")
        if status not in ("confirmed", "success", "ok"):
            return CommitResult.failure(data.get("error") or f"Vault reported status {status}")
        if not tx_hash:
            logger.warning("Vault response missing transaction hash: %s", data)
            return CommitResult.failure("Vault response missing transaction hash")
        return CommitResult.success(str(tx_hash))

    __call__ = submit_failover


class SimulatedVaultClient:
    """Local stand-in that confirms every submission without a network call."""

    def __init__(self, oracle_address: str):
        self.oracle_address = oracle_address
        self.submissions = []

    def submit_failover(self, failing_strategy_id: int, backup_strategy_id: int) -> CommitResult:
        submitted_at = time.time()
        self.submissions.append((failing_strategy_id, backup_strategy_id, submitted_at))
        confirmation = f"sim-{self.oracle_address}-{failing_strategy_id}-{backup_strategy_id}-{int(submitted_at)}"
        logger.info(
            "Simulated vault switched to strategy %d (oracle=%s)",
            backup_strategy_id,
            self.oracle_address,
        )
        return CommitResult.success(confirmation)

    __call__ = submit_failover


def build_commit_client(config):
    """HTTP client when VAULT_API_URL is set, simulated client otherwise."""
    if config.vault_api_url:
        return VaultFailoverClient(
            base_url=config.vault_api_url,
            oracle_address=config.oracle_address,
            timeout=config.vault_timeout_seconds,
        )
    logger.info("VAULT_API_URL not set; using simulated vault client")
    return SimulatedVaultClient(oracle_address=config.oracle_address)
