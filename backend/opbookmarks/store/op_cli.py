"""Store client backed by the 1Password `op` command line tool"""

import json
import logging
import subprocess
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ..models import Account, AccountSummary, Item, Vault
from .client import DeserializationError, StoreError, TransportError

logger = logging.getLogger(__name__)


class OpCliClient:
    """Runs `op --format json ...` once per query, sequentially"""
    
    def __init__(self, binary: str = "op", timeout: float | None = None):
        self.binary = binary
        self.timeout = timeout
    
    def run(self, *args: str, account: str | None = None) -> Any:
        """
        Invoke `op` and decode its JSON output.
        
        Args:
            args: Subcommand and its arguments, e.g. ("vault", "list")
            account: Value for `--account`, if the call is account scoped
        
        Returns:
            Decoded JSON document
        
        Raises:
            TransportError: `op` missing, failing, timing out or writing to stderr
            DeserializationError: stdout is not valid JSON
        """
        cmd = [self.binary, "--format", "json"]
        if account:
            cmd += ["--account", account]
        cmd += list(args)
        
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise TransportError(f"1Password CLI not found: {self.binary!r}")
        except subprocess.TimeoutExpired:
            raise TransportError(f"`{' '.join(cmd)}` timed out after {self.timeout}s")
        except OSError as e:
            raise TransportError(f"Failed to run {self.binary!r}: {e}")
        
        stderr = (result.stderr or "").strip()
        if result.returncode != 0 or stderr:
            raise TransportError(
                f"`{' '.join(cmd)}` failed (exit {result.returncode}): {stderr[:200]}"
            )
        
        # `op` prints nothing at all for an empty list
        if not result.stdout.strip():
            return []

        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise DeserializationError(f"`{' '.join(cmd)}` returned invalid JSON: {e}")
    
    def list_accounts(self, account_filter: set[str]) -> list[Account]:
        summaries = _parse(list[AccountSummary], self.run("account", "list"))
        
        if not account_filter:
            logger.info(f"Including all found accounts for export: {len(summaries)}")
            selected = summaries
        else:
            selected = [s for s in summaries if s.matches(account_filter)]
            found = {s.user_uuid for s in selected} | {s.account_uuid for s in selected}
            for account_id in sorted(account_filter - found):
                logger.warning(
                    f"Cannot include account {account_id} for export as it couldn't be found"
                )
        
        accounts = []
        for summary in selected:
            # a failing detail call only drops that account
            try:
                data = self.run("account", "get", account=summary.user_uuid)
                accounts.append(_parse(Account, data))
            except StoreError as e:
                logger.error(f"account {summary.user_uuid}: failed to load details: {e}")
        return accounts
    
    def list_vaults(self, account_id: str) -> list[Vault]:
        rows = self.run("vault", "list", account=account_id)
        if not isinstance(rows, list):
            raise DeserializationError(f"Expected a vault list, got {type(rows).__name__}")
        
        vaults = []
        for row in rows:
            vault_id = row.get("id") if isinstance(row, dict) else None
            if not vault_id:
                raise DeserializationError(f"Vault row without id: {row!r}")
            # `vault list` rows do not carry the revisions
            data = self.run("vault", "get", vault_id, account=account_id)
            vaults.append(_parse(Vault, data))
        return vaults
    
    def list_items(self, account_id: str, vault_id: str) -> list[Item]:
        data = self.run("item", "list", "--vault", vault_id, account=account_id)
        return _parse(list[Item], data)


def _parse(model: Any, data: Any) -> Any:
    """Validate decoded JSON against a model or a generic alias like list[Item]"""
    try:
        return TypeAdapter(model).validate_python(data)
    except ValidationError as e:
        raise DeserializationError(f"Unexpected `op` output: {e}")
