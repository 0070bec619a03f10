"""
Explain why specific estimates are missing from an account's active list.

Loads the account's non-archived estimates once, then reports each requested
estimate number as found or missing. Every miss gets a follow-up lookup,
finished before the next ID is reported, that tells whether the estimate
exists but is filtered out as archived.

Usage:
    lecrm-find-missing [--account-id ID] [ESTIMATE_ID ...]
"""

import argparse
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from supabase import Client

from lecrm.exceptions import ConfigurationError, UpstreamServiceError
from lecrm.scripts.db import connect, fetch_rows

DEFAULT_ACCOUNT_ID = "lmn-account-3661753"
DEFAULT_ESTIMATE_IDS = (
    "EST3351938",
    "EST3259705",
    "EST3259698",
    "EST3259613",
    "EST3259701",
    "EST3259710",
)


@dataclass
class EstimateCheck:
    estimate_id: str
    match: Optional[Dict[str, Any]] = None
    excluded: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.match is not None


def match_estimate(estimates: Sequence[Dict[str, Any]], estimate_id: str) -> Optional[Dict[str, Any]]:
    """First estimate whose estimate_number or lmn_estimate_id equals the ID, ignoring case."""
    wanted = estimate_id.upper()
    for estimate in estimates:
        if (estimate.get("estimate_number") or "").upper() == wanted:
            return estimate
        if (estimate.get("lmn_estimate_id") or "").upper() == wanted:
            return estimate
    return None


def fetch_active_estimates(client: Client, account_id: str) -> List[Dict[str, Any]]:
    query = (
        client.table("estimates")
        .select("*")
        .eq("archived", False)
        .eq("account_id", account_id)
    )
    return fetch_rows(query, "non-archived estimates")


def lookup_any_state(client: Client, account_id: str, estimate_id: str) -> List[Dict[str, Any]]:
    query = (
        client.table("estimates")
        .select("id, estimate_number, lmn_estimate_id, archived")
        .or_(f"estimate_number.eq.{estimate_id},lmn_estimate_id.eq.{estimate_id}")
        .eq("account_id", account_id)
    )
    return fetch_rows(query, f"estimate {estimate_id}")


def check_estimates(
    client: Client,
    account_id: str,
    estimate_ids: Sequence[str],
) -> List[EstimateCheck]:
    """
    Check each ID against the active list; misses are looked up again
    without the archived filter, one at a time and in input order.
    """
    active = fetch_active_estimates(client, account_id)
    results = []
    for estimate_id in estimate_ids:
        check = EstimateCheck(estimate_id, match=match_estimate(active, estimate_id))
        if not check.found:
            check.excluded = lookup_any_state(client, account_id, estimate_id)
        results.append(check)
    return results


def format_check(check: EstimateCheck) -> List[str]:
    if check.found:
        return [f"FOUND      {check.estimate_id}: archived={check.match.get('archived')}"]

    lines = [f"NOT FOUND  {check.estimate_id}: not in non-archived estimates"]
    if check.excluded:
        for row in check.excluded:
            lines.append(f"           But exists as archived: {row.get('archived')} (id={row.get('id')})")
    else:
        lines.append("           No estimate with this number exists for the account")
    return lines


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Find estimates missing from an account's active list")
    parser.add_argument("estimate_ids", nargs="*", help="Estimate numbers to check")
    parser.add_argument("--account-id", default=DEFAULT_ACCOUNT_ID, help="Account to inspect")
    args = parser.parse_args(argv)
    estimate_ids = args.estimate_ids or list(DEFAULT_ESTIMATE_IDS)

    try:
        client = connect()
        checks = check_estimates(client, args.account_id, estimate_ids)
    except (ConfigurationError, UpstreamServiceError) as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    print(f"Account {args.account_id}: checking {len(estimate_ids)} estimate(s)\n")
    for check in checks:
        for line in format_check(check):
            print(line)

    missing = sum(1 for c in checks if not c.found)
    print(f"\n{len(checks) - missing} found, {missing} missing")
    return 0


if __name__ == "__main__":
    sys.exit(main())
