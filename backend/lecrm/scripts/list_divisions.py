"""
List every distinct `division` value across estimates, with counts.

Fetches estimates from the deployed API (`/api/data/estimates`) and prints
one row per division, most common first, with its share of all estimates.
Blank and missing divisions are grouped as "(empty/null)".

Base URL: https://$VERCEL_URL when VERCEL_URL is set, else http://localhost:3000.

Usage:
    lecrm-list-divisions
"""

import argparse
import os
import sys
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import httpx

from lecrm.exceptions import UpstreamServiceError

DEFAULT_BASE_URL = "http://localhost:3000"
ESTIMATES_PATH = "/api/data/estimates"
EMPTY_LABEL = "(empty/null)"
REQUEST_TIMEOUT = 60.0


def base_url_from_env(environ: Optional[Mapping[str, str]] = None) -> str:
    environ = os.environ if environ is None else environ
    vercel_url = (environ.get("VERCEL_URL") or "").strip()
    return f"https://{vercel_url}" if vercel_url else DEFAULT_BASE_URL


def fetch_estimates(base_url: str, client: Optional[httpx.Client] = None) -> List[Dict[str, Any]]:
    """
    GET {base_url}/api/data/estimates and return its `data` list.

    Raises:
        UpstreamServiceError: Non-2xx status, transport failure, or a body
            without `success: true` and a `data` list.
    """
    url = f"{base_url.rstrip('/')}{ESTIMATES_PATH}"
    owns_client = client is None
    client = client or httpx.Client(timeout=REQUEST_TIMEOUT)
    try:
        response = client.get(url)
    except httpx.HTTPError as exc:
        raise UpstreamServiceError(f"Failed to fetch estimates: {exc}") from exc
    finally:
        if owns_client:
            client.close()

    if response.is_error:
        raise UpstreamServiceError(f"Failed to fetch estimates: {response.reason_phrase}")

    try:
        result = response.json()
    except ValueError as exc:
        raise UpstreamServiceError("Estimates endpoint did not return JSON") from exc

    if not isinstance(result, dict) or not result.get("success") or not isinstance(result.get("data"), list):
        raise UpstreamServiceError("No estimates data found")
    return result["data"]


@dataclass
class DivisionSummary:
    total: int
    empty: int = 0
    counts: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def unique(self) -> int:
        return len(self.counts) + (1 if self.empty else 0)

    def percentage(self, count: int) -> float:
        return (count / self.total) * 100 if self.total else 0.0


def summarize_divisions(estimates: Sequence[Mapping[str, Any]]) -> DivisionSummary:
    """Count trimmed division values; ties keep first-seen order."""
    counter: Counter = Counter()
    empty = 0
    for estimate in estimates:
        raw = estimate.get("division")
        division = str(raw).strip() if raw else ""
        if division:
            counter[division] += 1
        else:
            empty += 1

    # Counter.most_common is stable for equal counts (insertion order)
    return DivisionSummary(total=len(estimates), empty=empty, counts=counter.most_common())


def format_report(summary: DivisionSummary) -> List[str]:
    def row(label: str, count: int) -> str:
        pct = f"{summary.percentage(count):.1f}"
        return f"{label:<50} | Count: {count:>6} | {pct:>5}%"

    lines = ["All Unique Division Values:", "", "=" * 80]
    if summary.empty:
        lines.append(row(EMPTY_LABEL, summary.empty))
    lines.extend(row(division, count) for division, count in summary.counts)
    lines.append("=" * 80)
    lines.append("")
    lines.append(f"Total unique divisions: {summary.unique}")
    lines.append(f"Total estimates: {summary.total}")
    return lines


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="List distinct estimate divisions with counts")
    parser.parse_args(argv)

    base_url = base_url_from_env()
    print(f"Fetching estimates from {base_url}{ESTIMATES_PATH}...\n")
    try:
        estimates = fetch_estimates(base_url)
    except UpstreamServiceError as exc:
        print(f"Error listing divisions: {exc.message}", file=sys.stderr)
        return 1

    print(f"Total estimates: {len(estimates)}\n")
    for line in format_report(summarize_divisions(estimates)):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
