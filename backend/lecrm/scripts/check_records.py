"""
Check whether specific estimates and jobsites exist in the database.

Imported identifiers don't always land in the same column or case, so each
ID is tried against several lookups in order (column × spelling) and the
first one that returns a row is reported. A failed lookup is printed and
the next one is tried.

Usage:
    lecrm-check-records [--estimates ID ...] [--jobsites ID ...]
"""

import argparse
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from supabase import Client

from lecrm.exceptions import ConfigurationError, UpstreamServiceError
from lecrm.scripts.db import connect, fetch_rows

DEFAULT_ESTIMATE_IDS = ("EST5703935", "EST5685587", "EST5492985", "EST5230771", "EST5230791")
DEFAULT_JOBSITE_IDS = (
    "7695461", "8526852", "3730678", "9703450", "9618131", "9906807",
    "6347524", "3948460", "5567721", "9471049", "7450257", "8561379",
    "9814225", "5246186", "6148702", "8629924", "8629925", "8700630",
)

ESTIMATE_COLUMNS = "id, lmn_estimate_id, estimate_number, account_id, status, total_price, created_at"
JOBSITE_COLUMNS = "id, lmn_jobsite_id, name, account_id, created_at"

Lookup = Tuple[str, Any]


def _dedupe(lookups: List[Lookup]) -> List[Lookup]:
    seen = set()
    unique = []
    for lookup in lookups:
        key = (lookup[0], type(lookup[1]), lookup[1])
        if key not in seen:
            seen.add(key)
            unique.append(lookup)
    return unique


def estimate_lookups(estimate_id: str) -> List[Lookup]:
    spellings = [estimate_id, estimate_id.upper(), estimate_id.lower()]
    lookups = [("lmn_estimate_id", s) for s in spellings]
    lookups += [("estimate_number", s) for s in spellings]
    lookups += [("id", f"lmn-estimate-{s}") for s in spellings]
    return _dedupe(lookups)


def jobsite_lookups(jobsite_id: str) -> List[Lookup]:
    lookups: List[Lookup] = [("lmn_jobsite_id", str(jobsite_id))]
    if str(jobsite_id).isdigit():
        lookups.append(("lmn_jobsite_id", int(jobsite_id)))
    lookups.append(("id", f"lmn-jobsite-{jobsite_id}"))
    return _dedupe(lookups)


@dataclass
class RecordResult:
    record_id: str
    lookup: Optional[Lookup] = None
    row: Optional[Dict[str, Any]] = None
    errors: List[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.row is not None


def find_record(
    client: Client,
    table: str,
    columns: str,
    record_id: str,
    lookups: Sequence[Lookup],
) -> RecordResult:
    result = RecordResult(record_id)
    for column, value in lookups:
        query = client.table(table).select(columns).eq(column, value).limit(1)
        try:
            rows = fetch_rows(query, f"{column}={value}")
        except UpstreamServiceError as exc:
            result.errors.append(exc.message)
            continue
        if rows:
            result.lookup = (column, value)
            result.row = rows[0]
            break
    return result


def format_result(result: RecordResult) -> List[str]:
    lines = [f"  Error: {error}" for error in result.errors]
    if result.found:
        column, value = result.lookup
        lines.append(f"  FOUND: {result.record_id}")
        lines.append(f"     Found using: {column} = {value!r}")
        lines.append(f"     Database record: {result.row}")
    else:
        lines.append(f"  NOT FOUND: {result.record_id}")
    return lines


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Check specific estimates and jobsites")
    parser.add_argument("--estimates", nargs="*", default=list(DEFAULT_ESTIMATE_IDS))
    parser.add_argument("--jobsites", nargs="*", default=list(DEFAULT_JOBSITE_IDS))
    args = parser.parse_args(argv)

    try:
        client = connect()
    except ConfigurationError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    sections = (
        ("CHECKING ESTIMATES", "estimates", ESTIMATE_COLUMNS, args.estimates, estimate_lookups),
        ("CHECKING JOBSITES", "jobsites", JOBSITE_COLUMNS, args.jobsites, jobsite_lookups),
    )
    missing = 0
    for title, table, columns, ids, make_lookups in sections:
        print("=" * 60)
        print(title)
        print("=" * 60)
        for record_id in ids:
            result = find_record(client, table, columns, record_id, make_lookups(record_id))
            missing += 0 if result.found else 1
            for line in format_result(result):
                print(line)
        print()

    print("=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print(f"{missing} record(s) not found.")
    print("If records exist but are not being matched, there may be a format mismatch.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
