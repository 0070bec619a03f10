"""
Inspect a Supabase API key.

Decodes the key's JWT claims (without verifying the signature), prints the
project reference and role, says whether the key is the public anon key or
the privileged service role key, and checks that the key belongs to the
configured project URL when one is set.

Usage:
    lecrm-verify-key <token>

Exit codes: 0 on success, 1 when the token is missing or cannot be decoded.
"""

import argparse
import base64
import binascii
import enum
import json
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

from lecrm.exceptions import ValidationError
from lecrm.scripts.env import load_local_env, resolve_project_url


class KeyKind(str, enum.Enum):
    ANONYMOUS = "anonymous"
    PRIVILEGED = "privileged"
    UNKNOWN = "unknown"


ROLE_KINDS = {
    "anon": KeyKind.ANONYMOUS,
    "service_role": KeyKind.PRIVILEGED,
}

KIND_LABELS = {
    KeyKind.ANONYMOUS: "ANON key (public, safe for browser use with RLS)",
    KeyKind.PRIVILEGED: "SERVICE ROLE key (privileged, bypasses RLS)",
    KeyKind.UNKNOWN: "Unrecognised role",
}


@dataclass(frozen=True)
class KeyInfo:
    claims: Dict[str, Any]

    @property
    def role(self) -> Optional[str]:
        return self.claims.get("role")

    @property
    def project_ref(self) -> Optional[str]:
        return self.claims.get("ref")

    @property
    def kind(self) -> KeyKind:
        return ROLE_KINDS.get(self.role or "", KeyKind.UNKNOWN)


def _b64url_decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def decode_claims(token: str) -> Dict[str, Any]:
    """
    Return the payload claims of a JWT.

    Raises:
        ValidationError: The token is not three dot-separated segments or the
            payload is not base64url-encoded JSON object.
    """
    parts = token.strip().split(".")
    if len(parts) != 3 or not parts[1]:
        raise ValidationError("Token is not a JWT (expected header.payload.signature)")
    try:
        claims = json.loads(_b64url_decode(parts[1]))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise ValidationError(f"Could not decode token payload: {exc}") from exc
    if not isinstance(claims, dict):
        raise ValidationError("Token payload is not a JSON object")
    return claims


def project_ref_from_url(project_url: str) -> Optional[str]:
    """`https://abcd.supabase.co` → `abcd`; None for custom or local hosts."""
    host = urlparse(project_url).hostname or ""
    if host.endswith(".supabase.co"):
        return host.split(".", 1)[0]
    return None


def _format_timestamp(value: Any) -> str:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
    return "n/a"


def build_report(info: KeyInfo, project_url: Optional[str] = None) -> List[str]:
    claims = info.claims
    lines = [
        "Supabase key details",
        "=" * 60,
        f"  Project ref: {info.project_ref or 'n/a'}",
        f"  Role:        {info.role or 'n/a'}",
        f"  Issuer:      {claims.get('iss', 'n/a')}",
        f"  Issued at:   {_format_timestamp(claims.get('iat'))}",
        f"  Expires at:  {_format_timestamp(claims.get('exp'))}",
        f"  Key type:    {KIND_LABELS[info.kind]}",
    ]

    if info.kind is KeyKind.PRIVILEGED:
        lines.append("")
        lines.append("WARNING: this is a privileged service role key.")
        lines.append("         Keep it server-side only; never expose it in frontend code.")

    if project_url:
        expected = project_ref_from_url(project_url)
        lines.append("")
        if expected is None:
            lines.append(f"  Project URL: {project_url} (cannot derive project ref, not checked)")
        elif expected == info.project_ref:
            lines.append(f"  Project URL: {project_url} matches key ref '{expected}'")
        else:
            lines.append(
                f"  Project URL: {project_url} does NOT match key ref "
                f"'{info.project_ref}' (expected '{expected}')"
            )
    return lines


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Decode and classify a Supabase API key")
    parser.add_argument("token", nargs="?", help="JWT API key to inspect")
    args = parser.parse_args(argv)

    if not args.token:
        print("Usage: lecrm-verify-key <token>", file=sys.stderr)
        return 1

    try:
        info = KeyInfo(decode_claims(args.token))
    except ValidationError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    load_local_env()
    for line in build_report(info, resolve_project_url()):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
