"""
LECRM Backend — Operator Script Tests
======================================

What:  Credential loading, key verification, division listing, and the two
       record-lookup scripts.
How:   Scripts are driven through their pure helpers and their main()
       functions; Supabase is replaced by the in-memory FakeSupabase builder
       and the estimates API by an httpx.MockTransport.

What we test:
    ✅ .env values never override the process environment; VITE_* fallbacks
    ✅ anon vs service_role classification, project binding, exit codes
    ✅ division counts, percentages, ordering and the empty bucket
    ✅ missing-estimate follow-up lookups run in order, one per miss
    ✅ record lookup strategies and per-query error reporting
"""

import base64
import json
import os

import httpx
import pytest
from supabase import PostgrestAPIError as APIError

from lecrm.exceptions import ConfigurationError, UpstreamServiceError
from lecrm.scripts import check_records, find_missing_records, list_divisions, verify_key
from lecrm.scripts.env import load_local_env, resolve_credentials


def make_token(claims: dict) -> str:
    def segment(data: dict) -> str:
        raw = json.dumps(data).encode()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    return f"{segment({'alg': 'HS256', 'typ': 'JWT'})}.{segment(claims)}.signature"


# ══════════════════════════════════════════════════════════════════════════
# Credential loading
# ══════════════════════════════════════════════════════════════════════════

class TestEnvLoading:

    def test_env_file_does_not_override_process_values(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://process.supabase.co")
        monkeypatch.delenv("LECRM_TEST_ONLY_VAR", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            "SUPABASE_URL=https://file.supabase.co\n"
            "LECRM_TEST_ONLY_VAR='quoted=value'\n"
        )

        assert load_local_env(env_file) is True
        assert os.environ["SUPABASE_URL"] == "https://process.supabase.co"
        assert os.environ["LECRM_TEST_ONLY_VAR"] == "quoted=value"

    def test_missing_env_file_is_ignored(self, tmp_path):
        assert load_local_env(tmp_path / ".env") is False

    def test_service_credentials_preferred(self):
        environ = {
            "SUPABASE_URL": "https://a.supabase.co",
            "SUPABASE_SERVICE_ROLE_KEY": "service",
            "VITE_SUPABASE_URL": "https://b.supabase.co",
            "VITE_SUPABASE_ANON_KEY": "anon",
        }
        assert resolve_credentials(environ) == ("https://a.supabase.co", "service")

    def test_vite_fallbacks(self):
        environ = {"VITE_SUPABASE_URL": "https://b.supabase.co", "VITE_SUPABASE_ANON_KEY": "anon"}
        assert resolve_credentials(environ) == ("https://b.supabase.co", "anon")

    def test_missing_credentials(self):
        with pytest.raises(ConfigurationError, match="SUPABASE_SERVICE_ROLE_KEY"):
            resolve_credentials({"SUPABASE_URL": "https://a.supabase.co"})


# ══════════════════════════════════════════════════════════════════════════
# lecrm-verify-key
# ══════════════════════════════════════════════════════════════════════════

class TestVerifyKey:

    @pytest.fixture(autouse=True)
    def no_project_url(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        for var in ("SUPABASE_URL", "VITE_SUPABASE_URL"):
            monkeypatch.delenv(var, raising=False)

    def test_decode_claims(self):
        token = make_token({"ref": "abcd", "role": "anon", "iss": "supabase"})
        assert verify_key.decode_claims(token) == {"ref": "abcd", "role": "anon", "iss": "supabase"}

    @pytest.mark.parametrize("token", ["not-a-jwt", "a.b", "a.!!!.c", "a..c"])
    def test_decode_rejects_garbage(self, token):
        with pytest.raises(verify_key.ValidationError):
            verify_key.decode_claims(token)

    def test_decode_rejects_non_object_payload(self):
        payload = base64.urlsafe_b64encode(b"[1, 2]").rstrip(b"=").decode()
        with pytest.raises(verify_key.ValidationError, match="not a JSON object"):
            verify_key.decode_claims(f"h.{payload}.s")

    @pytest.mark.parametrize(
        "role,kind",
        [
            ("anon", verify_key.KeyKind.ANONYMOUS),
            ("service_role", verify_key.KeyKind.PRIVILEGED),
            ("authenticated", verify_key.KeyKind.UNKNOWN),
            (None, verify_key.KeyKind.UNKNOWN),
        ],
    )
    def test_classification(self, role, kind):
        assert verify_key.KeyInfo({"role": role}).kind is kind

    def test_project_ref_from_url(self):
        assert verify_key.project_ref_from_url("https://abcd.supabase.co") == "abcd"
        assert verify_key.project_ref_from_url("http://localhost:54321") is None

    def test_service_role_prints_warning(self, capsys):
        token = make_token({"ref": "abcd", "role": "service_role", "iat": 1700000000})

        assert verify_key.main([token]) == 0

        out = capsys.readouterr().out
        assert "SERVICE ROLE" in out
        assert "WARNING" in out
        assert "abcd" in out

    def test_anon_has_no_warning(self, capsys):
        assert verify_key.main([make_token({"ref": "abcd", "role": "anon"})]) == 0

        out = capsys.readouterr().out
        assert "ANON key" in out
        assert "WARNING" not in out

    def test_project_binding_mismatch_reported(self, monkeypatch, capsys):
        monkeypatch.setenv("SUPABASE_URL", "https://other.supabase.co")

        verify_key.main([make_token({"ref": "abcd", "role": "anon"})])

        assert "does NOT match" in capsys.readouterr().out

    def test_project_binding_match_reported(self, monkeypatch, capsys):
        monkeypatch.setenv("SUPABASE_URL", "https://abcd.supabase.co")

        verify_key.main([make_token({"ref": "abcd", "role": "anon"})])

        assert "matches key ref 'abcd'" in capsys.readouterr().out

    def test_missing_argument_exits_1(self, capsys):
        assert verify_key.main([]) == 1
        assert "Usage" in capsys.readouterr().err

    def test_decode_failure_exits_1(self, capsys):
        assert verify_key.main(["garbage"]) == 1
        assert "Error" in capsys.readouterr().err


# ══════════════════════════════════════════════════════════════════════════
# lecrm-list-divisions
# ══════════════════════════════════════════════════════════════════════════

ESTIMATES = [
    {"division": "Maintenance"},
    {"division": " Maintenance "},
    {"division": "Construction"},
    {"division": "Maintenance"},
    {"division": ""},
    {"division": None},
    {},
    {"division": "Snow"},
]


def _mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestListDivisions:

    def test_base_url_defaults_to_localhost(self):
        assert list_divisions.base_url_from_env({}) == "http://localhost:3000"

    def test_base_url_from_vercel(self):
        assert list_divisions.base_url_from_env({"VERCEL_URL": "lecrm.vercel.app"}) == "https://lecrm.vercel.app"

    def test_summarize(self):
        summary = list_divisions.summarize_divisions(ESTIMATES)

        assert summary.total == 8
        assert summary.empty == 3
        assert summary.counts == [("Maintenance", 3), ("Construction", 1), ("Snow", 1)]
        assert summary.unique == 4

    def test_report_rows(self):
        lines = list_divisions.format_report(list_divisions.summarize_divisions(ESTIMATES))

        empty_row = next(line for line in lines if line.startswith("(empty/null)"))
        assert empty_row.endswith("| Count:      3 |  37.5%")
        maintenance = next(line for line in lines if line.startswith("Maintenance"))
        assert maintenance == f"{'Maintenance':<50} | Count:      3 |  37.5%"
        assert lines.index(empty_row) < lines.index(maintenance)
        assert "Total unique divisions: 4" in lines
        assert "Total estimates: 8" in lines

    def test_no_estimates(self):
        summary = list_divisions.summarize_divisions([])
        assert summary.unique == 0
        assert "Total estimates: 0" in list_divisions.format_report(summary)

    def test_fetch_estimates(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json={"success": True, "data": ESTIMATES})

        data = list_divisions.fetch_estimates("http://localhost:3000/", client=_mock_client(handler))

        assert data == ESTIMATES
        assert seen == ["http://localhost:3000/api/data/estimates"]

    def test_fetch_http_error(self):
        client = _mock_client(lambda request: httpx.Response(502))
        with pytest.raises(UpstreamServiceError, match="Failed to fetch estimates: Bad Gateway"):
            list_divisions.fetch_estimates("http://localhost:3000", client=client)

    def test_fetch_unsuccessful_payload(self):
        client = _mock_client(lambda request: httpx.Response(200, json={"success": False}))
        with pytest.raises(UpstreamServiceError, match="No estimates data found"):
            list_divisions.fetch_estimates("http://localhost:3000", client=client)

    def test_fetch_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamServiceError, match="refused"):
            list_divisions.fetch_estimates("http://localhost:3000", client=_mock_client(handler))

    def test_main_reports_failure(self, monkeypatch, capsys):
        def failing(base_url):
            raise UpstreamServiceError("Failed to fetch estimates: Not Found")

        monkeypatch.setattr(list_divisions, "fetch_estimates", failing)

        assert list_divisions.main([]) == 1
        assert "Not Found" in capsys.readouterr().err

    def test_main_prints_table(self, monkeypatch, capsys):
        monkeypatch.setattr(list_divisions, "fetch_estimates", lambda base_url: ESTIMATES)

        assert list_divisions.main([]) == 0
        assert "Total unique divisions: 4" in capsys.readouterr().out


# ══════════════════════════════════════════════════════════════════════════
# lecrm-find-missing
# ══════════════════════════════════════════════════════════════════════════

ACCOUNT = "lmn-account-1"
ESTIMATE_ROWS = [
    {"id": "e1", "estimate_number": "EST1", "lmn_estimate_id": None, "archived": False, "account_id": ACCOUNT},
    {"id": "e2", "estimate_number": None, "lmn_estimate_id": "est2", "archived": False, "account_id": ACCOUNT},
    {"id": "e3", "estimate_number": "EST3", "lmn_estimate_id": "EST3", "archived": True, "account_id": ACCOUNT},
    {"id": "e4", "estimate_number": "EST4", "lmn_estimate_id": None, "archived": False, "account_id": "other"},
]


class TestFindMissingRecords:

    def test_match_is_case_insensitive_on_both_columns(self):
        assert find_missing_records.match_estimate(ESTIMATE_ROWS, "est1")["id"] == "e1"
        assert find_missing_records.match_estimate(ESTIMATE_ROWS, "EST2")["id"] == "e2"
        assert find_missing_records.match_estimate(ESTIMATE_ROWS, "EST9") is None

    def test_check_estimates(self, fake_supabase):
        client = fake_supabase({"estimates": ESTIMATE_ROWS})

        checks = find_missing_records.check_estimates(client, ACCOUNT, ["EST1", "EST2", "EST3", "EST4"])

        assert [c.found for c in checks] == [True, True, False, False]
        assert [row["id"] for row in checks[2].excluded] == ["e3"]
        assert checks[2].excluded[0]["archived"] is True
        # EST4 exists, but only for another account
        assert checks[3].excluded == []

    def test_follow_up_lookups_run_in_order_after_the_active_fetch(self, fake_supabase):
        client = fake_supabase({"estimates": ESTIMATE_ROWS})

        find_missing_records.check_estimates(client, ACCOUNT, ["EST9", "EST1", "EST3"])

        _, first_query = client.queries[0]
        assert ("archived", False) in first_query.eq_calls
        follow_ups = [q.or_expr for _, q in client.queries[1:]]
        assert follow_ups == [
            "estimate_number.eq.EST9,lmn_estimate_id.eq.EST9",
            "estimate_number.eq.EST3,lmn_estimate_id.eq.EST3",
        ]

    def test_format(self):
        found = find_missing_records.EstimateCheck("EST1", match={"archived": False})
        archived = find_missing_records.EstimateCheck("EST3", excluded=[{"id": "e3", "archived": True}])
        absent = find_missing_records.EstimateCheck("EST9")

        assert find_missing_records.format_check(found)[0].startswith("FOUND")
        assert "But exists as archived: True" in find_missing_records.format_check(archived)[1]
        assert "No estimate" in find_missing_records.format_check(absent)[1]

    def test_main(self, monkeypatch, fake_supabase, capsys):
        client = fake_supabase({"estimates": ESTIMATE_ROWS})
        monkeypatch.setattr(find_missing_records, "connect", lambda: client)

        assert find_missing_records.main(["--account-id", ACCOUNT, "EST1", "EST3"]) == 0

        out = capsys.readouterr().out
        assert out.index("EST1") < out.index("EST3")
        assert "1 found, 1 missing" in out

    def test_main_query_error_exits_1(self, monkeypatch, fake_supabase, capsys):
        def fail(column, value):
            return APIError({"message": "permission denied for table estimates", "code": "42501"})

        monkeypatch.setattr(find_missing_records, "connect", lambda: fake_supabase({}, fail=fail))

        assert find_missing_records.main(["EST1"]) == 1
        assert "permission denied" in capsys.readouterr().err

    def test_main_without_credentials_exits_1(self, monkeypatch, capsys):
        def no_credentials():
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        monkeypatch.setattr(find_missing_records, "connect", no_credentials)

        assert find_missing_records.main([]) == 1
        assert "SUPABASE_URL" in capsys.readouterr().err


# ══════════════════════════════════════════════════════════════════════════
# lecrm-check-records
# ══════════════════════════════════════════════════════════════════════════

class TestCheckRecords:

    def test_estimate_lookups_cover_columns_and_spellings(self):
        lookups = check_records.estimate_lookups("Est5")

        assert lookups[:3] == [
            ("lmn_estimate_id", "Est5"),
            ("lmn_estimate_id", "EST5"),
            ("lmn_estimate_id", "est5"),
        ]
        assert ("estimate_number", "EST5") in lookups
        assert ("id", "lmn-estimate-est5") in lookups
        assert len(lookups) == 9

    def test_estimate_lookups_deduplicate(self):
        assert len(check_records.estimate_lookups("EST5")) == 6

    def test_jobsite_lookups(self):
        assert check_records.jobsite_lookups("7695461") == [
            ("lmn_jobsite_id", "7695461"),
            ("lmn_jobsite_id", 7695461),
            ("id", "lmn-jobsite-7695461"),
        ]

    def test_find_record_stops_at_first_hit(self, fake_supabase):
        client = fake_supabase({"jobsites": [{"id": "lmn-jobsite-42", "lmn_jobsite_id": 42}]})

        result = check_records.find_record(
            client, "jobsites", check_records.JOBSITE_COLUMNS, "42", check_records.jobsite_lookups("42")
        )

        assert result.found
        assert result.lookup == ("lmn_jobsite_id", 42)
        assert len(client.queries) == 2

    def test_find_record_reports_errors_and_continues(self, fake_supabase):
        def fail(column, value):
            if column == "lmn_jobsite_id" and isinstance(value, str):
                return APIError({"message": "invalid input syntax", "code": "22P02"})
            return None

        client = fake_supabase({"jobsites": [{"id": "lmn-jobsite-7", "lmn_jobsite_id": 99}]}, fail=fail)

        result = check_records.find_record(
            client, "jobsites", check_records.JOBSITE_COLUMNS, "7", check_records.jobsite_lookups("7")
        )

        assert result.found
        assert result.lookup == ("id", "lmn-jobsite-7")
        assert result.errors == ["Error querying lmn_jobsite_id=7: invalid input syntax"]

    def test_not_found(self, fake_supabase):
        client = fake_supabase({"estimates": []})

        result = check_records.find_record(
            client, "estimates", check_records.ESTIMATE_COLUMNS, "EST1", check_records.estimate_lookups("EST1")
        )

        assert not result.found
        assert check_records.format_result(result) == ["  NOT FOUND: EST1"]

    def test_main(self, monkeypatch, fake_supabase, capsys):
        client = fake_supabase({
            "estimates": [{"id": "x", "estimate_number": "EST1"}],
            "jobsites": [],
        })
        monkeypatch.setattr(check_records, "connect", lambda: client)

        assert check_records.main(["--estimates", "EST1", "--jobsites", "5"]) == 0

        out = capsys.readouterr().out
        assert "FOUND: EST1" in out
        assert "NOT FOUND: 5" in out
        assert "1 record(s) not found." in out
