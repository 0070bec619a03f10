"""
Operator diagnostics, installed as console scripts.

    lecrm-verify-key       decode a Supabase key, classify anon vs service role
    lecrm-find-missing     explain why estimates are missing from an account
    lecrm-list-divisions   distinct estimate divisions with counts
    lecrm-check-records    look up specific estimates/jobsites several ways

Each prints to stdout, reports errors on stderr and returns a process exit code.
"""
