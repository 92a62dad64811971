# src/toons_app/report.py
"""Plain text rendering of stored records and the stats report."""

import time
from typing import Iterable

from rich.console import Console

from toons_library.credential_store import CredentialRecord
from toons_library.error_handler import mask_credential
from toons_library.esi_client import TokenPair, VerifyResponse
from toons_library.stats_orchestrator import StatsReport


def _out(console: Console, line: str = "") -> None:
    console.print(line, markup=False, highlight=False, soft_wrap=True)


def render_list(console: Console, records: Iterable[CredentialRecord]) -> None:
    for record in records:
        _out(console, f"{record.name} :: {record.character_id}")


def render_record(console: Console, record: CredentialRecord) -> None:
    _out(console, f"Name:          {record.name}")
    _out(console, f"ID:            {record.character_id}")
    _out(console, f"Scopes:        {record.scopes}")
    _out(console, f"Refresh token: {mask_credential(record.refresh_token)}")


def render_refresh(
    console: Console,
    record: CredentialRecord,
    tokens: TokenPair,
    verify: VerifyResponse,
) -> None:
    rotated = tokens.refresh_token != record.refresh_token
    _out(console, "--- Refreshed ---")
    _out(console, f"Access token:  {mask_credential(tokens.access_token)}")
    _out(console, f"Expires in:    {max(0, int(tokens.expires_at - time.time()))}s")
    _out(
        console,
        f"Refresh token: {mask_credential(tokens.refresh_token)}"
        f" ({'rotated' if rotated else 'unchanged'})",
    )
    _out(console, f"Verified as:   {verify.character_name} :: {verify.character_id}")
    _out(console, f"Scopes:        {verify.scopes}")


def render_report(console: Console, report: StatsReport) -> None:
    _out(console, "--- Results ---")
    for stat in report.stats:
        _out(
            console,
            f"{stat.name}: {stat.total_points} points, {stat.extractions:.2f} extractions, "
            f"{1 if stat.is_training else 0} crop skill training, "
            f"{stat.queued_count} crop skills queued",
        )
    _out(console, "---")
    _out(console, f"Total available extractions: {report.total_extractions}")
