"""Tests for the audit-and-patch loop"""

import asyncio
import json

import pytest

from noirplan.llm import MalformedResponseError, ProviderError
from noirplan.models import AuditVerdict, IssueDraft
from noirplan.orchestrator import EntityNotFoundError, SlotBusyError, StagePreconditionError
from noirplan.orchestrator.audit_loop import build_report
from conftest import AUDIT, COVERAGE, TIMELINE


@pytest.mark.asyncio
async def test_audit_commits_report_and_beats(session, cast_store, provider):
    """Test a successful audit stores the report and the beats together"""
    mystery = await session.audit.run_audit()

    report = mystery.consistency_report
    assert report.is_valid is False
    assert [issue.id for issue in report.issues] == ["T1", "T2"]
    assert all(not issue.fixed for issue in report.issues)
    assert report.notes == AUDIT["notes"]
    assert [beat.beat_name for beat in mystery.beats] == [b["beat_name"] for b in COVERAGE["beats"]]

    assert len(provider.calls_for("audit")) == 1
    assert len(provider.calls_for("coverage")) == 1
    assert not session.slots.issues.busy


@pytest.mark.asyncio
async def test_audit_digest_lists_round_one_disclosures(session, cast_store, provider):
    """Test the auditor sees names, round 1 info, timeline and clue names"""
    await session.regenerator.regenerate_dossier("c1")

    await session.audit.run_audit()

    prompt = provider.calls_for("audit")[0]["messages"][1].content
    assert "SUSPECT: Lady Ashby" in prompt
    assert "You left the sleeping draught beside his brandy." in prompt
    assert "8:15 PM - Lord Ashby retires to the library." in prompt
    assert "Clue 1" in prompt


@pytest.mark.asyncio
@pytest.mark.parametrize("failing_kind", ["audit", "coverage"])
async def test_audit_is_all_or_nothing(session, cast_store, provider, failing_kind):
    """Test either half failing commits neither"""
    provider.script(failing_kind, ProviderError("denied", status=401))
    before = cast_store.get()

    with pytest.raises(ProviderError):
        await session.audit.run_audit()

    assert cast_store.get() is before
    assert cast_store.get().consistency_report is None
    assert cast_store.get().beats == []
    assert not session.slots.issues.busy


@pytest.mark.asyncio
async def test_failed_audit_cancels_coverage_call(session, cast_store, provider):
    """Test the coverage call is stopped before the issues slot is released"""
    outcome = {}

    async def slow_coverage():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            outcome["cancelled"] = True
            raise
        outcome["finished"] = True
        return json.dumps(COVERAGE)

    provider.script("audit", ProviderError("key revoked", status=403))
    provider.script("coverage", slow_coverage)

    with pytest.raises(ProviderError):
        await session.audit.run_audit()

    assert outcome == {"cancelled": True}
    assert not session.slots.issues.busy
    assert cast_store.get().beats == []


@pytest.mark.asyncio
async def test_malformed_audit_commits_nothing(session, cast_store, provider):
    """Test a response outside the schema leaves the document alone"""
    provider.script("audit", json.dumps({"issues": "none"}))

    with pytest.raises(MalformedResponseError):
        await session.audit.run_audit()

    assert cast_store.get().consistency_report is None


@pytest.mark.asyncio
async def test_audit_needs_a_cast(session, provider):
    """Test auditing an empty document is refused"""
    with pytest.raises(StagePreconditionError):
        await session.audit.run_audit()
    assert provider.calls == []


def test_issue_ids_are_normalized():
    """Test missing and repeated issue ids are replaced"""
    verdict = AuditVerdict(
        is_valid=False,
        issues=[
            IssueDraft(id="A", description="one"),
            IssueDraft(id="A", description="two"),
            IssueDraft(description="three"),
        ],
    )

    report = build_report(verdict)

    ids = [issue.id for issue in report.issues]
    assert ids[0] == "A"
    assert len(set(ids)) == 3
    assert all(ids)


@pytest.mark.asyncio
async def test_resolve_issue_scenario(session, cast_store, provider):
    """Test resolving T2 patches the timeline, marks only T2 and appends to notes"""
    await session.audit.run_audit()
    before = cast_store.get().consistency_report
    untouched = before.get_issue("T1")

    mystery = await session.audit.resolve_issue("T2")

    report = mystery.consistency_report
    assert mystery.timeline == "Revised timeline T2"
    assert report.get_issue("T2").fixed is True
    assert report.get_issue("T2").suggestion == "S"
    assert report.get_issue("T1") is untouched
    assert report.get_issue("T1").fixed is False
    assert report.notes == f"{AUDIT['notes']}\n(Fixed: S)"

    prompt = provider.calls_for("resolve")[0]["messages"][1].content
    assert AUDIT["issues"][1]["description"] in prompt
    assert TIMELINE in prompt


@pytest.mark.asyncio
async def test_notes_are_append_only(session, cast_store, provider):
    """Test successive fixes keep every earlier note"""
    provider.script(
        "resolve",
        json.dumps({"timeline": "v2", "summary": "Moved the Colonel"}),
        json.dumps({"timeline": "v3", "summary": "Added a witness"}),
    )
    await session.audit.run_audit()

    await session.audit.resolve_issue("T1")
    mystery = await session.audit.resolve_issue("T2")

    assert mystery.consistency_report.notes == (
        f"{AUDIT['notes']}\n(Fixed: Moved the Colonel)\n(Fixed: Added a witness)"
    )
    assert mystery.timeline == "v3"
    assert mystery.consistency_report.open_issues == []


@pytest.mark.asyncio
async def test_failed_resolve_changes_nothing(session, cast_store, provider):
    """Test a failed patch leaves timeline and report as they were"""
    await session.audit.run_audit()
    before = cast_store.get()
    provider.script("resolve", ProviderError("bad key", status=403))

    with pytest.raises(ProviderError):
        await session.audit.resolve_issue("T1")

    assert cast_store.get() is before
    assert not session.slots.issues.busy


@pytest.mark.asyncio
async def test_resolve_requires_report_and_known_issue(session, cast_store, provider):
    """Test resolving without a report or with an unknown id fails fast"""
    with pytest.raises(ValueError):
        await session.audit.resolve_issue("T1")

    await session.audit.run_audit()
    with pytest.raises(EntityNotFoundError):
        await session.audit.resolve_issue("T9")

    assert provider.calls_for("resolve") == []


@pytest.mark.asyncio
async def test_one_resolution_at_a_time(session, cast_store, provider):
    """Test a resolve is refused while another issue is being fixed"""
    await session.audit.run_audit()

    with session.slots.issues.claim("T1"):
        with pytest.raises(SlotBusyError) as exc_info:
            await session.audit.resolve_issue("T2")

    assert exc_info.value.holder == "T1"
    assert provider.calls_for("resolve") == []
