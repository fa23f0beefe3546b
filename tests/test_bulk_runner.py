"""Tests for the I'm Feeling Lucky bulk runner"""

import pytest
from pydantic import ValidationError

from noirplan.llm import ProviderError
from noirplan.models import Stage
from noirplan.orchestrator import BulkRunError, LuckyConfig, SlotBusyError
from conftest import CONCEPT, TIMELINE


@pytest.mark.asyncio
async def test_lucky_builds_everything(session, store, provider):
    """Test a full run fills every stage and lands on the print stage"""
    events = []

    mystery = await session.lucky.run(
        LuckyConfig(theme="Gothic", location="A manor", num_guests=3),
        lambda stage, message: events.append(stage)
    )

    assert mystery.title == CONCEPT["title"]
    assert len(mystery.characters) == 3
    assert mystery.killer is not None
    assert mystery.saboteur is not None
    assert mystery.timeline == TIMELINE
    assert len(mystery.clues) == 6
    assert mystery.all_fleshed
    assert mystery.consistency_report is not None
    assert store.stage == Stage.OUTPUT

    kinds = [call["kind"] for call in provider.calls]
    assert kinds[:4] == ["concept", "casting", "timeline", "clues"]
    assert kinds[4:7] == ["dossier"] * 3
    assert sorted(kinds[7:]) == ["audit", "coverage"]

    stages_reported = list(dict.fromkeys(events))
    assert stages_reported == [
        Stage.CONCEPT, Stage.CASTING, Stage.TIMELINE, Stage.CLUES,
        Stage.DOSSIERS, Stage.AUDIT, Stage.OUTPUT,
    ]


@pytest.mark.asyncio
async def test_lucky_can_skip_audit(session, provider):
    """Test the audit step is optional"""
    mystery = await session.lucky.run(LuckyConfig(theme="Gothic", num_guests=3, run_audit=False))

    assert mystery.consistency_report is None
    assert provider.calls_for("audit") == []
    assert session.stage == Stage.OUTPUT


@pytest.mark.asyncio
async def test_lucky_stops_and_keeps_progress(session, store, provider):
    """Test a failing step stops the run with earlier commits intact"""
    provider.script("timeline", ProviderError("key revoked", status=403))

    with pytest.raises(BulkRunError) as exc_info:
        await session.lucky.run(LuckyConfig(theme="Gothic", num_guests=3))

    assert exc_info.value.stage == Stage.TIMELINE
    assert isinstance(exc_info.value.cause, ProviderError)

    mystery = store.get()
    assert mystery.title == CONCEPT["title"]
    assert len(mystery.characters) == 3
    assert mystery.timeline == ""
    assert store.stage == Stage.TIMELINE
    assert provider.calls_for("clues") == []


@pytest.mark.asyncio
async def test_lucky_dossier_failure_keeps_fleshed_characters(session, store, provider):
    """Test a failure inside the dossier loop keeps the dossiers written so far"""
    provider.script("dossier", provider.responses["dossier"], ProviderError("boom", status=400))

    with pytest.raises(BulkRunError) as exc_info:
        await session.lucky.run(LuckyConfig(theme="Gothic", num_guests=3))

    assert exc_info.value.stage == Stage.DOSSIERS
    assert [c.is_fleshed for c in store.get().characters] == [True, False, False]
    assert store.get().consistency_report is None


@pytest.mark.asyncio
async def test_lucky_respects_busy_slots(session, provider):
    """Test a run cannot start casting while a character job is outstanding"""
    with session.slots.characters.claim("c1"):
        with pytest.raises(BulkRunError) as exc_info:
            await session.lucky.run(LuckyConfig(theme="Gothic", num_guests=3))

    assert exc_info.value.stage == Stage.CASTING
    assert isinstance(exc_info.value.cause, SlotBusyError)


def test_lucky_config_validation():
    """Test the run inputs are validated"""
    with pytest.raises(ValidationError):
        LuckyConfig(theme="")
    with pytest.raises(ValidationError):
        LuckyConfig(theme="Gothic", num_guests=0)
