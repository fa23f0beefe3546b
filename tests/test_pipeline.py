"""Tests for the stage pipeline and stage navigation"""

import json
import random

import pytest

from noirplan.api import create_session
from noirplan.llm import ProviderError
from noirplan.memory import DocumentStore, InMemoryState
from noirplan.models import Character, Mystery, Stage
from noirplan.orchestrator import (
    EntityNotFoundError,
    MysterySession,
    PipelineSettings,
    StageGateError,
    StagePreconditionError,
    StageStatus,
    StageWorkflow,
)
from conftest import CAST, CONCEPT, TIMELINE


@pytest.mark.asyncio
async def test_concept_commits_story_without_roles(session, provider):
    """Test the concept stage fills the story fields and nothing about the killer"""
    mystery = await session.pipeline.generate_concept("Gothic", "Moorland manor", 5, "No guns")

    assert mystery.title == CONCEPT["title"]
    assert mystery.victim_name == CONCEPT["victim"]
    assert mystery.environment == CONCEPT["atmosphere"]
    assert mystery.core_story == CONCEPT["incident"]
    assert mystery.general_parties == CONCEPT["parties"]
    assert mystery.twist == CONCEPT["twist"]
    assert mystery.theme == "Gothic"
    assert mystery.num_guests == 5
    assert mystery.killer_id is None

    schema = provider.calls[0]["kwargs"]["response_schema"]
    assert not any("killer" in name for name in schema["properties"])


@pytest.mark.asyncio
async def test_refine_concept(session, provider):
    """Test refining revises the concept and a blank suggestion is a no-op"""
    await session.pipeline.generate_concept("Gothic")

    unchanged = await session.pipeline.refine_concept("   ")
    assert unchanged.title == CONCEPT["title"]
    assert provider.calls_for("refine_concept") == []

    refined = await session.pipeline.refine_concept("Make it darker")
    assert refined.title == "Death at Ravenscourt, Revised"
    assert refined.theme == "Gothic"
    assert "Make it darker" in provider.calls_for("refine_concept")[0]["messages"][1].content


@pytest.mark.asyncio
async def test_end_to_end_scenario(session, store):
    """Test concept, casting, timeline and clues each commit their fields"""
    await session.pipeline.generate_concept("Gothic", num_guests=3)

    mystery = await session.pipeline.cast_suspects()
    ids = [c.id for c in mystery.characters]
    assert ids == ["c1", "c2", "c3"]
    assert all(not c.is_fleshed and c.background == "" for c in mystery.characters)
    assert mystery.killer_id in ids
    assert mystery.saboteur_id in ids

    mystery = await session.pipeline.build_timeline()
    assert mystery.timeline == TIMELINE

    mystery = await session.pipeline.generate_clues("Scissors and a typewriter")
    assert mystery.clue_tools == "Scissors and a typewriter"
    assert 6 <= len(mystery.clues) <= 8

    assert store.get() is mystery
    assert session.status()[Stage.CLUES] == StageStatus.COMPLETED
    assert session.status()[Stage.DOSSIERS] == StageStatus.READY


@pytest.mark.asyncio
async def test_six_guest_game_end_to_end(session, store, provider):
    """Test a six-suspect game from concept through dossiers to the audit"""
    six = {
        "suspects": [
            {"id": f"s{i}", "name": f"Guest {i}", "gender": "female" if i % 2 else "male",
             "archetype": "The Guest", "initial_motive": "Money"}
            for i in range(1, 7)
        ]
    }
    provider.script("casting", json.dumps(six))

    await session.pipeline.generate_concept("Gothic", num_guests=6)
    mystery = await session.pipeline.cast_suspects()

    ids = [c.id for c in mystery.characters]
    assert len(ids) == 6
    assert len(set(ids)) == 6
    assert not any(c.is_fleshed for c in mystery.characters)
    assert mystery.killer_id in ids
    assert mystery.saboteur_id in ids

    mystery = await session.pipeline.build_timeline()
    assert mystery.killer.name in provider.calls_for("timeline")[0]["messages"][1].content

    mystery = await session.pipeline.generate_clues()
    assert 6 <= len(mystery.clues) <= 8

    mystery = await session.regenerator.flesh_all()
    assert mystery.all_fleshed
    assert [c.id for c in mystery.characters] == ids
    assert len(provider.calls_for("dossier")) == 6

    mystery = await session.audit.run_audit()
    assert isinstance(mystery.consistency_report.is_valid, bool)
    assert isinstance(mystery.consistency_report.issues, list)


@pytest.mark.asyncio
async def test_failed_stage_leaves_document_untouched(session, provider, store):
    """Test a terminal backend failure commits nothing"""
    await session.pipeline.generate_concept("Gothic")
    before = store.get()
    provider.script("casting", ProviderError("forbidden", status=403))

    with pytest.raises(ProviderError):
        await session.pipeline.cast_suspects()

    assert store.get() is before
    assert not session.slots.characters.busy


@pytest.mark.asyncio
async def test_missing_or_duplicate_cast_ids_are_replaced(session, provider):
    """Test backend ids are made unique and non-empty"""
    suspects = [dict(s) for s in CAST["suspects"]]
    suspects[1]["id"] = "c1"
    suspects[2]["id"] = ""
    provider.script("casting", json.dumps({"suspects": suspects}))
    await session.pipeline.generate_concept("Gothic")

    mystery = await session.pipeline.cast_suspects()

    ids = [c.id for c in mystery.characters]
    assert ids[0] == "c1"
    assert len(set(ids)) == 3
    assert all(ids)


@pytest.mark.asyncio
async def test_preconditions_block_out_of_order_stages(session, provider):
    """Test stages refuse to run on missing upstream data"""
    with pytest.raises(StagePreconditionError):
        await session.pipeline.cast_suspects()
    with pytest.raises(StagePreconditionError):
        await session.pipeline.build_timeline()
    with pytest.raises(StagePreconditionError):
        await session.pipeline.generate_clues()

    assert provider.calls == []


@pytest.mark.asyncio
async def test_preconditions_can_be_relaxed(store, gateway, provider, spacing_sleep):
    """Test disabled enforcement only warns"""
    session = MysterySession(
        store,
        gateway,
        PipelineSettings(enforce_preconditions=False),
        sleep=spacing_sleep
    )

    mystery = await session.pipeline.build_timeline()

    assert mystery.timeline == TIMELINE
    assert len(provider.calls_for("timeline")) == 1


def test_roles_may_coincide(store, gateway):
    """Test independent role picks can land on the same suspect"""
    store.update({"characters": [Character(id="solo", name="Only Guest")]})
    session = MysterySession(store, gateway)

    mystery = session.pipeline.assign_roles()

    assert mystery.killer_id == "solo"
    assert mystery.saboteur_id == "solo"


def test_distinct_roles_setting(store, gateway):
    """Test distinct_roles always picks two different suspects"""
    store.update({"characters": [Character(id=f"c{i}", name=f"Guest {i}") for i in range(4)]})
    session = MysterySession(
        store,
        gateway,
        PipelineSettings(distinct_roles=True),
        rng=random.Random(3)
    )

    for _ in range(20):
        mystery = session.pipeline.assign_roles()
        assert mystery.killer_id != mystery.saboteur_id


def test_assign_roles_without_cast(session):
    """Test roles cannot be assigned to an empty cast"""
    with pytest.raises(StagePreconditionError):
        session.pipeline.assign_roles()


def test_delete_clue(store, session):
    """Test deleting a clue keeps the others"""
    store.update({"clues": [{"id": "k1", "name": "A"}, {"id": "k2", "name": "B"}]})

    mystery = session.pipeline.delete_clue("k1")

    assert [c.id for c in mystery.clues] == ["k2"]
    with pytest.raises(EntityNotFoundError):
        session.pipeline.delete_clue("k1")


def test_navigation_gates(session, store):
    """Test advance refuses to leave a stage with empty required fields"""
    assert session.stage == Stage.CONCEPT

    with pytest.raises(StageGateError):
        session.advance()

    store.update({"core_story": "Poisoned brandy"})
    assert session.advance() == Stage.CASTING
    assert session.back() == Stage.CONCEPT
    assert session.back() == Stage.CONCEPT

    assert session.go_to(Stage.OUTPUT) == Stage.OUTPUT
    assert session.advance() == Stage.OUTPUT


def test_stage_cursor_persists(state, gateway):
    """Test the stage cursor survives a new session"""
    MysterySession(DocumentStore(state), gateway).go_to(Stage.AUDIT)

    assert MysterySession(DocumentStore(state), gateway).stage == Stage.AUDIT


def test_new_mystery(session, store):
    """Test starting over needs confirmation"""
    store.update({"title": "Old"})

    assert session.new_mystery(confirmed=True) == Mystery()
    assert store.get().title == ""


def test_status_on_empty_document():
    """Test a blank document blocks the generating stages after the concept"""
    statuses = StageWorkflow().status(Mystery())

    assert statuses[Stage.CONCEPT] == StageStatus.READY
    assert statuses[Stage.CASTING] == StageStatus.BLOCKED
    assert statuses[Stage.OUTPUT] == StageStatus.READY


def test_execution_order():
    """Test stages sort topologically in selector order"""
    assert StageWorkflow().get_execution_order() == list(Stage)


def test_create_session_from_config(provider):
    """Test the factory wires storage and pipeline settings from config"""
    session = create_session(
        {"storage": {"provider": "memory"}, "pipeline": {"distinct_roles": True}, "gateway": {"max_retries": 1}},
        llm_provider=provider
    )

    assert isinstance(session.store.state, InMemoryState)
    assert session.settings.distinct_roles is True
    assert session.settings.enforce_preconditions is True
    assert session.gateway.max_retries == 1
    assert session.regenerator.spacing_seconds == 1.0
