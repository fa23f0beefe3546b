"""Per-entity regeneration and manual cast edits"""

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

from noirplan.agents import CastingAgent, DossierAgent
from noirplan.llm import GenerationGateway
from noirplan.memory import DocumentStore
from noirplan.models import Character, CharacterInfo, Gender, Mystery, Stage
from .errors import EntityNotFoundError
from .slots import TaskSlots
from .workflow import StageWorkflow

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_SUSPECTS = 12

ProgressCallback = Callable[[int, int, Character], None]
Sleep = Callable[[float], Awaitable[Any]]


def new_entity_id() -> str:
    return uuid.uuid4().hex[:9]


def with_unique_ids(items: Sequence[T]) -> List[T]:
    """Copy items, replacing empty or repeated ids with fresh ones"""
    seen = set()
    result = []
    for item in items:
        item_id = getattr(item, "id", "")
        if not item_id or item_id in seen:
            item_id = new_entity_id()
            while item_id in seen:
                item_id = new_entity_id()
            item = item.model_copy(update={"id": item_id})
        seen.add(item_id)
        result.append(item)
    return result


def replace_by_id(items: Sequence[T], updated: T, collection: str = "characters") -> List[T]:
    """
    Replace the element sharing ``updated``'s id.

    Every other element is carried over as the same object.

    Raises:
        EntityNotFoundError: If no element has that id
    """
    result = []
    found = False
    for item in items:
        if item.id == updated.id:
            result.append(updated)
            found = True
        else:
            result.append(item)

    if not found:
        raise EntityNotFoundError(collection, updated.id)
    return result


class CharacterRegenerator:
    """
    Gateway-backed regeneration of single characters.

    Every result is merged into the character list as it stands at commit
    time, never into the snapshot that was read before the call.
    """

    def __init__(
        self,
        store: DocumentStore,
        gateway: GenerationGateway,
        slots: Optional[TaskSlots] = None,
        workflow: Optional[StageWorkflow] = None,
        enforce_preconditions: bool = True,
        spacing_seconds: float = 1.0,
        sleep: Optional[Sleep] = None
    ):
        self.store = store
        self.slots = slots or TaskSlots()
        self.workflow = workflow or StageWorkflow()
        self.enforce_preconditions = enforce_preconditions
        self.spacing_seconds = spacing_seconds
        self.sleep = sleep or asyncio.sleep

        self.dossier_agent = DossierAgent(gateway)
        self.casting_agent = CastingAgent(gateway)

    def _lookup(self, mystery: Mystery, character_id: str) -> Character:
        character = mystery.get_character(character_id)
        if character is None:
            raise EntityNotFoundError("characters", character_id)
        return character

    def _commit(self, updated: Character) -> Mystery:
        current = self.store.get().characters
        return self.store.update({"characters": replace_by_id(current, updated)})

    async def _write_dossier(self, character_id: str) -> Mystery:
        mystery = self.store.get()
        character = self._lookup(mystery, character_id)
        self.workflow.require(Stage.DOSSIERS, mystery, self.enforce_preconditions)

        content = await self.dossier_agent.execute({
            "character": character,
            "is_killer": character.id == mystery.killer_id,
            "is_saboteur": character.id == mystery.saboteur_id,
            "mystery": mystery,
            "roster": mystery.characters,
        })

        latest = self._lookup(self.store.get(), character_id)
        fleshed = Character.model_validate({
            **latest.model_dump(),
            **content.model_dump(),
            "is_fleshed": True,
        })

        logger.info(f"Dossier written for {fleshed.name}")
        return self._commit(fleshed)

    async def regenerate_dossier(self, character_id: str) -> Mystery:
        """Flesh out (or re-flesh) one character's dossier"""
        with self.slots.characters.claim(character_id):
            return await self._write_dossier(character_id)

    async def recast_one(self, character_id: str) -> Mystery:
        """
        Replace one suspect with a brand new persona.

        The id is kept so role assignments still point at the slot; narrative
        fields and the fleshed flag are reset.
        """
        with self.slots.characters.claim(character_id):
            mystery = self.store.get()
            character = self._lookup(mystery, character_id)

            member = await self.casting_agent.recast({
                "character": character,
                "others": [c for c in mystery.characters if c.id != character_id],
                "incident": mystery.core_story,
                "parties": mystery.general_parties,
            })

            skeleton = Character(
                id=character_id,
                name=member.name,
                gender=member.gender,
                archetype=member.archetype,
                initial_motive=member.initial_motive,
            )

            logger.info(f"Recast {character.name} as {skeleton.name}")
            return self._commit(skeleton)

    async def flesh_all(self, on_progress: Optional[ProgressCallback] = None) -> Mystery:
        """
        Write every missing dossier, one character at a time.

        Already-fleshed characters are skipped. Each dossier is committed as
        soon as it arrives and calls are spaced by ``spacing_seconds``. The
        first failure stops the loop and propagates; dossiers committed
        before it stay.

        Args:
            on_progress: Called with (done, total, character) after each commit
        """
        with self.slots.characters.claim("flesh_all"):
            pending = [c.id for c in self.store.get().characters if not c.is_fleshed]
            total = len(pending)
            logger.info(f"Fleshing {total} dossiers")

            mystery = self.store.get()
            for index, character_id in enumerate(pending):
                if index > 0 and self.spacing_seconds > 0:
                    await self.sleep(self.spacing_seconds)

                try:
                    mystery = await self._write_dossier(character_id)
                except Exception as e:
                    logger.error(f"Dossier run stopped at {index + 1}/{total}: {e}")
                    raise

                if on_progress:
                    on_progress(index + 1, total, mystery.get_character(character_id))

            return mystery


class CastEditor:
    """Manual cast edits; no gateway involved"""

    EDITABLE_FIELDS = {
        "name", "archetype", "initial_motive", "pre_game_blurb", "background",
        "relationships", "connection_to_victim", "secrets", "round1", "round2",
    }

    def __init__(self, store: DocumentStore):
        self.store = store

    def _apply(self, character_id: str, changes: dict) -> Mystery:
        mystery = self.store.get()
        character = mystery.get_character(character_id)
        if character is None:
            raise EntityNotFoundError("characters", character_id)

        edited = Character.model_validate({**character.model_dump(), **changes})
        return self.store.update({"characters": replace_by_id(mystery.characters, edited)})

    def rename(self, character_id: str, name: str) -> Mystery:
        return self._apply(character_id, {"name": name})

    def edit(self, character_id: str, **changes) -> Mystery:
        unknown = set(changes) - self.EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {sorted(unknown)}")
        for key in ("round1", "round2"):
            if isinstance(changes.get(key), CharacterInfo):
                changes[key] = changes[key].model_dump()
        return self._apply(character_id, changes)

    def toggle_gender(self, character_id: str) -> Mystery:
        character = self.store.get().get_character(character_id)
        if character is None:
            raise EntityNotFoundError("characters", character_id)
        return self._apply(character_id, {"gender": character.gender.toggled()})

    def add_blank(self) -> Mystery:
        """Append an empty suspect for the host to fill in"""
        characters = self.store.get().characters
        if len(characters) >= MAX_SUSPECTS:
            raise ValueError(f"A game supports at most {MAX_SUSPECTS} suspects")

        existing = {c.id for c in characters}
        character_id = new_entity_id()
        while character_id in existing:
            character_id = new_entity_id()

        blank = Character(
            id=character_id,
            name="New Suspect",
            gender=Gender.FEMALE,
            archetype="The Outsider",
            initial_motive="Unknown...",
        )
        return self.store.update({"characters": [*characters, blank]})

    def remove(self, character_id: str) -> Mystery:
        mystery = self.store.get()
        if mystery.get_character(character_id) is None:
            raise EntityNotFoundError("characters", character_id)

        for role, role_id in (("killer", mystery.killer_id), ("saboteur", mystery.saboteur_id)):
            if role_id == character_id:
                logger.warning(f"Removed suspect {character_id} was the {role}; reassign roles")

        return self.store.update({
            "characters": [c for c in mystery.characters if c.id != character_id]
        })
