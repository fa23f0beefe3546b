"""Markdown export functionality"""

from pathlib import Path
from typing import List

from noirplan.models import Character, CharacterInfo, Mystery

HOST_INSTRUCTIONS = [
    "Distribute dossiers to guests upon arrival.",
    'Do NOT reveal the "Twist" (Round 2) information until mid-game.',
    'Ensure players understand they must share "Public" info but hide "Private" info unless questioned.',
]

PAGE_BREAK = '<div style="page-break-after: always;"></div>'


def _bullets(items: List[str]) -> List[str]:
    if not items:
        return ["_Nothing yet._"]
    return [f"- {item}" for item in items]


class MarkdownExporter:
    """Exports a mystery as a printable Markdown game kit"""

    def __init__(self, include_host_packet: bool = False):
        """
        Args:
            include_host_packet: Append the host-only truth (roles, clues, timeline)
        """
        self.include_host_packet = include_host_packet

    def export(self, mystery: Mystery) -> str:
        """
        Export mystery to Markdown format

        Args:
            mystery: Mystery to export

        Returns:
            Markdown string
        """
        lines = []

        # Cover page
        lines.append(f"# {mystery.title or 'Murder Mystery'}")
        lines.append("")
        lines.append('*A "Shot in the Dark" Mystery*')
        lines.append("")
        lines.append(f"**Designed for {len(mystery.characters)} Suspects**")
        lines.append("")
        lines.append("## Host Instructions")
        lines.append("")
        lines.extend(f"- {instruction}" for instruction in HOST_INSTRUCTIONS)
        lines.append("")
        lines.append(PAGE_BREAK)
        lines.append("")

        # One dossier per character, in cast order
        for number, character in enumerate(mystery.characters, 1):
            lines.extend(self._dossier(character, number))
            lines.append(PAGE_BREAK)
            lines.append("")

        if self.include_host_packet:
            lines.extend(self._host_packet(mystery))

        return "\n".join(lines)

    def _dossier(self, character: Character, number: int) -> List[str]:
        lines = [
            f"# {character.name}",
            "",
            f"*{character.archetype}*",
            "",
            f"**Dossier #{number}** (Confidential)",
            "",
            "### Pre-Game Invite Info (send to player beforehand)",
            "",
            f"> {character.pre_game_blurb}" if character.pre_game_blurb else "> _Not written yet._",
            "",
            "## Background & History",
            "",
            character.background,
            "",
            "### Relationships",
            "",
            character.relationships,
            "",
            "### Connection to Victim",
            "",
            character.connection_to_victim,
            "",
            "---",
            "",
        ]
        lines.extend(self._round("Round 1: The Murder", "Read this at the start of the party.", character.round1))
        lines.extend(self._round("Round 2: The Twist", "Read this only when the host announces the twist.", character.round2))
        return lines

    def _round(self, heading: str, hint: str, info: CharacterInfo) -> List[str]:
        lines = [f"## {heading}", "", f"*{hint}*", "", "### Public Knowledge", ""]
        lines.extend(_bullets(info.public_info))
        lines.extend(["", "### Private Secrets", ""])
        lines.extend(_bullets(info.private_info))
        lines.append("")
        return lines

    def _host_packet(self, mystery: Mystery) -> List[str]:
        killer = mystery.killer
        saboteur = mystery.saboteur

        lines = [
            "# Host Packet (do not distribute)",
            "",
            f"**Victim:** {mystery.victim_name}",
            "",
            "## The Incident",
            "",
            mystery.core_story,
            "",
            "## The Twist",
            "",
            mystery.twist,
            "",
            "## Roles",
            "",
            f"- **Killer:** {killer.name if killer else 'Unassigned'}",
            f"- **Saboteur:** {saboteur.name if saboteur else 'Unassigned'}",
            "",
            "## Clue Kit",
            "",
        ]
        if mystery.clues:
            for clue in mystery.clues:
                lines.append(f"### {clue.name}")
                lines.append("")
                lines.append(clue.description)
                lines.append("")
                lines.append(f"**Hide:** {clue.location_to_hide}")
                lines.append(f"**Relevance:** {clue.relevance}")
                lines.append("")
        else:
            lines.append("_No clues yet._")
            lines.append("")

        lines.extend(["## The Truth (Master Timeline)", "", mystery.timeline, ""])
        return lines

    def export_to_file(self, mystery: Mystery, file_path: Path):
        """
        Export mystery to a file

        Args:
            mystery: Mystery to export
            file_path: Path to output file
        """
        markdown_content = self.export(mystery)

        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "w", encoding="utf-8") as f:
            f.write(markdown_content)
