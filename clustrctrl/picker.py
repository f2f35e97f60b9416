"""Candidate-task picker: a small menu drawn at random from a fixed pool."""

from __future__ import annotations

import random
from dataclasses import dataclass

FETCH_AMOUNT = 6
"""How many entries are drawn from the pool for the menu."""


@dataclass(frozen=True)
class CandidateTask:
    """A task that can be launched: who does it and what it is."""

    name: str
    description: str

    def __str__(self) -> str:
        return f"({self.name}): {self.description}"


COOL_TASKS: tuple[CandidateTask, ...] = (
    CandidateTask("Bobson Dugnutt", "Wait for Pokemon cards"),
    CandidateTask("Sleve McDichael", "Re-attach turbo encabulator"),
    CandidateTask("Onson Sweemey", "Repaint fence"),
    CandidateTask("Anatoli Smorin", "Revandalize fence"),
    CandidateTask("Rey McSriff", "help im trapped in a binary an"),
    CandidateTask("Glenallen Mixon", "Rehydrate the PDF files"),
    CandidateTask("Mario McRlwain", "Defragment rubber duck collection"),
    CandidateTask("Todd Bonzalez", "Uninstall gravity temporarily"),
    CandidateTask("Dwigt Rortugal", "Calibrate the hydrospanner flux matrix"),
    CandidateTask("Karl Dandleton", "Reverse-engineer cafeteria meatloaf"),
    CandidateTask("Mike Truk", "Overclock the toaster (bagels only)"),
    CandidateTask("Dean Wesrey", "Re-enact fax machine error codes via mime"),
    CandidateTask("Raul Chamgerlain", "Translate whale songs into Excel formulas"),
    CandidateTask("Tony Smellme", "Teach office plants about blockchain"),
    CandidateTask("Jeromy Gride", "Recycle the same oxygen molecule 17 times"),
    CandidateTask("Bingus", "<REDACTED>"),
)

_TITLE = " New Task "
_CONTROLS = " Pick for Me! <R> Pick Selected <ENTER>"
_HIGHLIGHT = "> "


class TaskPicker:
    """Holds the drawn candidates and a cursor over them."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.items: list[CandidateTask] = self._draw()
        self.selected: int | None = FETCH_AMOUNT // 2 - 1

    def _draw(self) -> list[CandidateTask]:
        return self._rng.sample(COOL_TASKS, FETCH_AMOUNT)

    def next(self) -> None:
        """Move the cursor down, stopping at the last entry."""
        if not self.items:
            self.selected = None
        elif self.selected is None:
            self.selected = 0
        else:
            self.selected = min(self.selected + 1, len(self.items) - 1)

    def previous(self) -> None:
        """Move the cursor up, stopping at the first entry."""
        if not self.items:
            self.selected = None
        elif self.selected is None:
            self.selected = len(self.items) - 1
        else:
            self.selected = max(self.selected - 1, 0)

    def select(self) -> CandidateTask | None:
        """The candidate under the cursor, or None if there is none."""
        if self.selected is None or not 0 <= self.selected < len(self.items):
            return None
        return self.items[self.selected]

    def select_random(self) -> CandidateTask | None:
        """A random candidate from the current menu."""
        if not self.items:
            return None
        return self._rng.choice(self.items)

    def regen(self) -> None:
        """Draw a fresh set of candidates from the pool."""
        self.items = self._draw()

    def render_lines(self, width: int) -> list[str]:
        """Draw the modal as text lines exactly ``width`` characters wide."""
        if width < 2:
            raise ValueError("picker needs a width of at least 2")
        inner = width - 2
        top = "┌" + (_TITLE + "─" * inner)[:inner] + "┐"
        lines = [top]
        for index, item in enumerate(self.items):
            if self.selected is None:
                prefix = ""
            elif index == self.selected:
                prefix = _HIGHLIGHT
            else:
                prefix = " " * len(_HIGHLIGHT)
            text = (prefix + str(item))[:inner].ljust(inner)
            lines.append("│" + text + "│")
        controls = _CONTROLS[:inner]
        pad = inner - len(controls)
        left = pad // 2
        bottom = "└" + "─" * left + controls + "─" * (pad - left) + "┘"
        lines.append(bottom)
        return lines