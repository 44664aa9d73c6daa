from __future__ import annotations

from typing import Callable, Optional

from rich.console import Console
from rich.text import Text

from isodin.change_set import ChangeSet

CONFIRM_PROMPT = "Do you want to update these changes to the database? (Y/N): "
_YES = {"y", "yes"}


class ConsoleShell:
    """Preview, confirmation and summary output for an interactive run."""

    def __init__(self, console: Optional[Console] = None, input_func: Callable[[str], str] = input):
        self.console = console or Console(highlight=False)
        self._input = input_func

    def show_changes(self, change_set: ChangeSet) -> None:
        for change in change_set.changes:
            self.console.rule(style="dim")
            self.console.print(f"  Family ID: {change.family_id}")
            # Text keeps "[...]" in titles from being read as rich markup
            self.console.print(Text(f"  Original : {change.original_title}", style="yellow"))
            self.console.print(Text(f"  Proposed : {change.proposed_title}", style="green"))
        self.console.rule(style="dim")

    def confirm(self, prompt: str = CONFIRM_PROMPT) -> bool:
        try:
            answer = self._input(prompt)
        except EOFError:
            return False
        return answer.strip().lower() in _YES

    def show_summary(self, change_set: ChangeSet, updated: Optional[int] = None) -> None:
        self.console.print(f"Total analyzed : {change_set.analyzed}")
        self.console.print(f"Unchanged      : {change_set.unchanged}")
        skipped = Text(f"Skipped        : {change_set.unresolved}")
        if change_set.unresolved:
            skipped.stylize("yellow")
        self.console.print(skipped)
        if updated:
            self.console.print(Text(f"Updated        : {updated}", style="green"))
        else:
            self.console.print("No changes were made to the database.")
