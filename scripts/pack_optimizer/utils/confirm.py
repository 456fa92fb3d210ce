"""
Confirmation gates consulted by the pipeline before each stage.

A gate is any callable taking a prompt string and returning whether the
operator agreed to continue.
"""

from typing import Callable, Optional

from rich.console import Console


ConfirmGate = Callable[[str], bool]

YES_ANSWERS = {"y", "yes"}
NO_ANSWERS = {"n", "no"}


def always_confirm(prompt: str) -> bool:
    """Gate used when confirmation prompts are bypassed."""
    return True


class ConsoleConfirm:
    """Interactive gate asking the operator on the console until a yes or no answer is given."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def __call__(self, prompt: str) -> bool:
        while True:
            self.console.print(prompt, markup=False)
            try:
                answer = self.console.input("Continue? [bold](Y)es (N)o[/bold] ")
            except EOFError:
                # closed stdin counts as a refusal
                return False

            answer = answer.strip().lower()
            if answer in YES_ANSWERS:
                return True
            if answer in NO_ANSWERS:
                return False
