"""Operator decisions: confirmations, selections and free-text answers."""

from typing import List, Optional

from .utils import log_error, log_info


class AutoDecisions:
    """Non-interactive answers: accept everything, take the first choice."""

    interactive = False

    def confirm(self, question: str, default: bool = True) -> bool:
        log_info(f"{question} -> yes (non-interactive)")
        return True

    def choose(self, question: str, options: List[str]) -> Optional[int]:
        if not options:
            return None
        log_info(f"{question} -> {options[0]} (non-interactive)")
        return 0

    def ask(self, question: str, default: str = "") -> str:
        return default


class InteractiveDecisions:
    """Prompts the operator on the terminal."""

    interactive = True

    def confirm(self, question: str, default: bool = True) -> bool:
        suffix = "(Y/n)" if default else "(y/N)"
        response = input(f"{question} {suffix}: ").strip().lower()
        if not response:
            return default
        return response in ("y", "yes")

    def choose(self, question: str, options: List[str]) -> Optional[int]:
        """Return the index of the selected option, or None if the operator declines."""
        log_info(question)
        for i, option in enumerate(options):
            log_info(f"  {i + 1}. {option}")
        selection = input(f"Enter a number (1-{len(options)}) or leave blank to cancel: ").strip()
        if not selection:
            return None
        try:
            index = int(selection) - 1
        except ValueError:
            log_error(f"Invalid input: {selection}. Please enter a number.")
            return None
        if 0 <= index < len(options):
            return index
        log_error(f"Invalid selection: {selection}. Please enter a number between 1 and {len(options)}.")
        return None

    def ask(self, question: str, default: str = "") -> str:
        prompt = f"{question} [{default}]: " if default else f"{question}: "
        response = input(prompt).strip()
        return response or default
