"""
Line-based terminal presenter for a reconciliation session.

Shows the DRIFTED and MISSING entries of a scan as a numbered checklist and
reads one command per line:

    1 3 5     toggle entries by number
    j / k     move the cursor down / up
    t         toggle the entry under the cursor
    a / n     select all / select none
    <enter>   confirm the selection
    q         quit without changes

Ctrl+C (or end of input) cancels the session. The input function is
injectable so the flow can be driven from tests.
"""

from typing import Callable, List

from .core.colors import Colors, bold, colorize, dim, status_label
from .core.reconcile import ReconciliationSession, SessionState

HELP_TEXT = (
    "Commands: numbers toggle entries, j/k move, t toggles current, "
    "a selects all, n selects none, Enter confirms, q quits"
)


class SessionPrompt:
    """
    Drives a ReconciliationSession from line input.

    Usage:
        prompt = SessionPrompt(session)
        if prompt.run() is SessionState.CONFIRMED:
            session.apply()
    """

    def __init__(
        self,
        session: ReconciliationSession,
        input_fn: Callable[[str], str] = input,
        print_fn: Callable[..., None] = print
    ):
        self.session = session
        self.input_fn = input_fn
        self.print_fn = print_fn

    def render(self):
        self.print_fn()
        self.print_fn(bold("Select entries to update:"))
        for number, item in enumerate(self.session.items, 1):
            pointer = colorize('>', Colors.CYAN) if number - 1 == self.session.cursor else ' '
            box = '[x]' if item.selected else '[ ]'
            action = dim(f"({item.action})")
            self.print_fn(
                f"{pointer} {box} {number:>3}. {status_label(str(item.record.status))} "
                f"{item.label} {action}"
            )
        self.print_fn(dim(HELP_TEXT))

    def _toggle_numbers(self, tokens: List[str]) -> bool:
        numbers = [int(token) for token in tokens]
        if any(n < 1 or n > len(self.session.items) for n in numbers):
            self.print_fn(f"Invalid selection: choose 1-{len(self.session.items)}")
            return False
        for n in numbers:
            self.session.move_to(n - 1)
            self.session.toggle()
        return True

    def _confirm(self) -> bool:
        if self.session.selected:
            self.session.confirm()
            return True
        response = self.input_fn("Nothing selected. Continue without changes? [y/N]: ")
        if response.strip().lower() == 'y':
            self.session.confirm(acknowledge_empty=True)
            return True
        return False

    def handle(self, line: str) -> bool:
        """
        Apply one line of input.

        Returns:
            True once the session has left BROWSING
        """
        if line == ' ':
            self.session.toggle()
            return False

        command = line.strip().lower()
        if command == '':
            return self._confirm()
        if command == 'q':
            self.session.abort()
            return True

        tokens = command.replace(',', ' ').split()
        if all(token.isdigit() for token in tokens):
            self._toggle_numbers(tokens)
        elif command == 'j':
            self.session.move_cursor(1)
        elif command == 'k':
            self.session.move_cursor(-1)
        elif command == 't':
            self.session.toggle()
        elif command == 'a':
            self.session.select_all()
        elif command == 'n':
            self.session.select_none()
        elif command in ('?', 'h', 'help'):
            self.print_fn(HELP_TEXT)
        else:
            self.print_fn(f"Unknown command: {line.strip()}")
        return False

    def run(self) -> SessionState:
        """Loop until the user confirms or cancels."""
        try:
            while self.session.state is SessionState.BROWSING:
                self.render()
                if self.handle(self.input_fn("> ")):
                    break
        except (EOFError, KeyboardInterrupt):
            self.print_fn("\nCancelled. No changes written.")
            if self.session.state is SessionState.BROWSING:
                self.session.abort()
        return self.session.state
