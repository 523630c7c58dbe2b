"""User interaction: credential prompts and per-host credential storage."""

import getpass
import logging

logger = logging.getLogger(__name__)


class ConsoleIO:
    """Terminal-backed IO.

    Prompts block on user input, so they are only allowed when ``interactive``.
    """

    def __init__(self, interactive: bool = True, verbose: bool = False):
        self.interactive = interactive
        self.verbose = verbose
        self._authentications: dict[str, tuple[str, str]] = {}

    def is_interactive(self) -> bool:
        return self.interactive

    def is_verbose(self) -> bool:
        return self.verbose

    def ask(self, question: str, default: str | None = None) -> str | None:
        answer = input(question).strip()
        return answer or default

    def ask_and_hide_answer(self, question: str) -> str:
        return getpass.getpass(question)

    def has_authentication(self, host: str) -> bool:
        return host in self._authentications

    def get_authentication(self, host: str) -> tuple[str, str] | None:
        return self._authentications.get(host)

    def set_authentication(self, host: str, username: str, password: str) -> None:
        logger.debug(f"Storing credentials for {host}")
        self._authentications[host] = (username, password)


class NullIO(ConsoleIO):
    """Non-interactive IO: never prompts."""

    def __init__(self, verbose: bool = False):
        super().__init__(interactive=False, verbose=verbose)

    def ask(self, question: str, default: str | None = None) -> str | None:
        return default

    def ask_and_hide_answer(self, question: str) -> str:
        raise RuntimeError("Cannot prompt for input in a non-interactive session")
