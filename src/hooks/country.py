from typing import Callable

from loguru import logger

CountryListener = Callable[[str], None]


class CountryStore:
    """Selected country code: one writer, any number of subscribers."""

    def __init__(self, initial: str = "FRA") -> None:
        self._code = initial.strip().upper()
        self._subscribers: list[CountryListener] = []

    @property
    def code(self) -> str:
        return self._code

    def subscribe(self, listener: CountryListener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""
        self._subscribers.append(listener)

        def unsubscribe() -> None:
            if listener in self._subscribers:
                self._subscribers.remove(listener)

        return unsubscribe

    def select(self, code: str) -> bool:
        """Change the selection. Returns False when ``code`` is already selected."""
        code = code.strip().upper()
        if not code:
            raise ValueError("Country code must not be empty")
        if code == self._code:
            return False
        logger.info(f"Selected country changed {self._code} -> {code}")
        self._code = code
        for listener in list(self._subscribers):
            listener(code)
        return True
