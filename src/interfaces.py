"""Core interfaces used by the redirect components."""

from abc import ABC, abstractmethod
from typing import Dict


class ISettingsStore(ABC):
    @abstractmethod
    async def read_all(self) -> Dict[str, object]:
        ...

    @abstractmethod
    async def write(self, patch: Dict[str, object]) -> None:
        ...


class IRedirectExecutor(ABC):
    @abstractmethod
    async def redirect(self, tab_id: int, url: str) -> None:
        ...


class ILogger(ABC):
    @abstractmethod
    def log_access(self, message: str) -> None:
        ...

    @abstractmethod
    def log_error(self, message: str) -> None:
        ...

    @abstractmethod
    def info(self, message: str) -> None:
        ...

    @abstractmethod
    def error(self, message: str) -> None:
        ...


class IStatistics(ABC):
    @abstractmethod
    def increment_navigations(self) -> None:
        ...

    @abstractmethod
    def increment_outcome(self, outcome: str) -> None:
        ...

    @abstractmethod
    def increment_errors(self) -> None:
        ...

    @abstractmethod
    async def record_redirect(self, hostname: str) -> None:
        ...

    @abstractmethod
    def get_stats_display(self) -> str:
        ...
