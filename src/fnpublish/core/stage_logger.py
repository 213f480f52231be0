"""In-memory record of pipeline stages and remote calls."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

log = logging.getLogger(__name__)


@dataclass
class LogEntry:
    """One recorded event."""

    kind: str  # "stage", "call" or "retry"
    name: str
    service: Optional[str] = None


@dataclass
class StageLogger:
    """Records ordered stage names, remote call names and retry notices.

    Every entry is also forwarded to the standard logger. Retry notices are
    kept apart so they never appear in the stage sequence.
    """

    entries: List[LogEntry] = field(default_factory=list)

    def log_stage(self, name: str) -> None:
        self.entries.append(LogEntry(kind="stage", name=name))
        log.info(name)

    def log_call(self, service: str, operation: str) -> None:
        self.entries.append(
            LogEntry(kind="call", name=f"{service}.{operation}", service=service)
        )
        log.debug(f"{service}.{operation}")

    def log_retry(
        self,
        message: str,
        service: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        self.entries.append(LogEntry(kind="retry", name=message, service=service))
        if operation:
            log.warning(f"{message} ({service}.{operation})")
        else:
            log.warning(message)

    def get_stage_log(self) -> List[str]:
        return [e.name for e in self.entries if e.kind == "stage"]

    def get_call_log(
        self, service: Optional[str] = None, unique: bool = False
    ) -> List[str]:
        """Call names in order, optionally filtered by service.

        With unique=True only the first occurrence of each name is kept.
        """
        names = [
            e.name
            for e in self.entries
            if e.kind == "call" and (service is None or e.service == service)
        ]
        if unique:
            names = list(dict.fromkeys(names))
        return names

    def get_retry_log(self) -> List[str]:
        return [e.name for e in self.entries if e.kind == "retry"]
