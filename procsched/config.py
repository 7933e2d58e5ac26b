from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigurationError

POLICIES: Dict[str, str] = {
    "rr": "Round Robin",
    "priority": "Priority Round Robin",
    "cfs": "Completely Fair (simplified)",
}


@dataclass(frozen=True)
class SchedulerConfig:
    """
    Immutable engine configuration, captured once at construction.

    ``timeslice`` is the quantum for ``rr`` and ``priority``; ``cpu_time``
    is the per-decision budget that ``cfs`` shares among ready processes.
    """

    policy: str = "rr"
    timeslice: Optional[int] = None
    cpu_time: Optional[int] = None
    minimum_remaining_timeslice: int = 0
    strict_signals: bool = False

    def __post_init__(self) -> None:
        if self.policy not in POLICIES:
            raise ConfigurationError(
                f"Unknown policy '{self.policy}' (use {', '.join(POLICIES)})"
            )
        if self.policy == "cfs":
            _require_positive("cpu_time", self.cpu_time)
        else:
            _require_positive("timeslice", self.timeslice)
        if not isinstance(self.minimum_remaining_timeslice, int) or self.minimum_remaining_timeslice < 0:
            raise ConfigurationError("minimum_remaining_timeslice must be a non-negative integer")

    @property
    def quantum(self) -> int:
        """Quantum for rr/priority, budget for cfs."""
        value = self.cpu_time if self.policy == "cfs" else self.timeslice
        if value is None:
            raise ConfigurationError(f"no quantum configured for policy '{self.policy}'")
        return value

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "SchedulerConfig":
        """
        Build a configuration from a plain dict (trace header or CLI args).

        ``quantum`` is accepted as an alias for whichever of
        ``timeslice``/``cpu_time`` the policy uses.
        """
        policy = str(mapping.get("policy", "rr")).lower()
        try:
            timeslice = _optional_int(mapping.get("timeslice"))
            cpu_time = _optional_int(mapping.get("cpu_time"))
            quantum = _optional_int(mapping.get("quantum"))
            minimum = _optional_int(mapping.get("minimum_remaining_timeslice")) or 0
            strict_signals = _flag(mapping.get("strict_signals", False))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid configuration: {dict(mapping)!r}") from exc

        if quantum is not None:
            if policy == "cfs" and cpu_time is None:
                cpu_time = quantum
            elif policy != "cfs" and timeslice is None:
                timeslice = quantum

        return cls(
            policy=policy,
            timeslice=timeslice,
            cpu_time=cpu_time,
            minimum_remaining_timeslice=minimum,
            strict_signals=strict_signals,
        )


def _require_positive(name: str, value: Optional[int]) -> None:
    if value is None or not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")


def _optional_int(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    return int(value)


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"", "0", "false", "no", "off"}:
        return False
    raise ValueError(f"not a boolean: {value!r}")
